"""
Backing store access for quizzes, submissions and course titles.

The results services only talk to the Protocols below. `SqlQuizStore` and
friends implement them on top of a SQLAlchemy session; the PostgREST
implementation lives in `app.services.rest_store`.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID
import logging

from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import database as db_models
from app.models.quiz_schemas import Quiz, QuizAnswer, QuizStatus, QuizSubmission, SubmissionStatus
from app.services.exceptions import DegradedLookupError, NotFoundError, PersistenceError, StaleSubmissionError

logger = logging.getLogger(__name__)


# ============= INTERFACES =============

class SubmissionStore(Protocol):
    async def list_submissions(self, quiz_id: UUID) -> List[QuizSubmission]: ...

    async def list_submissions_by_learner(self, learner_id: UUID) -> List[QuizSubmission]: ...

    async def get_submission(self, submission_id: UUID) -> QuizSubmission: ...

    async def update_submission(
        self,
        submission_id: UUID,
        answers: List[QuizAnswer],
        score: int,
        status: SubmissionStatus,
        graded_at: Optional[datetime],
        expected_version: int
    ) -> None: ...


class QuizStore(Protocol):
    async def list_quizzes(self, educator_id: UUID, status: Optional[QuizStatus] = QuizStatus.PUBLISHED) -> List[Quiz]: ...

    async def get_quiz(self, quiz_id: UUID) -> Quiz: ...


class CourseTitleLookup(Protocol):
    async def get_course_title(self, course_id: UUID) -> str: ...


def dump_answers(answers: List[QuizAnswer]) -> list:
    """Answers as plain JSON for storage."""
    return [a.model_dump(mode="json") for a in answers]


# ============= SQLALCHEMY IMPLEMENTATIONS =============

def _submission_from_row(row: db_models.QuizSubmission) -> QuizSubmission:
    return QuizSubmission(
        id=row.id,
        quiz_id=row.quiz_id,
        learner_id=row.learner_id,
        learner_name=row.learner_name,
        learner_email=row.learner_email,
        answers=row.answers,
        score=row.score,
        total_points=row.total_points,
        status=row.status,
        submitted_at=row.submitted_at,
        graded_at=row.graded_at,
        time_spent_seconds=row.time_spent_seconds,
        version=row.version
    )


def _quiz_from_row(row: db_models.Quiz) -> Quiz:
    return Quiz(
        id=row.id,
        title=row.title,
        course_id=row.course_id,
        educator_id=row.educator_id,
        questions=row.questions,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at
    )


class SqlSubmissionStore:
    """
    Submission store backed by the `quiz_submissions` table.

    The session is synchronous: each call blocks the event loop while the
    query runs, so summary fetches against this store run one at a time.
    """

    def __init__(self, db: Session):
        self.db = db

    def _load_all(self, rows) -> List[QuizSubmission]:
        submissions = []
        for row in rows:
            try:
                submissions.append(_submission_from_row(row))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable submission {row.id}: {e}")
        return submissions

    async def list_submissions(self, quiz_id: UUID) -> List[QuizSubmission]:
        """All submissions for a quiz, newest first."""
        rows = self.db.query(db_models.QuizSubmission)\
            .filter(db_models.QuizSubmission.quiz_id == str(quiz_id))\
            .order_by(db_models.QuizSubmission.submitted_at.desc())\
            .all()
        return self._load_all(rows)

    async def list_submissions_by_learner(self, learner_id: UUID) -> List[QuizSubmission]:
        """All submissions by a learner, newest first."""
        rows = self.db.query(db_models.QuizSubmission)\
            .filter(db_models.QuizSubmission.learner_id == str(learner_id))\
            .order_by(db_models.QuizSubmission.submitted_at.desc())\
            .all()
        return self._load_all(rows)

    async def get_submission(self, submission_id: UUID) -> QuizSubmission:
        row = self.db.query(db_models.QuizSubmission)\
            .filter(db_models.QuizSubmission.id == str(submission_id))\
            .first()
        if not row:
            raise NotFoundError("Submission not found")
        return _submission_from_row(row)

    async def update_submission(
        self,
        submission_id: UUID,
        answers: List[QuizAnswer],
        score: int,
        status: SubmissionStatus,
        graded_at: Optional[datetime],
        expected_version: int
    ) -> None:
        """
        Write grading results if the row still has `expected_version`.

        graded_at is only written when given; an existing value is kept.

        Raises:
            StaleSubmissionError: Row was changed (or removed) by someone else
            PersistenceError: The database rejected the write
        """
        values = {
            "answers": dump_answers(answers),
            "score": score,
            "status": status.value,
            "version": expected_version + 1,
        }
        if graded_at is not None:
            values["graded_at"] = graded_at

        stmt = update(db_models.QuizSubmission)\
            .where(db_models.QuizSubmission.id == str(submission_id))\
            .where(db_models.QuizSubmission.version == expected_version)\
            .values(**values)

        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                raise StaleSubmissionError(
                    "Submission was modified by another grader. Reload it and try again."
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update submission {submission_id}: {e}")
            raise PersistenceError(f"Failed to grade answer: {e}") from e


class SqlQuizStore:
    """Quiz store backed by the `quizzes` table."""

    def __init__(self, db: Session):
        self.db = db

    async def list_quizzes(self, educator_id: UUID, status: Optional[QuizStatus] = QuizStatus.PUBLISHED) -> List[Quiz]:
        """Quizzes owned by an educator, most recently updated first."""
        query = self.db.query(db_models.Quiz).filter(db_models.Quiz.educator_id == str(educator_id))
        if status is not None:
            query = query.filter(db_models.Quiz.status == status.value)

        quizzes = []
        for row in query.order_by(db_models.Quiz.updated_at.desc()).all():
            try:
                quizzes.append(_quiz_from_row(row))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable quiz {row.id}: {e}")
        return quizzes

    async def get_quiz(self, quiz_id: UUID) -> Quiz:
        row = self.db.query(db_models.Quiz).filter(db_models.Quiz.id == str(quiz_id)).first()
        if not row:
            raise NotFoundError("Quiz not found")
        return _quiz_from_row(row)


class SqlCourseTitleLookup:
    """Course title lookup backed by the `courses` table."""

    def __init__(self, db: Session):
        self.db = db

    def _fetch_title(self, course_id: UUID) -> str:
        try:
            row = self.db.query(db_models.Course.title)\
                .filter(db_models.Course.id == str(course_id))\
                .first()
        except SQLAlchemyError as e:
            raise DegradedLookupError(str(e)) from e
        if not row:
            raise DegradedLookupError(f"Course {course_id} not found")
        return row.title

    async def get_course_title(self, course_id: UUID) -> str:
        """Course title, or the configured placeholder when it can't be found."""
        try:
            return self._fetch_title(course_id)
        except DegradedLookupError as e:
            logger.warning(f"Course title lookup failed: {e}")
            return settings.unknown_course_title


@dataclass
class StoreBundle:
    """The three collaborators a request needs, from one backend."""
    quizzes: QuizStore
    submissions: SubmissionStore
    courses: CourseTitleLookup


def sql_stores(db: Session) -> StoreBundle:
    return StoreBundle(
        quizzes=SqlQuizStore(db),
        submissions=SqlSubmissionStore(db),
        courses=SqlCourseTitleLookup(db)
    )
