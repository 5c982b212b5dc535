"""Tests for educator result summaries."""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import text

from app.config import settings
from app.models.quiz_schemas import QuizResultsSummary, QuizStatus, SubmissionStatus
from app.services.exceptions import NotFoundError, PersistenceError
from app.services.results_service import (
    ALL_COURSES,
    QuizResultsService,
    available_courses,
    filter_summaries,
    summarize_quiz,
)
from app.services.stores import sql_stores
from conftest import add_quiz, add_submission, make_question, make_quiz, make_submission


def _service(db_session, concurrency=None):
    stores = sql_stores(db_session)
    return QuizResultsService(stores.quizzes, stores.submissions, stores.courses, concurrency=concurrency)


class TestBuildSummaries:
    def test_skips_quizzes_without_submissions_and_keeps_order(self, db_session, later):
        educator_id = uuid4()
        newest = make_quiz([make_question(points=2)], title="Newest", educator_id=educator_id, updated_at=later(30))
        empty = make_quiz([make_question()], title="Empty", educator_id=educator_id, updated_at=later(20))
        oldest = make_quiz([make_question(points=4)], title="Oldest", educator_id=educator_id, updated_at=later(10))
        for quiz in (oldest, empty, newest):
            add_quiz(db_session, quiz)
        add_submission(db_session, make_submission(newest, score=2))
        add_submission(db_session, make_submission(oldest, score=1))
        add_submission(db_session, make_submission(oldest, score=3))

        summaries = asyncio.run(_service(db_session, concurrency=1).build_summaries(educator_id))

        assert [s.quiz_title for s in summaries] == ["Newest", "Oldest"]
        assert summaries[1].total_submissions == 2
        assert summaries[1].average_score == pytest.approx(2.0)
        assert summaries[1].average_percentage == pytest.approx(50.0)

    def test_only_published_quizzes_of_the_educator(self, db_session):
        educator_id = uuid4()
        published = make_quiz([make_question()], title="Published", educator_id=educator_id)
        draft = make_quiz([make_question()], title="Draft", educator_id=educator_id, status=QuizStatus.DRAFT)
        foreign = make_quiz([make_question()], title="Someone else's")
        for quiz in (published, draft, foreign):
            add_quiz(db_session, quiz)
            add_submission(db_session, make_submission(quiz, score=1))

        summaries = asyncio.run(_service(db_session).build_summaries(educator_id))

        assert [s.quiz_title for s in summaries] == ["Published"]
        assert summaries[0].course_title == "Network Security"

    def test_missing_course_uses_placeholder(self, db_session):
        educator_id = uuid4()
        quiz = make_quiz([make_question()], educator_id=educator_id)
        add_quiz(db_session, quiz)
        add_submission(db_session, make_submission(quiz, score=1))
        db_session.execute(
            text("DELETE FROM courses WHERE id = :id"),
            {"id": str(quiz.course_id)},
        )
        db_session.commit()

        summaries = asyncio.run(_service(db_session).build_summaries(educator_id))

        assert summaries[0].course_title == settings.unknown_course_title

    def test_no_quizzes(self, db_session):
        assert asyncio.run(_service(db_session).build_summaries(uuid4())) == []


class _Stores:
    """In-memory stores with a per-quiz failure switch."""

    def __init__(self, quizzes, submissions, failing=(), delays=None, course_titles=None):
        self._quizzes = quizzes
        self._submissions = submissions
        self._failing = set(failing)
        self._delays = delays or {}
        self._course_titles = course_titles or {}

    async def list_quizzes(self, educator_id, status=QuizStatus.PUBLISHED):
        return list(self._quizzes)

    async def get_quiz(self, quiz_id):
        for quiz in self._quizzes:
            if quiz.id == quiz_id:
                return quiz
        raise NotFoundError("Quiz not found")

    async def list_submissions(self, quiz_id):
        await asyncio.sleep(self._delays.get(quiz_id, 0))
        if quiz_id in self._failing:
            raise PersistenceError("Failed to fetch quiz_submissions: timeout")
        return self._submissions.get(quiz_id, [])

    async def get_course_title(self, course_id):
        title = self._course_titles.get(course_id, "Algebra")
        if isinstance(title, Exception):
            raise title
        return title


class TestSummaryIsolation:
    def test_one_failing_quiz_does_not_fail_the_list(self):
        quizzes = [make_quiz([make_question()], title=t) for t in ("One", "Two", "Three")]
        submissions = {q.id: [make_submission(q, score=1)] for q in quizzes}
        stores = _Stores(quizzes, submissions, failing=[quizzes[1].id])

        summaries = asyncio.run(QuizResultsService(stores, stores, stores).build_summaries(uuid4()))

        assert [s.quiz_title for s in summaries] == ["One", "Three"]

    def test_failing_course_lookup_skips_only_that_quiz(self):
        quizzes = [make_quiz([make_question()], title=t) for t in ("One", "Two", "Three")]
        submissions = {q.id: [make_submission(q, score=1)] for q in quizzes}
        stores = _Stores(quizzes, submissions, course_titles={
            quizzes[0].course_id: RuntimeError("courses table unavailable"),
        })

        summaries = asyncio.run(QuizResultsService(stores, stores, stores).build_summaries(uuid4()))

        assert [s.quiz_title for s in summaries] == ["Two", "Three"]

    def test_unusable_course_title_skips_only_that_quiz(self):
        quizzes = [make_quiz([make_question()], title=t) for t in ("One", "Two", "Three")]
        submissions = {q.id: [make_submission(q, score=1)] for q in quizzes}
        stores = _Stores(quizzes, submissions, course_titles={quizzes[1].course_id: None})

        summaries = asyncio.run(QuizResultsService(stores, stores, stores).build_summaries(uuid4()))

        assert [s.quiz_title for s in summaries] == ["One", "Three"]
        assert [s.course_title for s in summaries] == ["Algebra", "Algebra"]

    def test_listing_order_survives_out_of_order_completion(self):
        quizzes = [make_quiz([make_question()], title=t) for t in ("A", "B", "C", "D")]
        submissions = {q.id: [make_submission(q, score=1)] for q in quizzes}
        delays = {quizzes[0].id: 0.03, quizzes[1].id: 0.02, quizzes[2].id: 0.01}
        stores = _Stores(quizzes, submissions, delays=delays)

        summaries = asyncio.run(QuizResultsService(stores, stores, stores, concurrency=4).build_summaries(uuid4()))

        assert [s.quiz_title for s in summaries] == ["A", "B", "C", "D"]

    def test_listing_failure_propagates(self):
        class BrokenQuizzes:
            async def list_quizzes(self, educator_id, status=QuizStatus.PUBLISHED):
                raise PersistenceError("Failed to fetch quizzes: 503")

        stores = _Stores([], {})
        with pytest.raises(PersistenceError):
            asyncio.run(QuizResultsService(BrokenQuizzes(), stores, stores).build_summaries(uuid4()))

    def test_quiz_analytics_for_unknown_quiz(self):
        stores = _Stores([], {})
        with pytest.raises(NotFoundError):
            asyncio.run(QuizResultsService(stores, stores, stores).get_quiz_analytics(uuid4()))


class TestSummaryHelpers:
    def test_summarize_quiz(self, later):
        quiz = make_quiz([make_question(points=5), make_question(points=5)])
        submissions = [
            make_submission(quiz, score=8, submitted_at=later(5)),
            make_submission(quiz, score=4, submitted_at=later(50), status=SubmissionStatus.PENDING_REVIEW),
            make_submission(quiz, score=6, submitted_at=later(20), status=SubmissionStatus.GRADED),
        ]

        summary = summarize_quiz(quiz, submissions, "Physics")

        assert summary.total_submissions == 3
        assert summary.average_score == pytest.approx(6.0)
        assert summary.average_percentage == pytest.approx(60.0)
        assert summary.last_submission_date == later(50)
        assert summary.needs_grading == 1

    @pytest.fixture
    def summaries(self):
        def row(quiz_title, course_title):
            return QuizResultsSummary(
                quiz_id=uuid4(),
                quiz_title=quiz_title,
                course_title=course_title,
                total_submissions=1,
                average_score=1,
                total_points=1,
                needs_grading=0,
            )
        return [
            row("Midterm", "Biology"),
            row("Cell Structure", "Biology"),
            row("Vectors", "Physics"),
        ]

    def test_search_matches_quiz_or_course_title(self, summaries):
        assert [s.quiz_title for s in filter_summaries(summaries, search="CELL")] == ["Cell Structure"]
        assert len(filter_summaries(summaries, search="bio")) == 2

    def test_course_filter(self, summaries):
        assert [s.quiz_title for s in filter_summaries(summaries, course="Physics")] == ["Vectors"]
        assert filter_summaries(summaries, course=ALL_COURSES) == summaries

    def test_available_courses(self, summaries):
        assert available_courses(summaries) == [ALL_COURSES, "Biology", "Physics"]
        assert available_courses([]) == [ALL_COURSES]
