"""
Shared test fixtures for the quiz results test suite.

Database tests run against in-memory SQLite; nothing touches the network.
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.database import get_db
from app.main import app
from app.models import database as db_models
from app.models.quiz_schemas import (
    Question,
    QuestionType,
    Quiz,
    QuizAnswer,
    QuizStatus,
    QuizSubmission,
    SubmissionStatus,
)
from app.services.insights_service import get_insights_service
from app.services.stores import dump_answers

BASE_TIME = datetime(2025, 3, 1, 12, 0, 0)


def make_question(points=1, correct=(0,), type=QuestionType.SINGLE_CHOICE, text="Which one?"):
    """Helper to create a valid Question with minimal boilerplate."""
    if type == QuestionType.DESCRIPTIVE:
        return Question(text=text, type=type, points=points)
    return Question(
        text=text,
        type=type,
        options=["A", "B", "C", "D"],
        correct_answer_indices=list(correct),
        points=points,
    )


def make_quiz(questions, title="Quiz", status=QuizStatus.PUBLISHED, educator_id=None, course_id=None, updated_at=None):
    return Quiz(
        title=title,
        course_id=course_id or uuid4(),
        educator_id=educator_id or uuid4(),
        questions=questions,
        status=status,
        created_at=BASE_TIME,
        updated_at=updated_at or BASE_TIME,
    )


def make_submission(quiz, answers=(), score=None, status=SubmissionStatus.SUBMITTED,
                    time_spent_seconds=None, submitted_at=None, learner_name=None):
    answers = list(answers)
    return QuizSubmission(
        quiz_id=quiz.id,
        learner_id=uuid4(),
        learner_name=learner_name,
        answers=answers,
        score=sum(a.points_earned for a in answers) if score is None else score,
        total_points=quiz.total_points,
        status=status,
        submitted_at=submitted_at or BASE_TIME,
        time_spent_seconds=time_spent_seconds,
    )


def make_answer(question, selected=(), is_correct=None, points=0, text=None):
    return QuizAnswer(
        question_id=question.id,
        selected_option_indices=list(selected),
        text_answer=text,
        is_correct=is_correct,
        points_earned=points,
    )


def add_quiz(db, quiz, course_title="Network Security"):
    """Write a quiz (and its course, if new) to the database."""
    if db.get(db_models.Course, str(quiz.course_id)) is None:
        db.add(db_models.Course(
            id=str(quiz.course_id),
            title=course_title,
            educator_id=str(quiz.educator_id),
        ))
    db.add(db_models.Quiz(
        id=str(quiz.id),
        title=quiz.title,
        course_id=str(quiz.course_id),
        educator_id=str(quiz.educator_id),
        status=quiz.status.value,
        questions=[q.model_dump(mode="json") for q in quiz.questions],
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
    ))
    db.commit()


def add_submission(db, submission):
    db.add(db_models.QuizSubmission(
        id=str(submission.id),
        quiz_id=str(submission.quiz_id),
        learner_id=str(submission.learner_id),
        learner_name=submission.learner_name,
        learner_email=submission.learner_email,
        answers=dump_answers(submission.answers),
        score=submission.score,
        total_points=submission.total_points,
        status=submission.status.value,
        submitted_at=submission.submitted_at,
        graded_at=submission.graded_at,
        time_spent_seconds=submission.time_spent_seconds,
        version=submission.version,
    ))
    db.commit()


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db_models.Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session):
    """API client bound to the test database, with insights disabled."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_insights_service] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def later():
    """Timestamps after BASE_TIME, one minute apart."""
    return lambda minutes: BASE_TIME + timedelta(minutes=minutes)
