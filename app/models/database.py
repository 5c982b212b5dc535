"""
SQLAlchemy database models for quiz and submission storage.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime
import uuid

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Course(Base):
    """Course table - only the fields the results views need."""
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    educator_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Quiz(Base):
    """Quiz table - questions are kept as a JSON document."""
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    educator_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft", index=True)

    # Either a JSON array or a JSON-encoded string, depending on the writer
    questions = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    course = relationship("Course")
    submissions = relationship("QuizSubmission", back_populates="quiz", cascade="all, delete-orphan")


class QuizSubmission(Base):
    """Quiz submission table - one row per learner attempt."""
    __tablename__ = "quiz_submissions"

    id = Column(String(36), primary_key=True, default=_new_id)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Learner identification (denormalized for reporting)
    learner_id = Column(String(36), nullable=False, index=True)
    learner_name = Column(String(255), nullable=True)
    learner_email = Column(String(255), nullable=True)

    # Answers as JSON (array or JSON-encoded string)
    answers = Column(JSON, nullable=True)

    # Scores
    score = Column(Integer, default=0, nullable=False)
    total_points = Column(Integer, default=0, nullable=False)  # Snapshot at submission time
    status = Column(String(20), default="submitted", nullable=False, index=True)

    # Timestamps
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    graded_at = Column(DateTime, nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)

    # Optimistic concurrency token, bumped on every update
    version = Column(Integer, default=0, nullable=False)

    # Relationships
    quiz = relationship("Quiz", back_populates="submissions")
