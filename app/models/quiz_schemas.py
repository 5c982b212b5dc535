"""
Pydantic models for quizzes, submissions and results analytics.
"""

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, computed_field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from app.models.payloads import normalize_payload


# ============= ENUMS =============

class QuestionType(str, Enum):
    """Question type enumeration."""
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    DESCRIPTIVE = "descriptive"

    @classmethod
    def _missing_(cls, value):
        # Rows written by the mobile client use display names ("Single Choice")
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def is_choice(self) -> bool:
        return self is not QuestionType.DESCRIPTIVE


class QuizStatus(str, Enum):
    """Quiz lifecycle status."""
    DRAFT = "draft"
    PUBLISHED = "published"


class SubmissionStatus(str, Enum):
    """Submission grading status."""
    SUBMITTED = "submitted"
    PENDING_REVIEW = "pending_review"
    GRADED = "graded"


# ============= QUIZ DEFINITION =============

class Question(BaseModel):
    """A single quiz question."""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    text: str = Field(..., min_length=1)
    type: QuestionType = QuestionType.SINGLE_CHOICE
    options: List[str] = Field(default_factory=list)
    correct_answer_indices: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("correct_answer_indices", "correctAnswerIndices"),
    )
    points: int = Field(1, gt=0)
    explanation: Optional[str] = None
    requires_manual_grading: bool = Field(
        False,
        validation_alias=AliasChoices("requires_manual_grading", "requiresManualGrading"),
    )

    @model_validator(mode='after')
    def validate_question(self):
        """Enforce option and correct-index rules for choice questions."""
        if not self.type.is_choice:
            self.requires_manual_grading = True
            return self

        if len(self.options) != 4:
            raise ValueError(f'Choice questions need exactly 4 options, got {len(self.options)}')
        if not self.correct_answer_indices:
            raise ValueError('Choice questions need at least one correct answer')
        for index in self.correct_answer_indices:
            if index < 0 or index >= len(self.options):
                raise ValueError(f'Correct answer index {index} is out of range')
        if self.type == QuestionType.SINGLE_CHOICE and len(self.correct_answer_indices) != 1:
            raise ValueError('Single choice questions need exactly one correct answer')
        return self


class Quiz(BaseModel):
    """Quiz definition as stored by the backend."""
    id: UUID = Field(default_factory=uuid4)
    title: str
    course_id: UUID
    educator_id: UUID
    questions: List[Question] = Field(default_factory=list)
    status: QuizStatus = QuizStatus.DRAFT
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('questions', mode='before')
    @classmethod
    def normalize_questions(cls, value):
        return normalize_payload(value)

    @computed_field
    @property
    def total_points(self) -> int:
        """Sum of question points, always derived from the questions."""
        return sum(q.points for q in self.questions)

    def question_by_id(self, question_id: UUID) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)


# ============= SUBMISSIONS =============

class QuizAnswer(BaseModel):
    """One learner response to one question."""
    id: UUID = Field(default_factory=uuid4)
    question_id: UUID
    selected_option_indices: List[int] = Field(default_factory=list)
    text_answer: Optional[str] = None
    is_correct: Optional[bool] = None  # None until graded
    points_earned: int = 0
    feedback: Optional[str] = None


class QuizSubmission(BaseModel):
    """A learner's recorded set of answers to a quiz."""
    id: UUID = Field(default_factory=uuid4)
    quiz_id: UUID
    learner_id: UUID
    learner_name: Optional[str] = None  # Denormalized for reporting
    learner_email: Optional[str] = None
    answers: List[QuizAnswer] = Field(default_factory=list)
    score: int = 0
    total_points: int = 0  # Snapshot of the quiz total at submission time
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    graded_at: Optional[datetime] = None
    time_spent_seconds: Optional[int] = None
    version: int = 0  # Optimistic concurrency counter

    @field_validator('answers', mode='before')
    @classmethod
    def normalize_answers(cls, value):
        return normalize_payload(value)

    @computed_field
    @property
    def percentage_score(self) -> float:
        if self.total_points <= 0:
            return 0.0
        return self.score / self.total_points * 100

    @computed_field
    @property
    def grade(self) -> str:
        percentage = self.percentage_score
        if percentage >= 90:
            return "A+"
        if percentage >= 80:
            return "A"
        if percentage >= 70:
            return "B"
        if percentage >= 60:
            return "C"
        if percentage >= 50:
            return "D"
        return "F"

    def answer_for(self, question_id: UUID) -> Optional[QuizAnswer]:
        return next((a for a in self.answers if a.question_id == question_id), None)


# ============= ANALYTICS (derived, read-only) =============

class WrongAnswerCount(BaseModel):
    """An incorrect option and how often it was picked."""
    model_config = ConfigDict(frozen=True)

    option: str
    count: int


class QuestionAnalytics(BaseModel):
    """Per-question statistics across all submissions."""
    model_config = ConfigDict(frozen=True)

    question_id: UUID
    question_text: str
    question_type: QuestionType
    total_attempts: int
    correct_attempts: int
    average_points: float
    max_points: int
    common_wrong_answers: List[WrongAnswerCount] = []

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct_attempts / self.total_attempts * 100

    @computed_field
    @property
    def difficulty(self) -> str:
        rate = self.success_rate
        if rate >= 80:
            return "Easy"
        if rate >= 50:
            return "Medium"
        return "Hard"


class QuizAnalytics(BaseModel):
    """Quiz-level statistics across all submissions."""
    model_config = ConfigDict(frozen=True)

    quiz_id: UUID
    quiz_title: str
    total_submissions: int
    average_score: float
    average_percentage: float
    highest_score: int
    lowest_score: int
    total_points: int
    completion_rate: float  # Always 100 when there are submissions
    average_time_seconds: Optional[float] = None
    question_analytics: List[QuestionAnalytics] = []


class ScoreDistributionBucket(BaseModel):
    """Number of submissions whose percentage falls in a range."""
    model_config = ConfigDict(frozen=True)

    range: str
    min_percentage: float
    max_percentage: float
    count: int


class LearnerPerformance(BaseModel):
    """One learner's result on a quiz, for leaderboards."""
    model_config = ConfigDict(frozen=True)

    learner_id: UUID
    learner_name: str
    learner_email: str
    submission: QuizSubmission
    rank: Optional[int] = None
    questions_correct: int
    questions_total: int

    @computed_field
    @property
    def accuracy_rate(self) -> float:
        if self.questions_total == 0:
            return 0.0
        return self.questions_correct / self.questions_total * 100


class QuizResultsSummary(BaseModel):
    """Quiz results row for the educator's list view."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    quiz_id: UUID
    quiz_title: str
    course_title: str
    total_submissions: int
    average_score: float
    total_points: int
    last_submission_date: Optional[datetime] = None
    needs_grading: int  # Submissions pending manual grading

    @computed_field
    @property
    def average_percentage(self) -> float:
        if self.total_points <= 0:
            return 0.0
        return self.average_score / self.total_points * 100


class QuizInsights(BaseModel):
    """Narrative summary of quiz analytics."""
    quiz_id: UUID
    summary: str
    strengths: List[str] = []
    areas_for_improvement: List[str] = []
    recommendations: List[str] = []
    generated_at: datetime


# ============= REQUEST / RESPONSE MODELS =============

class GradeAnswerRequest(BaseModel):
    """Manual grade for one descriptive answer."""
    question_id: UUID
    points: int = Field(..., ge=0, description="Points awarded for the answer")
    feedback: Optional[str] = Field(None, max_length=2000, description="Feedback shown to the learner")


class QuestionSuggestionsResponse(BaseModel):
    question_id: UUID
    suggestions: Optional[str] = None


class LearnerFeedbackResponse(BaseModel):
    submission_id: UUID
    feedback: Optional[str] = None
