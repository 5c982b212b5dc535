"""
Quiz results analytics.

Everything here is a pure function over a quiz and its submissions: no
database session, no network. Callers fetch the data and hand it in.
"""

from collections import Counter
from typing import List, Sequence

from app.models.quiz_schemas import (
    Question,
    Quiz,
    QuizAnalytics,
    QuizSubmission,
    QuestionAnalytics,
    LearnerPerformance,
    ScoreDistributionBucket,
    SubmissionStatus,
    WrongAnswerCount,
)

# Number of most frequent wrong options reported per question
COMMON_WRONG_ANSWERS_LIMIT = 3

# (label, min %, max %) - upper bounds are inclusive
SCORE_RANGES = [
    ("90-100%", 90.0, 100.0),
    ("80-89%", 80.0, 89.99),
    ("70-79%", 70.0, 79.99),
    ("60-69%", 60.0, 69.99),
    ("Below 60%", 0.0, 59.99),
]

STRUGGLING_THRESHOLD = 60.0


def compute_analytics(quiz: Quiz, submissions: Sequence[QuizSubmission]) -> QuizAnalytics:
    """
    Aggregate submissions into quiz-level statistics.

    All submissions count, including ones still pending review (with their
    current partial score). Empty input yields a zero-valued result.

    Args:
        quiz: Quiz definition (questions in display order)
        submissions: Every submission for the quiz

    Returns:
        QuizAnalytics with one QuestionAnalytics per quiz question
    """
    total_points = quiz.total_points

    if not submissions:
        return QuizAnalytics(
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            total_submissions=0,
            average_score=0.0,
            average_percentage=0.0,
            highest_score=0,
            lowest_score=0,
            total_points=total_points,
            completion_rate=0.0,
            average_time_seconds=None,
            question_analytics=[]
        )

    scores = [s.score for s in submissions]
    average_score = sum(scores) / len(scores)
    average_percentage = (average_score / total_points * 100) if total_points > 0 else 0.0

    times = [s.time_spent_seconds for s in submissions if s.time_spent_seconds is not None]

    return QuizAnalytics(
        quiz_id=quiz.id,
        quiz_title=quiz.title,
        total_submissions=len(submissions),
        average_score=average_score,
        average_percentage=average_percentage,
        highest_score=max(scores),
        lowest_score=min(scores),
        total_points=total_points,
        completion_rate=100.0,  # No partial submissions are tracked
        average_time_seconds=(sum(times) / len(times)) if times else None,
        question_analytics=[compute_question_analytics(q, submissions) for q in quiz.questions]
    )


def compute_question_analytics(question: Question, submissions: Sequence[QuizSubmission]) -> QuestionAnalytics:
    """Attempts, correctness and frequent wrong options for one question."""
    total_attempts = 0
    correct_attempts = 0
    points_sum = 0
    wrong_counts: Counter = Counter()

    for submission in submissions:
        answer = submission.answer_for(question.id)
        if answer is None:
            continue

        total_attempts += 1
        points_sum += answer.points_earned

        if answer.is_correct is True:
            correct_attempts += 1
        elif question.type.is_choice:
            # Multi-select answers contribute every selected index
            wrong_counts.update(answer.selected_option_indices)

    return QuestionAnalytics(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type,
        total_attempts=total_attempts,
        correct_attempts=correct_attempts,
        average_points=(points_sum / total_attempts) if total_attempts > 0 else 0.0,
        max_points=question.points,
        common_wrong_answers=_common_wrong_answers(question, wrong_counts)
    )


def _common_wrong_answers(question: Question, wrong_counts: Counter) -> List[WrongAnswerCount]:
    # Counter.most_common keeps first-seen order among equal counts
    top = wrong_counts.most_common(COMMON_WRONG_ANSWERS_LIMIT)
    return [
        WrongAnswerCount(option=question.options[index], count=count)
        for index, count in top
        if 0 <= index < len(question.options)
    ]


def score_distribution(quiz: Quiz, submissions: Sequence[QuizSubmission]) -> List[ScoreDistributionBucket]:
    """Count submissions per percentage band. Empty when the quiz has no points."""
    if quiz.total_points <= 0:
        return []

    buckets = []
    for label, low, high in SCORE_RANGES:
        count = sum(1 for s in submissions if low <= s.percentage_score <= high)
        buckets.append(ScoreDistributionBucket(
            range=label,
            min_percentage=low,
            max_percentage=high,
            count=count
        ))
    return buckets


def learner_performance(submission: QuizSubmission, rank=None) -> LearnerPerformance:
    return LearnerPerformance(
        learner_id=submission.learner_id,
        learner_name=submission.learner_name or "Unknown",
        learner_email=submission.learner_email or "",
        submission=submission,
        rank=rank,
        questions_correct=sum(1 for a in submission.answers if a.is_correct is True),
        questions_total=len(submission.answers)
    )


def top_performers(submissions: Sequence[QuizSubmission], limit: int = 5) -> List[LearnerPerformance]:
    """Highest scores first, ranked from 1."""
    ranked = sorted(submissions, key=lambda s: s.score, reverse=True)[:limit]
    return [learner_performance(s, rank=i + 1) for i, s in enumerate(ranked)]


def struggling_learners(quiz: Quiz, submissions: Sequence[QuizSubmission], limit: int = 5) -> List[LearnerPerformance]:
    """Submissions under 60%, lowest score first."""
    if quiz.total_points <= 0:
        return []

    struggling = [s for s in submissions if s.percentage_score < STRUGGLING_THRESHOLD]
    struggling.sort(key=lambda s: s.score)
    return [learner_performance(s) for s in struggling[:limit]]


def needs_grading(submissions: Sequence[QuizSubmission]) -> List[QuizSubmission]:
    return [s for s in submissions if s.status == SubmissionStatus.PENDING_REVIEW]
