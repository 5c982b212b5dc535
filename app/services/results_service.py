"""
Quiz results service: educator summaries and per-quiz analytics.
"""

import asyncio
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from app.config import settings
from app.models.quiz_schemas import Quiz, QuizAnalytics, QuizResultsSummary, QuizStatus, QuizSubmission, SubmissionStatus
from app.services.analytics_service import compute_analytics
from app.services.stores import CourseTitleLookup, QuizStore, SubmissionStore

logger = logging.getLogger(__name__)

ALL_COURSES = "All Courses"


class QuizResultsService:
    """Service for reading quiz results on behalf of an educator."""

    def __init__(
        self,
        quizzes: QuizStore,
        submissions: SubmissionStore,
        courses: CourseTitleLookup,
        concurrency: Optional[int] = None
    ):
        self.quizzes = quizzes
        self.submissions = submissions
        self.courses = courses
        self.concurrency = max(1, concurrency or settings.summary_fetch_concurrency)

    async def build_summaries(self, educator_id: UUID) -> List[QuizResultsSummary]:
        """
        One summary row per published quiz that has submissions.

        Quizzes keep the store's listing order (most recently updated first).
        A quiz that fails anywhere between fetching its submissions and
        building its row is logged and left out instead of failing the list.

        Raises:
            PersistenceError: The quiz listing itself failed
        """
        quizzes = await self.quizzes.list_quizzes(educator_id, QuizStatus.PUBLISHED)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def summarize(quiz: Quiz) -> Optional[QuizResultsSummary]:
            async with semaphore:
                try:
                    submissions = await self.submissions.list_submissions(quiz.id)
                    if not submissions:
                        return None
                    course_title = await self.courses.get_course_title(quiz.course_id)
                    return summarize_quiz(quiz, submissions, course_title)
                except Exception as e:
                    logger.warning(f"Skipping quiz {quiz.id} in summaries: {e}")
                    return None

        # gather() returns results in argument order, not completion order
        results = await asyncio.gather(*(summarize(q) for q in quizzes))
        summaries = [s for s in results if s is not None]

        logger.info(f"Built {len(summaries)} quiz result summaries for educator {educator_id}")
        return summaries

    async def load_quiz_results(self, quiz_id: UUID) -> Tuple[Quiz, List[QuizSubmission]]:
        """Quiz definition plus all of its submissions (newest first)."""
        quiz = await self.quizzes.get_quiz(quiz_id)
        submissions = await self.submissions.list_submissions(quiz_id)
        return quiz, submissions

    async def get_quiz_analytics(self, quiz_id: UUID) -> QuizAnalytics:
        quiz, submissions = await self.load_quiz_results(quiz_id)
        return compute_analytics(quiz, submissions)


def summarize_quiz(quiz: Quiz, submissions: List[QuizSubmission], course_title: str) -> QuizResultsSummary:
    """Summary row for a quiz with at least one submission."""
    total = len(submissions)
    return QuizResultsSummary(
        quiz_id=quiz.id,
        quiz_title=quiz.title,
        course_title=course_title,
        total_submissions=total,
        average_score=sum(s.score for s in submissions) / total,
        total_points=quiz.total_points,
        last_submission_date=max(s.submitted_at for s in submissions),
        needs_grading=sum(1 for s in submissions if s.status == SubmissionStatus.PENDING_REVIEW)
    )


def filter_summaries(
    summaries: List[QuizResultsSummary],
    search: Optional[str] = None,
    course: Optional[str] = None
) -> List[QuizResultsSummary]:
    """Filter by case-insensitive text in quiz/course title and by exact course."""
    results = summaries

    if search:
        needle = search.casefold()
        results = [
            s for s in results
            if needle in s.quiz_title.casefold() or needle in s.course_title.casefold()
        ]

    if course and course != ALL_COURSES:
        results = [s for s in results if s.course_title == course]

    return results


def available_courses(summaries: List[QuizResultsSummary]) -> List[str]:
    """Course filter options: 'All Courses' followed by the sorted course titles."""
    return [ALL_COURSES] + sorted({s.course_title for s in summaries})
