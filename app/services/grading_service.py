"""
Manual grading of descriptive answers.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from app.models.quiz_schemas import QuizSubmission, SubmissionStatus
from app.services.exceptions import NotFoundError
from app.services.stores import SubmissionStore

logger = logging.getLogger(__name__)


def apply_grade(
    submission: QuizSubmission,
    question_id: UUID,
    points: int,
    feedback: Optional[str],
    now: Optional[datetime] = None
) -> QuizSubmission:
    """
    Return a copy of `submission` with one answer graded.

    The answer gets the points and feedback, and counts as correct when any
    points were awarded. Score is recomputed from all answers. The
    submission becomes graded once no answer is left ungraded; graded_at is
    set at that moment and never cleared afterwards.

    Raises:
        NotFoundError: The submission has no answer for `question_id`
    """
    graded = submission.model_copy(deep=True)

    answer = graded.answer_for(question_id)
    if answer is None:
        raise NotFoundError("Answer not found in submission")

    answer.points_earned = points
    answer.feedback = feedback
    answer.is_correct = points > 0

    graded.score = sum(a.points_earned for a in graded.answers)

    if all(a.is_correct is not None for a in graded.answers):
        graded.status = SubmissionStatus.GRADED
        graded.graded_at = now or datetime.utcnow()
    else:
        graded.status = SubmissionStatus.PENDING_REVIEW

    return graded


class GradingService:
    """Service for educator grading of submitted answers."""

    def __init__(self, submissions: SubmissionStore):
        self.submissions = submissions

    async def grade_descriptive_answer(
        self,
        submission_id: UUID,
        question_id: UUID,
        points: int,
        feedback: Optional[str] = None
    ) -> QuizSubmission:
        """
        Grade one answer and persist the recomputed submission.

        Args:
            submission_id: Submission to grade
            question_id: Question whose answer is graded
            points: Points awarded (0 marks the answer incorrect)
            feedback: Optional feedback for the learner

        Returns:
            The updated submission

        Raises:
            NotFoundError: Submission or answer does not exist
            StaleSubmissionError: Submission changed since it was read
            PersistenceError: The store rejected the write
        """
        submission = await self.submissions.get_submission(submission_id)
        graded = apply_grade(submission, question_id, points, feedback)

        await self.submissions.update_submission(
            submission_id,
            answers=graded.answers,
            score=graded.score,
            status=graded.status,
            graded_at=graded.graded_at if graded.status == SubmissionStatus.GRADED else None,
            expected_version=submission.version
        )
        graded.version = submission.version + 1

        logger.info(
            f"Graded question {question_id} on submission {submission_id}: "
            f"{points} pts, score={graded.score}, status={graded.status.value}"
        )
        return graded
