"""
API routes for quiz results, analytics and manual grading.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.config import settings
from app.db.database import get_db
from app.models.quiz_schemas import *
from app.services import analytics_service
from app.services.exceptions import NotFoundError, PersistenceError, StaleSubmissionError
from app.services.grading_service import GradingService
from app.services.insights_service import InsightsService, get_insights_service
from app.services.rest_store import create_rest_client, rest_stores
from app.services.results_service import QuizResultsService, available_courses, filter_summaries
from app.services.stores import StoreBundle, sql_stores
from typing import List, Optional
from uuid import UUID
import logging

router = APIRouter(prefix="/results", tags=["results"])
logger = logging.getLogger(__name__)


async def get_stores(db: Session = Depends(get_db)):
    """Dependency to get the configured store backend for one request."""
    if settings.store_backend == "rest":
        try:
            client = create_rest_client()
        except ValueError as e:
            raise _unexpected("connecting to the results backend", e)
        async with client:
            yield rest_stores(client)
    else:
        yield sql_stores(db)


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error while {action}: {str(e)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"An unexpected error occurred while {action}. Please try again."
    )


@router.get("/educator/{educator_id}/summaries", response_model=List[QuizResultsSummary])
async def get_quiz_summaries(
    educator_id: UUID,
    search: Optional[str] = Query(None, max_length=200, description="Match quiz or course title"),
    course: Optional[str] = Query(None, description="Exact course title, or 'All Courses'"),
    stores: StoreBundle = Depends(get_stores)
):
    """
    Results overview for an educator's published quizzes.

    - One row per quiz that has at least one submission
    - Ordered by quiz last update, most recent first
    - Optional text search and course filter
    """
    try:
        service = QuizResultsService(stores.quizzes, stores.submissions, stores.courses)
        summaries = await service.build_summaries(educator_id)
        return filter_summaries(summaries, search=search, course=course)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("loading quiz results", e)


@router.get("/educator/{educator_id}/courses", response_model=List[str])
async def get_summary_courses(
    educator_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """Course filter options for the results overview."""
    try:
        service = QuizResultsService(stores.quizzes, stores.submissions, stores.courses)
        return available_courses(await service.build_summaries(educator_id))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("loading course filters", e)


async def _load_quiz_results(quiz_id: UUID, stores: StoreBundle):
    service = QuizResultsService(stores.quizzes, stores.submissions, stores.courses)
    try:
        return await service.load_quiz_results(quiz_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("loading quiz results", e)


@router.get("/quiz/{quiz_id}/analytics", response_model=QuizAnalytics)
async def get_quiz_analytics(
    quiz_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """
    Get analytics for a specific quiz.

    - Average, highest and lowest score
    - Average time taken
    - Per-question success rate, difficulty and common wrong answers
    """
    quiz, submissions = await _load_quiz_results(quiz_id, stores)
    return analytics_service.compute_analytics(quiz, submissions)


@router.get("/quiz/{quiz_id}/submissions", response_model=List[QuizSubmission])
async def get_quiz_submissions(
    quiz_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """All submissions for a quiz, newest first."""
    _, submissions = await _load_quiz_results(quiz_id, stores)
    return submissions


@router.get("/quiz/{quiz_id}/distribution", response_model=List[ScoreDistributionBucket])
async def get_score_distribution(
    quiz_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """Number of submissions per percentage band."""
    quiz, submissions = await _load_quiz_results(quiz_id, stores)
    return analytics_service.score_distribution(quiz, submissions)


@router.get("/quiz/{quiz_id}/top-performers", response_model=List[LearnerPerformance])
async def get_top_performers(
    quiz_id: UUID,
    limit: int = Query(5, ge=1, le=50),
    stores: StoreBundle = Depends(get_stores)
):
    """Highest scoring learners, ranked."""
    _, submissions = await _load_quiz_results(quiz_id, stores)
    return analytics_service.top_performers(submissions, limit=limit)


@router.get("/quiz/{quiz_id}/struggling", response_model=List[LearnerPerformance])
async def get_struggling_learners(
    quiz_id: UUID,
    limit: int = Query(5, ge=1, le=50),
    stores: StoreBundle = Depends(get_stores)
):
    """Learners below 60%, lowest score first."""
    quiz, submissions = await _load_quiz_results(quiz_id, stores)
    return analytics_service.struggling_learners(quiz, submissions, limit=limit)


@router.get("/quiz/{quiz_id}/needs-grading", response_model=List[QuizSubmission])
async def get_needs_grading(
    quiz_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """Submissions waiting for manual grading."""
    _, submissions = await _load_quiz_results(quiz_id, stores)
    return analytics_service.needs_grading(submissions)


@router.get("/quiz/{quiz_id}/insights", response_model=Optional[QuizInsights])
async def get_quiz_insights(
    quiz_id: UUID,
    stores: StoreBundle = Depends(get_stores),
    insights: Optional[InsightsService] = Depends(get_insights_service)
):
    """
    AI-generated summary of the quiz analytics.

    Returns null when insights are disabled, there are no submissions,
    or generation failed. The analytics endpoint is unaffected.
    """
    quiz, submissions = await _load_quiz_results(quiz_id, stores)
    if insights is None:
        return None
    return await insights.generate_quiz_insights(analytics_service.compute_analytics(quiz, submissions))


@router.get("/quiz/{quiz_id}/questions/{question_id}/suggestions", response_model=QuestionSuggestionsResponse)
async def get_question_suggestions(
    quiz_id: UUID,
    question_id: UUID,
    stores: StoreBundle = Depends(get_stores),
    insights: Optional[InsightsService] = Depends(get_insights_service)
):
    """AI suggestions for improving one question, based on how learners answered it."""
    quiz, submissions = await _load_quiz_results(quiz_id, stores)
    question = quiz.question_by_id(question_id)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    suggestions = None
    if insights is not None:
        question_analytics = analytics_service.compute_question_analytics(question, submissions)
        suggestions = await insights.generate_question_suggestions(question_analytics)
    return QuestionSuggestionsResponse(question_id=question_id, suggestions=suggestions)


@router.get("/learner/{learner_id}/submissions", response_model=List[QuizSubmission])
async def get_learner_submissions(
    learner_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """All quiz submissions by one learner, newest first."""
    try:
        return await stores.submissions.list_submissions_by_learner(learner_id)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("loading learner submissions", e)


@router.get("/submission/{submission_id}", response_model=QuizSubmission)
async def get_submission(
    submission_id: UUID,
    stores: StoreBundle = Depends(get_stores)
):
    """A single submission with all of its answers."""
    try:
        return await stores.submissions.get_submission(submission_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("loading the submission", e)


@router.post("/submission/{submission_id}/grade", response_model=QuizSubmission)
async def grade_answer(
    submission_id: UUID,
    request: GradeAnswerRequest,
    stores: StoreBundle = Depends(get_stores)
):
    """
    Manually grade one answer of a submission.

    - Awarding any points marks the answer correct, 0 marks it incorrect
    - Score is recomputed from all answers
    - Submission becomes graded once every answer is graded

    **Error Responses:**
    - 404: Submission or answer not found
    - 409: Submission was changed by someone else; reload and retry
    - 500: The update could not be saved
    """
    try:
        service = GradingService(stores.submissions)
        return await service.grade_descriptive_answer(
            submission_id,
            request.question_id,
            request.points,
            request.feedback
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StaleSubmissionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("grading the answer", e)


@router.get("/submission/{submission_id}/feedback", response_model=LearnerFeedbackResponse)
async def get_learner_feedback(
    submission_id: UUID,
    stores: StoreBundle = Depends(get_stores),
    insights: Optional[InsightsService] = Depends(get_insights_service)
):
    """AI-written personalized feedback for the learner of a submission."""
    try:
        submission = await stores.submissions.get_submission(submission_id)
        quiz = await stores.quizzes.get_quiz(submission.quiz_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        raise _unexpected("loading the submission", e)

    feedback = None
    if insights is not None:
        feedback = await insights.generate_learner_feedback(analytics_service.learner_performance(submission), quiz)
    return LearnerFeedbackResponse(submission_id=submission_id, feedback=feedback)
