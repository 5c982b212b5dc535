"""
AI-generated narrative insights for quiz results.
Uses LangChain ChatOpenAI to turn analytics numbers into educator-facing text.

Insights are optional: every method returns None instead of raising, so the
statistics can always be shown without them.
"""

from datetime import datetime
from functools import lru_cache
from typing import List, Optional
from app.config import settings
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import PydanticOutputParser, StrOutputParser
from langchain_openai import ChatOpenAI
from app.models.langchain_schemas import QuizInsightsOutput
from app.models.quiz_schemas import LearnerPerformance, Quiz, QuizAnalytics, QuizInsights, QuestionAnalytics
from app.services.prompts import PromptTemplates

logger = logging.getLogger(__name__)

MAX_ITEMS_PER_SECTION = 3


def _format_question_stats(analytics: QuizAnalytics) -> str:
    return "\n".join(
        f'- Question: "{q.question_text}" | Success Rate: {q.success_rate:.0f}% | Difficulty: {q.difficulty}'
        for q in analytics.question_analytics
    ) or "- No question data"


def _clean_items(items: List[str], fallback: str) -> List[str]:
    cleaned = [item.strip() for item in items if item and item.strip()]
    return cleaned[:MAX_ITEMS_PER_SECTION] or [fallback]


class InsightsService:
    """Service for AI-powered quiz insights."""

    def __init__(self, llm: Optional[BaseChatModel] = None):
        """Initialize LangChain ChatOpenAI unless a chat model is supplied."""
        if llm is None:
            if not settings.openai_api_key:
                raise ValueError("OPENAI_API_KEY not set in environment variables")
            llm = ChatOpenAI(
                model=settings.openai_llm_model,
                temperature=settings.insights_temperature,
                api_key=settings.openai_api_key
            )
        self.llm = llm
        self.insights_parser = PydanticOutputParser(pydantic_object=QuizInsightsOutput)

    async def generate_quiz_insights(self, analytics: QuizAnalytics) -> Optional[QuizInsights]:
        """
        Summarize quiz analytics into strengths, weaknesses and recommendations.

        Args:
            analytics: Computed quiz analytics

        Returns:
            QuizInsights, or None when there is nothing to analyze or generation failed
        """
        if analytics.total_submissions == 0:
            return None

        chain = PromptTemplates.get_quiz_insights_prompt() | self.llm | self.insights_parser
        try:
            result = await chain.ainvoke({
                "quiz_title": analytics.quiz_title,
                "total_submissions": analytics.total_submissions,
                "average_percentage": f"{analytics.average_percentage:.1f}%",
                "highest_score": analytics.highest_score,
                "lowest_score": analytics.lowest_score,
                "total_points": analytics.total_points,
                "question_stats": _format_question_stats(analytics),
                "format_instructions": self.insights_parser.get_format_instructions(),
            })
        except Exception as e:
            logger.warning(f"Quiz insights unavailable for {analytics.quiz_id}: {e}")
            return None

        return QuizInsights(
            quiz_id=analytics.quiz_id,
            summary=result.summary.strip() or "Analysis complete. Review the detailed metrics above.",
            strengths=_clean_items(result.strengths, "Good overall participation"),
            areas_for_improvement=_clean_items(result.areas_for_improvement, "Continue monitoring performance"),
            recommendations=_clean_items(result.recommendations, "Keep engaging with learners"),
            generated_at=datetime.utcnow()
        )

    async def generate_question_suggestions(self, question: QuestionAnalytics) -> Optional[str]:
        """Suggest how to improve a single question."""
        wrong_answers = ", ".join(
            f'"{w.option}" (selected {w.count} times)' for w in question.common_wrong_answers
        )
        chain = PromptTemplates.get_question_suggestions_prompt() | self.llm | StrOutputParser()
        try:
            text = await chain.ainvoke({
                "question_text": question.question_text,
                "question_type": question.question_type.value,
                "success_rate": f"{question.success_rate:.0f}%",
                "difficulty": question.difficulty,
                "wrong_answers": wrong_answers or "None",
            })
        except Exception as e:
            logger.warning(f"Question suggestions unavailable for {question.question_id}: {e}")
            return None
        return text.strip() or None

    async def generate_learner_feedback(self, performance: LearnerPerformance, quiz: Quiz) -> Optional[str]:
        """Write encouraging, personalized feedback for one submission."""
        submission = performance.submission
        chain = PromptTemplates.get_learner_feedback_prompt() | self.llm | StrOutputParser()
        try:
            text = await chain.ainvoke({
                "learner_name": performance.learner_name,
                "quiz_title": quiz.title,
                "score": submission.score,
                "total_points": submission.total_points,
                "percentage": f"{submission.percentage_score:.0f}%",
                "questions_correct": performance.questions_correct,
                "questions_total": performance.questions_total,
            })
        except Exception as e:
            logger.warning(f"Learner feedback unavailable for {submission.id}: {e}")
            return None
        return text.strip() or None


@lru_cache(maxsize=1)
def get_insights_service() -> Optional[InsightsService]:
    """Shared insights service, or None when insights are disabled."""
    if not settings.insights_enabled or not settings.openai_api_key:
        logger.info("AI insights disabled (no OPENAI_API_KEY or INSIGHTS_ENABLED=false)")
        return None
    return InsightsService()
