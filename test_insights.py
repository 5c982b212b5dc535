"""Tests for AI insights using a scripted chat model."""

import asyncio
import json

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from app.config import settings
from app.services.analytics_service import compute_analytics, learner_performance
from app.services.insights_service import InsightsService, get_insights_service
from conftest import make_answer, make_question, make_quiz, make_submission


@pytest.fixture
def quiz_results():
    question = make_question(points=2, correct=[1], text="Which layer routes packets?")
    quiz = make_quiz([question], title="Networking Basics")
    submissions = [
        make_submission(quiz, answers=[make_answer(question, selected=[1], is_correct=True, points=2)], learner_name="Ada"),
        make_submission(quiz, answers=[make_answer(question, selected=[0], is_correct=False)]),
    ]
    return quiz, submissions


def _service(*responses):
    return InsightsService(llm=FakeListChatModel(responses=list(responses)))


class TestQuizInsights:
    def test_parsed_and_trimmed(self, quiz_results):
        quiz, submissions = quiz_results
        reply = json.dumps({
            "summary": "  Half the class mastered routing.  ",
            "strengths": ["Strong on layer 3", "Fast completion", "Good attempts", "Extra item"],
            "areas_for_improvement": ["Confusion with the data link layer"],
            "recommendations": ["", "  "],
        })

        insights = asyncio.run(_service(reply).generate_quiz_insights(compute_analytics(quiz, submissions)))

        assert insights.quiz_id == quiz.id
        assert insights.summary == "Half the class mastered routing."
        assert insights.strengths == ["Strong on layer 3", "Fast completion", "Good attempts"]
        assert insights.areas_for_improvement == ["Confusion with the data link layer"]
        assert insights.recommendations == ["Keep engaging with learners"]

    def test_no_submissions_skips_the_model(self, quiz_results):
        quiz, _ = quiz_results
        service = _service()
        assert asyncio.run(service.generate_quiz_insights(compute_analytics(quiz, []))) is None

    def test_unparseable_reply_returns_none(self, quiz_results):
        quiz, submissions = quiz_results
        service = _service("I think the quiz went fine.")
        assert asyncio.run(service.generate_quiz_insights(compute_analytics(quiz, submissions))) is None


class TestTextInsights:
    def test_question_suggestions(self, quiz_results):
        quiz, submissions = quiz_results
        analytics = compute_analytics(quiz, submissions)

        text = asyncio.run(_service(" Clarify the distractors. ").generate_question_suggestions(
            analytics.question_analytics[0]
        ))

        assert text == "Clarify the distractors."

    def test_learner_feedback(self, quiz_results):
        quiz, submissions = quiz_results

        text = asyncio.run(_service("Well done, Ada!").generate_learner_feedback(
            learner_performance(submissions[0]), quiz
        ))

        assert text == "Well done, Ada!"

    def test_blank_reply_is_none(self, quiz_results):
        quiz, submissions = quiz_results
        text = asyncio.run(_service("   ").generate_learner_feedback(learner_performance(submissions[1]), quiz))
        assert text is None


class TestInsightsServiceFactory:
    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "insights_enabled", False)
        get_insights_service.cache_clear()
        try:
            assert get_insights_service() is None
        finally:
            get_insights_service.cache_clear()

    def test_requires_api_key_without_model(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)
        with pytest.raises(ValueError):
            InsightsService()
