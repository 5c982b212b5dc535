"""
PostgREST (Supabase) implementations of the store interfaces.

Used when `settings.store_backend == "rest"`. Rows are read from the same
tables the mobile client writes to: `quizzes`, `quiz_submissions` and
`courses`.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

import httpx
from pydantic import ValidationError

from app.config import settings
from app.models.quiz_schemas import Quiz, QuizAnswer, QuizStatus, QuizSubmission, SubmissionStatus
from app.services.exceptions import DegradedLookupError, NotFoundError, PersistenceError, StaleSubmissionError
from app.services.stores import StoreBundle, dump_answers

logger = logging.getLogger(__name__)


def validate_rest_settings():
    """Raise ValueError unless the PostgREST credentials are configured."""
    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the rest store backend")


def create_rest_client() -> httpx.AsyncClient:
    """HTTP client pointed at the PostgREST root with service credentials."""
    validate_rest_settings()

    return httpx.AsyncClient(
        base_url=settings.supabase_url.rstrip("/") + "/rest/v1",
        headers={
            "apikey": settings.supabase_key,
            "Authorization": f"Bearer {settings.supabase_key}",
            "Content-Type": "application/json",
        },
        timeout=settings.rest_timeout_seconds,
    )


async def _select(client: httpx.AsyncClient, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
    try:
        r = await client.get(f"/{table}", params=params)
        r.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Query on {table} failed: {e}")
        raise PersistenceError(f"Failed to fetch {table}: {e}") from e

    data = r.json()
    return data if isinstance(data, list) else []


class RestSubmissionStore:
    """Submission store over the `quiz_submissions` REST resource."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def _load_all(self, rows: List[Dict[str, Any]]) -> List[QuizSubmission]:
        submissions = []
        for row in rows:
            try:
                submissions.append(QuizSubmission.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable submission {row.get('id')}: {e}")
        return submissions

    async def list_submissions(self, quiz_id: UUID) -> List[QuizSubmission]:
        rows = await _select(self.client, "quiz_submissions", {
            "select": "*",
            "quiz_id": f"eq.{quiz_id}",
            "order": "submitted_at.desc",
        })
        return self._load_all(rows)

    async def list_submissions_by_learner(self, learner_id: UUID) -> List[QuizSubmission]:
        rows = await _select(self.client, "quiz_submissions", {
            "select": "*",
            "learner_id": f"eq.{learner_id}",
            "order": "submitted_at.desc",
        })
        return self._load_all(rows)

    async def get_submission(self, submission_id: UUID) -> QuizSubmission:
        rows = await _select(self.client, "quiz_submissions", {
            "select": "*",
            "id": f"eq.{submission_id}",
        })
        if not rows:
            raise NotFoundError("Submission not found")
        return QuizSubmission.model_validate(rows[0])

    async def update_submission(
        self,
        submission_id: UUID,
        answers: List[QuizAnswer],
        score: int,
        status: SubmissionStatus,
        graded_at: Optional[datetime],
        expected_version: int
    ) -> None:
        """PATCH the row, conditional on its version column."""
        body: Dict[str, Any] = {
            "answers": dump_answers(answers),
            "score": score,
            "status": status.value,
            "version": expected_version + 1,
        }
        if graded_at is not None:
            body["graded_at"] = graded_at.isoformat()

        try:
            r = await self.client.patch(
                "/quiz_submissions",
                params={"id": f"eq.{submission_id}", "version": f"eq.{expected_version}"},
                json=body,
                headers={"Prefer": "return=representation"},
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to update submission {submission_id}: {e}")
            raise PersistenceError(f"Failed to grade answer: {e}") from e

        if not r.json():
            raise StaleSubmissionError(
                "Submission was modified by another grader. Reload it and try again."
            )


class RestQuizStore:
    """Quiz store over the `quizzes` REST resource."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def list_quizzes(self, educator_id: UUID, status: Optional[QuizStatus] = QuizStatus.PUBLISHED) -> List[Quiz]:
        params = {
            "select": "*",
            "educator_id": f"eq.{educator_id}",
            "order": "updated_at.desc",
        }
        if status is not None:
            params["status"] = f"eq.{status.value}"

        quizzes = []
        for row in await _select(self.client, "quizzes", params):
            try:
                quizzes.append(Quiz.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable quiz {row.get('id')}: {e}")
        return quizzes

    async def get_quiz(self, quiz_id: UUID) -> Quiz:
        rows = await _select(self.client, "quizzes", {"select": "*", "id": f"eq.{quiz_id}"})
        if not rows:
            raise NotFoundError("Quiz not found")
        return Quiz.model_validate(rows[0])


class RestCourseTitleLookup:
    """Course title lookup over the `courses` REST resource."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _fetch_title(self, course_id: UUID) -> str:
        try:
            r = await self.client.get("/courses", params={"select": "title", "id": f"eq.{course_id}"})
            r.raise_for_status()
            rows = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DegradedLookupError(str(e)) from e
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            raise DegradedLookupError(f"Course {course_id} not found")
        title = rows[0].get("title")
        if not isinstance(title, str) or not title.strip():
            raise DegradedLookupError(f"Course {course_id} has no title")
        return title

    async def get_course_title(self, course_id: UUID) -> str:
        try:
            return await self._fetch_title(course_id)
        except DegradedLookupError as e:
            logger.warning(f"Course title lookup failed: {e}")
            return settings.unknown_course_title


def rest_stores(client: httpx.AsyncClient) -> StoreBundle:
    return StoreBundle(
        quizzes=RestQuizStore(client),
        submissions=RestSubmissionStore(client),
        courses=RestCourseTitleLookup(client)
    )
