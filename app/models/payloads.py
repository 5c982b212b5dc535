"""
JSON payload normalization for loosely typed columns.

The backend stores `answers` (submissions) and `questions` (quizzes) as JSONB.
Depending on the client that wrote the row they come back either as a real
JSON array or as a JSON-encoded string. Both shapes are normalized to a list
at load time so nothing downstream has to care.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StructuredPayload:
    """Payload that already arrived as a JSON array."""
    items: List[Any]


@dataclass(frozen=True)
class RawTextPayload:
    """Payload that arrived as a JSON-encoded text blob."""
    text: str


JsonListPayload = Union[StructuredPayload, RawTextPayload]


def classify_payload(value: Any) -> JsonListPayload:
    """Tag a raw column value with the shape it arrived in."""
    if isinstance(value, str):
        return RawTextPayload(value)
    if value is None:
        return StructuredPayload([])
    if isinstance(value, (list, tuple)):
        return StructuredPayload(list(value))
    raise TypeError(f"Unsupported JSON list payload: {type(value).__name__}")


def normalize_payload(value: Any) -> List[Any]:
    """
    Normalize a JSON list column to a Python list.

    Unreadable text blobs become an empty list; the row is still usable
    for everything that doesn't depend on the list contents.
    """
    payload = classify_payload(value)

    if isinstance(payload, StructuredPayload):
        return payload.items

    if not payload.text.strip():
        return []
    try:
        decoded = json.loads(payload.text)
    except json.JSONDecodeError as e:
        logger.warning(f"Discarding unreadable JSON payload: {e}")
        return []

    if not isinstance(decoded, list):
        logger.warning(f"Discarding JSON payload that is not a list: {type(decoded).__name__}")
        return []
    return decoded
