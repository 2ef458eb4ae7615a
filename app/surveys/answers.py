from __future__ import annotations

import json
import secrets
import string
import time
from uuid import UUID

from app.surveys.types import SurveyAnswerInput

_SESSION_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def encode_answer(answer: SurveyAnswerInput) -> dict[str, object] | None:
    """Stored JSON shape of one answer.

    Text that parses as a JSON array (multi-select and ranked answers) is kept as
    ``{"array": [...]}``; any other text as ``{"text": ...}``. Numbers and booleans
    are wrapped the same way. An empty answer is stored as null.
    """
    if answer.answer_text is not None:
        try:
            parsed = json.loads(answer.answer_text)
        except ValueError:
            return {"text": answer.answer_text}
        if isinstance(parsed, list):
            return {"array": parsed}
        return {"text": answer.answer_text}

    if answer.answer_number is not None:
        return {"number": answer.answer_number}

    if answer.answer_boolean is not None:
        return {"boolean": answer.answer_boolean}

    return None


def build_session_id(
    *,
    offer_id: UUID | None,
    email: str | None,
    now_ms: int | None = None,
) -> str:
    if offer_id is not None and email:
        return f"{offer_id}-{email}"
    timestamp_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SESSION_SUFFIX_ALPHABET) for _ in range(7))
    return f"session-{timestamp_ms}-{suffix}"
