# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Response parsing and outcome classification."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import ErrorCategory

INVALID_JSON_ERROR = "Invalid JSON response"
HTML_INSTEAD_OF_JSON_ERROR = "Received HTML instead of JSON - endpoint may not exist"
SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
UNKNOWN_ERROR_MESSAGE = "Unknown error"
_MESSAGE_FIELDS = ("error", "message", "detail")


class Outcome(str, Enum):
    SUCCESS = "SUCCESS"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    RETRYABLE = "RETRYABLE"
    FATAL = "FATAL"


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    status: int
    data: Any = None
    message: str | None = None
    category: ErrorCategory | None = None
    silent: bool = False


def parse_body(content_type: str, text: str) -> Any:
    """Decode a response body: JSON when declared, otherwise text."""
    if "json" in (content_type or "").lower():
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            return {"error": INVALID_JSON_ERROR, "raw": text}
    if text.strip().startswith("<"):
        return {"error": HTML_INSTEAD_OF_JSON_ERROR}
    return text


def _as_message(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return _as_message(value[0]) if value else None
    return str(value)


def extract_error_message(data: Any) -> str:
    """Best-effort human message from an error body."""
    if isinstance(data, str):
        return data or UNKNOWN_ERROR_MESSAGE
    if isinstance(data, Mapping):
        for name in _MESSAGE_FIELDS:
            message = _as_message(data.get(name))
            if message:
                return message
        # field-keyed validation errors: {"email": ["This field is required."]}
        for key, value in data.items():
            message = _as_message(value)
            if message:
                return f"{key}: {message}"
    return UNKNOWN_ERROR_MESSAGE


def matches_session_signature(text: str, signatures: Iterable[str]) -> bool:
    return bool(text) and any(signature and signature in text for signature in signatures)


def classify_response(
    status: int,
    data: Any,
    *,
    raw_text: str = "",
    signatures: Iterable[str] = (),
) -> Classification:
    """
    Map one HTTP response onto the client's outcome kinds.

    Expired-credential signatures are checked on every non-2xx body before the
    status code is considered, so a body naming an expired token produces a
    silent session expiry even when it arrives as a 401.
    """
    if 200 <= status < 300:
        return Classification(Outcome.SUCCESS, status, data)

    body_text = raw_text or (data if isinstance(data, str) else json.dumps(data, default=str) if data is not None else "")
    if matches_session_signature(body_text, signatures):
        return Classification(
            Outcome.SESSION_EXPIRED,
            401,
            data,
            SESSION_EXPIRED_MESSAGE,
            ErrorCategory.SESSION_EXPIRED,
            silent=True,
        )

    if status == 401:
        return Classification(Outcome.SESSION_EXPIRED, 401, data, SESSION_EXPIRED_MESSAGE, ErrorCategory.SESSION_EXPIRED)

    if status >= 500 or status == 0:
        return Classification(Outcome.RETRYABLE, status, data, extract_error_message(data), ErrorCategory.SERVER_ERROR)

    return Classification(Outcome.FATAL, status, data, extract_error_message(data), ErrorCategory.CLIENT_ERROR)


__all__ = [
    "Classification",
    "Outcome",
    "classify_response",
    "extract_error_message",
    "matches_session_signature",
    "parse_body",
]
