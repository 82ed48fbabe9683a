# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""String sanitization for untrusted form and payload values."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_FLAGS = re.IGNORECASE | re.DOTALL

DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<script[^>]*>.*?</script>", _FLAGS),
    re.compile(r"<iframe[^>]*>.*?</iframe>", _FLAGS),
    re.compile(r"javascript:", _FLAGS),
    re.compile(r"on\w+\s*=", _FLAGS),
    re.compile(r"eval\s*\(", _FLAGS),
    re.compile(r"document\.", _FLAGS),
    re.compile(r"window\.", _FLAGS),
)

_HTML_TAG_RE = re.compile(r"<[^>]*>")

_HTML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#x27;", "'"),
    ("&amp;", "&"),
)


def _sanitize_once(value: str) -> str:
    sanitized = value.strip()
    for pattern in DANGEROUS_PATTERNS:
        sanitized = pattern.sub("", sanitized)
    sanitized = _HTML_TAG_RE.sub("", sanitized)
    for entity, char in _HTML_ENTITIES:
        sanitized = sanitized.replace(entity, char)
    return sanitized.strip()


def sanitize_string(value: Any) -> str:
    """
    Strip markup and script vectors from a value and decode common entities.

    Each pass only ever shortens the string, so repeating until nothing changes
    terminates, and the stable result passes through a second call untouched.
    Entity-encoded markup (``&lt;script&gt;``) is decoded and then stripped on
    the following pass.
    """
    current = value if isinstance(value, str) else str(value)
    while True:
        cleaned = _sanitize_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned


def sanitize_payload(value: Any) -> Any:
    """Recursively sanitize every string inside a JSON-like structure."""
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, Mapping):
        return {key: sanitize_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_payload(item) for item in value]
    return value


__all__ = ["DANGEROUS_PATTERNS", "sanitize_payload", "sanitize_string"]
