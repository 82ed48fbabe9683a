# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Outgoing header assembly and case-insensitive header lookups.

HTTP header field names are case-insensitive (RFC 9110), while feature code
passes plain dicts. Defaults are merged so that a caller-supplied header wins
regardless of the casing it was written in.
"""

from __future__ import annotations

from collections.abc import Mapping

SECURITY_HEADERS: dict[str, str] = {
    "X-Requested-With": "XMLHttpRequest",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "X-Content-Type-Options": "nosniff",
}

JSON_CONTENT_TYPE = "application/json"


def merge_headers(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header mappings left to right; later layers replace earlier ones case-insensitively."""
    merged: dict[str, str] = {}
    names: dict[str, str] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if key is None:
                continue
            lower = str(key).lower()
            previous = names.get(lower)
            if previous is not None:
                merged.pop(previous, None)
            names[lower] = str(key)
            merged[str(key)] = "" if value is None else str(value)
    return merged


def build_request_headers(
    extra: Mapping[str, str] | None = None,
    *,
    token: str | None = None,
    multipart: bool = False,
    user_agent: str | None = None,
) -> dict[str, str]:
    """
    Headers for one attempt.

    ``Content-Type`` is left out for multipart uploads so the transport can set
    the boundary itself.
    """
    defaults: dict[str, str] = {}
    if not multipart:
        defaults["Content-Type"] = JSON_CONTENT_TYPE
    defaults["Accept"] = JSON_CONTENT_TYPE
    defaults.update(SECURITY_HEADERS)
    if user_agent:
        defaults["User-Agent"] = user_agent

    auth = {"Authorization": f"Bearer {token}"} if token else None
    headers = merge_headers(defaults, extra, auth)
    if multipart:
        for key in [key for key in headers if key.lower() == "content-type"]:
            del headers[key]
    return headers


def header_value(headers: Mapping[str, str] | None, name: str, default: str = "") -> str:
    """Return a header value using case-insensitive key matching."""
    if not headers or not name:
        return default
    lower = name.lower()
    for key, value in headers.items():
        if key is not None and str(key).lower() == lower:
            return default if value is None else str(value).strip()
    return default


__all__ = ["SECURITY_HEADERS", "build_request_headers", "header_value", "merge_headers"]
