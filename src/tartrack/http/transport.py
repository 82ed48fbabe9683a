# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport protocol and the httpx-backed implementation."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

import httpx

from ..config import ClientSettings, load_client_settings
from .headers import header_value
from .models import Headers, MultipartBody


@dataclass
class HttpRequest:
    """A fully prepared attempt: absolute URL, final headers, encoded body."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: Any = None
    timeout: float | None = None


@dataclass
class HttpResponse:
    """Normalized transport result; ``ok`` is False only when no response arrived."""

    ok: bool
    status_code: int | None = None
    headers: Headers = field(default_factory=dict)
    text: str = ""
    url: str | None = None
    error_message: str | None = None
    error_type: str | None = None
    exception: BaseException | None = field(default=None, repr=False)

    @property
    def content_type(self) -> str:
        return header_value(self.headers, "content-type")


class HttpTransport(Protocol):
    async def send(self, request: HttpRequest) -> HttpResponse: ...

    async def aclose(self) -> None:  # pragma: no cover - optional for fakes
        ...


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_body(body: Any) -> dict[str, Any]:
    """httpx keyword arguments carrying ``body``."""
    if body is None:
        return {}
    if isinstance(body, MultipartBody):
        return {"data": body.fields or None, "files": body.files or None}
    if isinstance(body, (bytes, bytearray, memoryview)):
        return {"content": bytes(body)}
    if isinstance(body, str):
        return {"content": body.encode("utf-8")}
    return {"content": json.dumps(body, default=_json_default).encode("utf-8")}


class HttpxTransport(HttpTransport):
    """Async httpx client wrapper; one attempt per ``send``."""

    def __init__(self, settings: ClientSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_client_settings()
        self._client = client or httpx.AsyncClient(
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    async def send(self, request: HttpRequest) -> HttpResponse:
        timeout = request.timeout if request.timeout is not None else self.settings.timeout
        try:
            # httpx timeouts are per phase; wait_for bounds the whole attempt
            resp = await asyncio.wait_for(
                self._client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    timeout=timeout,
                    **encode_body(request.body),
                ),
                timeout,
            )
            return HttpResponse(
                ok=True,
                status_code=resp.status_code,
                headers=dict(resp.headers),
                text=resp.text,
                url=str(resp.url),
            )
        except Exception as exc:  # noqa: BLE001
            return HttpResponse(
                ok=False,
                error_message=str(exc) or type(exc).__name__,
                error_type=type(exc).__name__,
                exception=exc,
            )

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["HttpRequest", "HttpResponse", "HttpTransport", "HttpxTransport", "encode_body"]
