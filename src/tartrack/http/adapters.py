# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process transports for tests and offline development."""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

from .transport import HttpRequest, HttpResponse, HttpTransport


def json_response(status: int, payload: Any) -> HttpResponse:
    return HttpResponse(
        ok=True,
        status_code=status,
        headers={"content-type": "application/json"},
        text=json.dumps(payload),
    )


def transport_error(exc: BaseException) -> HttpResponse:
    return HttpResponse(ok=False, error_message=str(exc), error_type=type(exc).__name__, exception=exc)


class StubTransport(HttpTransport):
    """
    Deterministic, programmable transport.

    Responses are queued per ``(METHOD, path)``; the last queued response for a
    route repeats once the queue drains. Every prepared request is recorded.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], deque[HttpResponse]] = {}
        self.requests: list[HttpRequest] = []
        self.closed = False

    def add(self, method: str, path: str, *responses: HttpResponse) -> None:
        self._routes.setdefault((method.upper(), path), deque()).extend(responses)

    def add_sequence(self, method: str, path: str, responses: Iterable[HttpResponse]) -> None:
        self.add(method, path, *responses)

    def calls_to(self, path: str) -> list[HttpRequest]:
        return [request for request in self.requests if urlsplit(request.url).path.endswith(path)]

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        path = urlsplit(request.url).path
        for (method, route), queue in self._routes.items():
            if method == request.method.upper() and path.endswith(route) and queue:
                return queue.popleft() if len(queue) > 1 else queue[0]
        return HttpResponse(ok=False, error_message="No stubbed response configured", error_type="LookupError")

    async def aclose(self) -> None:
        self.closed = True


__all__ = ["StubTransport", "json_response", "transport_error"]
