# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request/result data models used by the API client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from ..config import ClientSettings
from ..errors import ErrorCategory

Headers = dict[str, str]
Method = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


@dataclass
class MultipartBody:
    """Form fields plus files for uploads; the transport picks the boundary."""

    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)


@dataclass
class ApiRequest:
    """One logical call as described by feature code."""

    endpoint: str
    method: Method = "GET"
    headers: Headers | None = None
    body: Any = None
    timeout: float | None = None
    retries: int | None = None
    skip_auth: bool = False

    @property
    def is_binary(self) -> bool:
        return isinstance(self.body, (bytes, bytearray, memoryview, MultipartBody))

    @property
    def is_structured(self) -> bool:
        return isinstance(self.body, (Mapping, list, tuple))


@dataclass(frozen=True)
class Success:
    data: Any
    status: int

    ok: Literal[True] = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    error: str
    status: int
    category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR
    session_expired: bool = False
    silent: bool = False
    data: Any = None

    ok: Literal[False] = field(default=False, init=False)


ApiResult = Union[Success, Failure]


@dataclass(frozen=True)
class Attempt:
    """Position of one send inside a call's retry budget."""

    number: int
    total: int
    base_delay: float
    max_delay: float | None = None

    @property
    def is_last(self) -> bool:
        return self.number >= self.total

    @property
    def delay(self) -> float:
        """Linear backoff before the next attempt."""
        delay = self.base_delay * self.number
        if self.max_delay is not None and self.max_delay > 0:
            delay = min(delay, self.max_delay)
        return delay

    def next(self) -> Attempt:
        return Attempt(self.number + 1, self.total, self.base_delay, self.max_delay)


@dataclass
class RetryConfig:
    """Retry policy derived from ClientSettings."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float | None = None

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> RetryConfig:
        return cls(
            max_attempts=max(1, settings.max_retries),
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )

    def first_attempt(self, retries: int | None = None) -> Attempt:
        total = self.max_attempts if retries is None else max(1, retries)
        return Attempt(1, total, self.base_delay, self.max_delay)


__all__ = [
    "ApiRequest",
    "ApiResult",
    "Attempt",
    "Failure",
    "Headers",
    "METHODS",
    "Method",
    "MultipartBody",
    "RetryConfig",
    "Success",
]
