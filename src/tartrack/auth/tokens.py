# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Bearer credential providers consumed by the request client."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, Union

from ..errors import SessionExpiredError

logger = logging.getLogger(__name__)

SessionExpiredCallback = Callable[[], Union[None, Awaitable[None]]]


class TokenProvider(Protocol):
    """Supplies the bearer credential; the client only asks it to refresh or clear."""

    async def refresh_if_needed(self) -> None: ...

    async def get_access_token(self) -> str | None: ...

    async def clear_local_session(self) -> None: ...


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str | None = None
    expires_in: float | None = None  # seconds from issue


Refresher = Callable[[str], Awaitable[TokenPair]]


class InMemoryTokenProvider(TokenProvider):
    """
    Process-local session store.

    When a ``refresher`` is configured, ``refresh_if_needed`` exchanges the
    refresh token for a new pair shortly before expiry. Concurrent callers wait
    on one refresh instead of each issuing their own.
    """

    def __init__(
        self,
        access_token: str | None = None,
        refresh_token: str | None = None,
        *,
        expires_at: float | None = None,
        refresher: Refresher | None = None,
        refresh_skew: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._expires_at = expires_at
        self._refresher = refresher
        self._refresh_skew = refresh_skew
        self._clock = clock
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    @property
    def has_session(self) -> bool:
        return self._access_token is not None

    def set_session(self, pair: TokenPair) -> None:
        self._access_token = pair.access_token
        if pair.refresh_token is not None:
            self._refresh_token = pair.refresh_token
        self._expires_at = self._clock() + pair.expires_in if pair.expires_in is not None else None

    def _needs_refresh(self) -> bool:
        if self._access_token is None or self._expires_at is None:
            return False
        return self._clock() >= self._expires_at - self._refresh_skew

    async def refresh_if_needed(self) -> None:
        if self._refresher is None or not self._needs_refresh():
            return
        async with self._lock:
            # another task may have refreshed while we waited
            if not self._needs_refresh():
                return
            if not self._refresh_token:
                raise SessionExpiredError("No refresh token available")
            logger.debug("Access token near expiry, refreshing")
            pair = await self._refresher(self._refresh_token)
            self.set_session(pair)
            self.refresh_count += 1

    async def get_access_token(self) -> str | None:
        return self._access_token

    async def clear_local_session(self) -> None:
        self._access_token = None
        self._refresh_token = None
        self._expires_at = None


__all__ = [
    "InMemoryTokenProvider",
    "Refresher",
    "SessionExpiredCallback",
    "TokenPair",
    "TokenProvider",
]
