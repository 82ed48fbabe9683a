# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Share one in-flight request between concurrent callers asking for the same thing."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class RequestDeduplicator:
    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future[Any]] = {}

    def __len__(self) -> int:
        return len(self._in_flight)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]], timeout: float = 5.0) -> T:
        """
        Await ``factory()`` once per key; later callers with the same key join the pending result.

        The entry is dropped as soon as the shared task settles, so the next call
        after completion issues a fresh request. ``asyncio.TimeoutError`` is
        raised to every waiter once ``timeout`` elapses.
        """
        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(asyncio.wait_for(factory(), timeout))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda _fut, key=key: self._forget(key, _fut))
        return await asyncio.shield(pending)

    def _forget(self, key: str, future: asyncio.Future[Any]) -> None:
        if self._in_flight.get(key) is future:
            del self._in_flight[key]
        if not future.cancelled():
            # mark retrieved so an unobserved failure does not warn at shutdown
            future.exception()

    def clear(self) -> None:
        for future in self._in_flight.values():
            future.cancel()
        self._in_flight.clear()


__all__ = ["RequestDeduplicator"]
