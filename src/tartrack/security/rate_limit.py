# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-endpoint fixed-window request counter."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from ..errors import RateLimitExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    requests: int
    window: float  # seconds


DEFAULT_POLICY = RateLimitPolicy(requests=60, window=60.0)
AUTH_POLICY = RateLimitPolicy(requests=10, window=300.0)
BOOKING_POLICY = RateLimitPolicy(requests=20, window=60.0)
PAYMENT_POLICY = RateLimitPolicy(requests=5, window=300.0)

_POLICY_KEYWORDS: tuple[tuple[tuple[str, ...], RateLimitPolicy], ...] = (
    (("/auth/", "/login", "/register", "/password"), AUTH_POLICY),
    (("/payment", "/payout", "/wallet"), PAYMENT_POLICY),
    (("booking",), BOOKING_POLICY),
)


def policy_for(endpoint: str) -> RateLimitPolicy:
    """Pick the preset matching an endpoint path; falls back to the default policy."""
    path = (endpoint or "").lower()
    for keywords, policy in _POLICY_KEYWORDS:
        if any(keyword in path for keyword in keywords):
            return policy
    return DEFAULT_POLICY


@dataclass
class RateLimitBucket:
    count: int
    reset_time: float


class RateLimiter:
    """
    Counts requests per endpoint inside a window that resets wholesale once it expires.

    Buckets are created lazily and reset lazily on the first check after
    ``reset_time``. A check that finds the bucket full raises
    ``RateLimitExceeded`` without touching the count.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, *, bypass: bool = False):
        self._clock = clock
        self._buckets: dict[str, RateLimitBucket] = {}
        self._lock = threading.Lock()
        self.bypass = bypass

    def check(self, endpoint: str, limit: int = DEFAULT_POLICY.requests, window: float = DEFAULT_POLICY.window) -> bool:
        if self.bypass:
            return True

        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(endpoint)
            if bucket is None:
                bucket = RateLimitBucket(count=0, reset_time=now + window)
                self._buckets[endpoint] = bucket

            if now > bucket.reset_time:
                bucket.count = 0
                bucket.reset_time = now + window

            if bucket.count >= limit:
                retry_after = max(0.0, bucket.reset_time - now)
                logger.debug("Rate limit hit for %s (%d/%d), resets in %.1fs", endpoint, bucket.count, limit, retry_after)
                raise RateLimitExceeded(endpoint, limit, retry_after)

            bucket.count += 1
            return True

    def check_policy(self, endpoint: str, policy: RateLimitPolicy | None = None) -> bool:
        policy = policy or policy_for(endpoint)
        return self.check(endpoint, policy.requests, policy.window)

    def bucket(self, endpoint: str) -> RateLimitBucket | None:
        """Snapshot of the bucket for ``endpoint``, if one exists."""
        with self._lock:
            bucket = self._buckets.get(endpoint)
            return replace(bucket) if bucket is not None else None

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


__all__ = [
    "AUTH_POLICY",
    "BOOKING_POLICY",
    "DEFAULT_POLICY",
    "PAYMENT_POLICY",
    "RateLimitBucket",
    "RateLimitPolicy",
    "RateLimiter",
    "policy_for",
]
