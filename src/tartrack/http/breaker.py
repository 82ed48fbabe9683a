# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Consecutive-failure circuit breaker shared by all calls of one client."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any


class CircuitBreaker:
    """Opens after ``threshold`` consecutive failures and closes again ``reset_timeout`` seconds later."""

    def __init__(self, threshold: int = 5, reset_timeout: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.threshold = threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self.failures = 0
        self.last_failure_time: float | None = None

    @property
    def enabled(self) -> bool:
        return self.threshold > 0

    def is_open(self) -> bool:
        if not self.enabled or self.failures < self.threshold:
            return False
        if self.last_failure_time is not None and self._clock() - self.last_failure_time > self.reset_timeout:
            self.reset()
            return False
        return True

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self._clock()

    def record_success(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.failures = 0
        self.last_failure_time = None

    def get_state(self) -> dict[str, Any]:
        return {
            "open": self.is_open(),
            "failures": self.failures,
            "threshold": self.threshold,
            "reset_timeout": self.reset_timeout,
        }


__all__ = ["CircuitBreaker"]
