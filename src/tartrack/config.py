# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for the TarTrack API client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .version import __version__

DEFAULT_API_URL = "http://localhost:8000/api"
DEFAULT_USER_AGENT = f"TarTrack/{__version__} (+https://tartrack.ph; mobile API client)"
DEFAULT_SESSION_EXPIRED_SIGNATURES = ("JWT expired", "PGRST301")
PRODUCTION_ENVS = {"prod", "production"}


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _optional_float_env(name: str, default: float | None) -> float | None:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        parsed = float(value)
        return parsed if parsed > 0 else None
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass
class ClientSettings:
    """Request client defaults."""

    base_url: str = DEFAULT_API_URL
    environment: str = "development"
    timeout: float = 8.0
    upload_timeout: float = 60.0
    auth_timeout: float = 5.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float | None = None  # None disables the cap
    bypass_rate_limit: bool = False
    session_expired_signatures: tuple[str, ...] = field(default=DEFAULT_SESSION_EXPIRED_SIGNATURES)
    circuit_breaker_threshold: int = 5
    circuit_breaker_reset: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    verify_ssl: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_ENVS

    @property
    def detailed_errors(self) -> bool:
        """Verbose error text is only surfaced outside production."""
        return not self.is_production

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Create settings from environment variables (evaluated at call time)."""
        base_url = os.getenv("TARTRACK_API_URL", cls.base_url).strip() or cls.base_url
        return cls(
            base_url=base_url.rstrip("/"),
            environment=os.getenv("TARTRACK_ENV", cls.environment),
            timeout=_float_env("TARTRACK_HTTP_TIMEOUT", cls.timeout),
            upload_timeout=_float_env("TARTRACK_UPLOAD_TIMEOUT", cls.upload_timeout),
            auth_timeout=_float_env("TARTRACK_AUTH_TIMEOUT", cls.auth_timeout),
            max_retries=_int_env("TARTRACK_HTTP_RETRIES", cls.max_retries),
            retry_base_delay=_float_env("TARTRACK_RETRY_BASE_DELAY", cls.retry_base_delay),
            retry_max_delay=_optional_float_env("TARTRACK_RETRY_MAX_DELAY", cls.retry_max_delay),
            bypass_rate_limit=_bool_env("TARTRACK_BYPASS_RATE_LIMIT", cls.bypass_rate_limit),
            session_expired_signatures=_list_env(
                "TARTRACK_SESSION_EXPIRED_SIGNATURES", DEFAULT_SESSION_EXPIRED_SIGNATURES
            ),
            circuit_breaker_threshold=_int_env("TARTRACK_CIRCUIT_BREAKER_THRESHOLD", cls.circuit_breaker_threshold),
            circuit_breaker_reset=_float_env("TARTRACK_CIRCUIT_BREAKER_RESET", cls.circuit_breaker_reset),
            user_agent=os.getenv("TARTRACK_USER_AGENT", cls.user_agent),
            verify_ssl=_bool_env("TARTRACK_VERIFY_SSL", cls.verify_ssl),
        )


def load_client_settings() -> ClientSettings:
    """Load client settings from environment with sensible defaults."""
    return ClientSettings.from_env()
