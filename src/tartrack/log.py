# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for TarTrack."""

from __future__ import annotations

import logging
import os

# httpx logs every request line (including query strings) at INFO.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def default_log_level(production: bool = False) -> str:
    """Level from TARTRACK_LOG_LEVEL, else DEBUG in development and WARNING in production."""
    configured = os.getenv("TARTRACK_LOG_LEVEL")
    if configured:
        return configured.strip().upper()
    return "WARNING" if production else "DEBUG"


def setup_logging(level: str | None = None, *, production: bool = False) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = (level or default_log_level(production)).upper()
    numeric_level = getattr(logging, effective_level, logging.WARNING)
    logging.basicConfig(
        level=numeric_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


__all__ = ["default_log_level", "setup_logging"]
