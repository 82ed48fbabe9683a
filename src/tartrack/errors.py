# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import asyncio
import socket
import ssl as ssl_module
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class TarTrackError(Exception):
    """Base class for errors raised inside the client layer."""

    category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR


class ValidationError(TarTrackError, ValueError):
    """Local input failed its declared rules."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class RateLimitExceeded(TarTrackError):
    category = ErrorCategory.RATE_LIMITED

    def __init__(self, endpoint: str, limit: int, retry_after: float = 0.0):
        super().__init__("Rate limit exceeded. Please try again later.")
        self.endpoint = endpoint
        self.limit = limit
        self.retry_after = retry_after


class SessionExpiredError(TarTrackError):
    """Raised by token providers when the refresh credential is no longer valid."""

    category = ErrorCategory.SESSION_EXPIRED


# Substrings of transport errors that are worth another attempt.
TRANSIENT_ERROR_SIGNATURES = (
    "Network request failed",
    "ECONNRESET",
    "ENOTFOUND",
    "ETIMEDOUT",
    "ConnectionTerminated",
    "Connection closed",
    "Connection reset",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
    "Server disconnected",
)


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, TarTrackError):
        return exc.category

    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.TransportError, httpx.NetworkError)):
        return ErrorCategory.NETWORK_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.NETWORK_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror, ConnectionError)):
        return ErrorCategory.NETWORK_ERROR

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ErrorCategory.TIMEOUT

    return ErrorCategory.UNKNOWN_ERROR


def is_transient_exception(exc: BaseException) -> bool:
    """True when another attempt has a reasonable chance of succeeding."""
    if isinstance(exc, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(exc, (httpx.ConnectError, httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, (socket.gaierror, ConnectionResetError, ConnectionAbortedError)):
        return True
    message = str(exc)
    return any(signature in message for signature in TRANSIENT_ERROR_SIGNATURES)


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.VALIDATION: "Please check your information and try again.",
        ErrorCategory.RATE_LIMITED: "Too many requests. Please try again later.",
        ErrorCategory.TIMEOUT: "Request timed out. Please try again.",
        ErrorCategory.SESSION_EXPIRED: "Session expired. Please log in again.",
        ErrorCategory.SERVER_ERROR: "Server error. Please try again later.",
        ErrorCategory.NETWORK_ERROR: "Connection problem. Please check your internet.",
        ErrorCategory.CLIENT_ERROR: "Please check your input and try again.",
        ErrorCategory.CIRCUIT_OPEN: "Service temporarily unavailable. Please try again later.",
        ErrorCategory.UNKNOWN_ERROR: "An error occurred. Please try again.",
        None: "",
    }
    return mapping.get(category, "An error occurred. Please try again.")


_SAFE_MESSAGES = (
    ("rate limit exceeded", ErrorCategory.RATE_LIMITED),
    ("invalid input", ErrorCategory.CLIENT_ERROR),
    ("validation failed", ErrorCategory.VALIDATION),
    ("network error", ErrorCategory.NETWORK_ERROR),
    ("timeout", ErrorCategory.TIMEOUT),
)


def safe_error_message(message: str | None) -> str:
    """Map an internal error message onto generic text that leaks nothing."""
    lowered = (message or "").lower()
    for needle, category in _SAFE_MESSAGES:
        if needle in lowered:
            return error_category_to_reason(category)
    return error_category_to_reason(ErrorCategory.UNKNOWN_ERROR)


__all__ = [
    "ErrorCategory",
    "RateLimitExceeded",
    "SessionExpiredError",
    "TRANSIENT_ERROR_SIGNATURES",
    "TarTrackError",
    "ValidationError",
    "categorize_exception",
    "error_category_to_reason",
    "is_transient_exception",
    "safe_error_message",
]
