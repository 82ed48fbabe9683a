# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
TarTrack client package.

The request layer shared by every TarTrack feature module: input validation
and sanitization, per-endpoint rate limiting, bearer-token handling, and an
async HTTP client with retry, timeout and classified failures. Transport is
abstracted behind an injectable protocol and results are typed dataclasses.
"""

from .auth import InMemoryTokenProvider, TokenPair, TokenProvider
from .config import ClientSettings, load_client_settings
from .errors import ErrorCategory, RateLimitExceeded, SessionExpiredError, ValidationError
from .http import (
    ApiClient,
    ApiRequest,
    ApiResult,
    Failure,
    HttpxTransport,
    MultipartBody,
    RetryConfig,
    Success,
    create_api_client,
)
from .log import setup_logging
from .security import RateLimiter, sanitize_string, validate
from .version import __version__

__all__ = [
    "ApiClient",
    "ApiRequest",
    "ApiResult",
    "ClientSettings",
    "ErrorCategory",
    "Failure",
    "HttpxTransport",
    "InMemoryTokenProvider",
    "MultipartBody",
    "RateLimitExceeded",
    "RateLimiter",
    "RetryConfig",
    "SessionExpiredError",
    "Success",
    "TokenPair",
    "TokenProvider",
    "ValidationError",
    "__version__",
    "create_api_client",
    "load_client_settings",
    "sanitize_string",
    "setup_logging",
    "validate",
]
