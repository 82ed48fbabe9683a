# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .adapters import StubTransport, json_response, transport_error
from .breaker import CircuitBreaker
from .classify import Classification, Outcome, classify_response, extract_error_message, parse_body
from .client import DEFAULT_BODY_VALIDATORS, ApiClient, create_api_client
from .headers import SECURITY_HEADERS, build_request_headers, header_value, merge_headers
from .models import ApiRequest, ApiResult, Attempt, Failure, Headers, MultipartBody, RetryConfig, Success
from .transport import HttpRequest, HttpResponse, HttpTransport, HttpxTransport

__all__ = [
    "DEFAULT_BODY_VALIDATORS",
    "SECURITY_HEADERS",
    "ApiClient",
    "ApiRequest",
    "ApiResult",
    "Attempt",
    "CircuitBreaker",
    "Classification",
    "Failure",
    "Headers",
    "HttpRequest",
    "HttpResponse",
    "HttpTransport",
    "HttpxTransport",
    "MultipartBody",
    "Outcome",
    "RetryConfig",
    "StubTransport",
    "Success",
    "build_request_headers",
    "classify_response",
    "create_api_client",
    "extract_error_message",
    "header_value",
    "json_response",
    "merge_headers",
    "parse_body",
    "transport_error",
]
