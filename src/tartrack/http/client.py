# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Resilient request client.

Every call walks the same sequence: rate-limit check, circuit-breaker check,
then per attempt auth preparation, body validation (first attempt only), send,
and classification. Server errors, timeouts and transient network failures are
retried with linear backoff; everything else is terminal. Failures come back as
``Failure`` values, never as exceptions.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from ..auth.tokens import InMemoryTokenProvider, SessionExpiredCallback, TokenProvider
from ..config import ClientSettings, load_client_settings
from ..errors import (
    ErrorCategory,
    RateLimitExceeded,
    SessionExpiredError,
    ValidationError,
    categorize_exception,
    error_category_to_reason,
    is_transient_exception,
)
from ..security.dedupe import RequestDeduplicator
from ..security.rate_limit import RateLimiter, RateLimitPolicy, policy_for
from ..security.sanitize import sanitize_payload
from ..security.validation import form_validator, validate_booking_data, validate_user_data
from .breaker import CircuitBreaker
from .classify import SESSION_EXPIRED_MESSAGE, Classification, Outcome, classify_response, parse_body
from .headers import build_request_headers
from .models import METHODS, ApiRequest, ApiResult, Attempt, Failure, MultipartBody, RetryConfig, Success
from .transport import HttpRequest, HttpResponse, HttpTransport, HttpxTransport

logger = logging.getLogger(__name__)

BodyValidator = Callable[[Mapping[str, Any]], Any]
TIMEOUT_MESSAGE = "Request timeout"
CANCELLED_MESSAGE = "Request cancelled"


def _merged(validator: Callable[[Mapping[str, Any]], dict[str, Any]]) -> BodyValidator:
    """Validate the fields a validator knows about and sanitize the rest."""

    def _validate(body: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(sanitize_payload(body))
        merged.update(validator(body))
        return merged

    return _validate


def _dedupe_key(endpoint: str, options: Mapping[str, Any]) -> str:
    """Key for sharing a GET: callers only join requests sent with the same credentials and headers."""
    headers = options.get("headers") or {}
    parts = [f"GET {endpoint}", "anonymous" if options.get("skip_auth") else "auth"]
    if headers:
        parts.append(repr(sorted((str(key).lower(), str(value)) for key, value in headers.items())))
    return " ".join(parts)


DEFAULT_BODY_VALIDATORS: tuple[tuple[re.Pattern[str], BodyValidator], ...] = (
    (re.compile(r"^/auth/login/?$"), form_validator("LOGIN")),
    (re.compile(r"^/auth/register/?$"), form_validator("REGISTER")),
    (re.compile(r"^/auth/profile/update/?$"), _merged(validate_user_data)),
    (re.compile(r"^/auth/change-password/?$"), form_validator("CHANGE_PASSWORD")),
    (re.compile(r"^/bookings/?$"), _merged(validate_booking_data)),
)


class ApiClient:
    """
    Async client for the TarTrack REST API.

    One instance owns the process-wide mutable state: rate-limit buckets, the
    circuit breaker and in-flight de-duplication. Construct it once and pass it
    to feature code; ``clear_security_data`` resets that state (logout, tests).
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        token_provider: TokenProvider | None = None,
        transport: HttpTransport | None = None,
        rate_limiter: RateLimiter | None = None,
        retry_config: RetryConfig | None = None,
        body_validators: Sequence[tuple[re.Pattern[str], BodyValidator]] | None = None,
        rate_limit_policy: Callable[[str], RateLimitPolicy] = policy_for,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or load_client_settings()
        self.token_provider: TokenProvider = token_provider or InMemoryTokenProvider()
        self.transport: HttpTransport = transport or HttpxTransport(self.settings)
        self.rate_limiter = rate_limiter or RateLimiter(bypass=self.settings.bypass_rate_limit)
        self.retry_config = retry_config or RetryConfig.from_settings(self.settings)
        self.body_validators = tuple(DEFAULT_BODY_VALIDATORS if body_validators is None else body_validators)
        self.rate_limit_policy = rate_limit_policy
        self.breaker = CircuitBreaker(self.settings.circuit_breaker_threshold, self.settings.circuit_breaker_reset)
        self.deduplicator = RequestDeduplicator()
        self._sleep = sleep
        self._session_expired_callback: SessionExpiredCallback | None = None

    def set_session_expired_callback(self, callback: SessionExpiredCallback | None) -> None:
        self._session_expired_callback = callback

    def clear_security_data(self) -> None:
        self.rate_limiter.reset()
        self.deduplicator.clear()
        self.breaker.reset()

    async def request(self, request: ApiRequest) -> ApiResult:
        try:
            return await self._execute(request)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure during %s %s", request.method, request.endpoint)
            return Failure(
                error=self._describe(exc, ErrorCategory.UNKNOWN_ERROR),
                status=0,
                category=ErrorCategory.UNKNOWN_ERROR,
            )

    async def _execute(self, request: ApiRequest) -> ApiResult:
        method = str(request.method).upper()
        if method not in METHODS:
            return Failure(f"Unsupported HTTP method: {method}", 400, ErrorCategory.VALIDATION)

        try:
            self.rate_limiter.check_policy(request.endpoint, self.rate_limit_policy(request.endpoint))
        except RateLimitExceeded as exc:
            logger.warning("Rate limit exceeded for %s", request.endpoint)
            return Failure(str(exc), 429, ErrorCategory.RATE_LIMITED)

        if self.breaker.is_open():
            logger.warning("Circuit open, refusing %s %s", method, request.endpoint)
            return Failure(error_category_to_reason(ErrorCategory.CIRCUIT_OPEN), 503, ErrorCategory.CIRCUIT_OPEN)

        url = self._url_for(request.endpoint)
        timeout = self._timeout_for(request)
        attempt = self.retry_config.first_attempt(request.retries)
        validated = False
        body: Any = None

        while True:
            logger.debug("%s %s (attempt %d/%d)", method, request.endpoint, attempt.number, attempt.total)
            try:
                token = await self._prepare_auth(request)
            except SessionExpiredError:
                return await self._expire_session(
                    Classification(Outcome.SESSION_EXPIRED, 401, None, SESSION_EXPIRED_MESSAGE, ErrorCategory.SESSION_EXPIRED)
                )
            except Exception as exc:  # noqa: BLE001
                # a refresh that failed in transit is retried like a failed send
                response = HttpResponse(ok=False, error_message=str(exc), error_type=type(exc).__name__, exception=exc)
            else:
                if not validated:
                    try:
                        body = self._validate_body(request)
                    except (ValueError, TypeError, KeyError) as exc:
                        logger.info("Rejected %s %s body: %s", method, request.endpoint, exc)
                        message = str(exc) if isinstance(exc, ValidationError) else self._describe(
                            exc, ErrorCategory.VALIDATION
                        )
                        return Failure(message, 400, ErrorCategory.VALIDATION)
                    validated = True

                headers = build_request_headers(
                    request.headers,
                    token=token,
                    multipart=isinstance(body, MultipartBody),
                    user_agent=self.settings.user_agent,
                )
                response = await self.transport.send(
                    HttpRequest(url=url, method=method, headers=headers, body=body, timeout=timeout)
                )

            if response.ok and response.status_code is not None:
                data = parse_body(response.content_type, response.text)
                classification = classify_response(
                    response.status_code,
                    data,
                    raw_text=response.text,
                    signatures=self.settings.session_expired_signatures,
                )
                if classification.outcome is Outcome.SUCCESS:
                    self.breaker.record_success()
                    return Success(data=data, status=response.status_code)
                if classification.outcome is Outcome.SESSION_EXPIRED:
                    return await self._expire_session(classification)
                failure = self._http_failure(classification)
                retryable = classification.outcome is Outcome.RETRYABLE
            else:
                failure, retryable = self._transport_failure(response)

            if retryable and not attempt.is_last:
                logger.info(
                    "%s %s failed (%s), retrying attempt %d in %.1fs",
                    method,
                    request.endpoint,
                    failure.status or failure.category.value,
                    attempt.number + 1,
                    attempt.delay,
                )
                await self._sleep(attempt.delay)
                attempt = attempt.next()
                continue

            if retryable:
                self.breaker.record_failure()
                logger.warning(
                    "%s %s failed after %d attempt(s): %s", method, request.endpoint, attempt.number, failure.error
                )
            else:
                logger.info("%s %s failed with HTTP %s: %s", method, request.endpoint, failure.status, failure.error)
            return failure

    async def _prepare_auth(self, request: ApiRequest) -> str | None:
        if request.skip_auth:
            return None
        await self.token_provider.refresh_if_needed()
        token = await self.token_provider.get_access_token()
        logger.debug("Auth token: %s", "present" if token else "none")
        return token

    def _validate_body(self, request: ApiRequest) -> Any:
        body = request.body
        if not request.is_structured:
            return body
        if isinstance(body, Mapping):
            for pattern, validator in self.body_validators:
                if pattern.search(request.endpoint):
                    return validator(body)
        return sanitize_payload(body)

    def _http_failure(self, classification: Classification) -> Failure:
        message = classification.message or error_category_to_reason(classification.category)
        if classification.outcome is Outcome.RETRYABLE and not self.settings.detailed_errors:
            message = error_category_to_reason(ErrorCategory.SERVER_ERROR)
        return Failure(
            error=message,
            status=classification.status,
            category=classification.category or ErrorCategory.UNKNOWN_ERROR,
            data=classification.data,
        )

    def _transport_failure(self, response: HttpResponse) -> tuple[Failure, bool]:
        exc = response.exception
        if exc is None:
            category = ErrorCategory.NETWORK_ERROR
            transient = True
        else:
            category = categorize_exception(exc)
            transient = is_transient_exception(exc)
        if category is ErrorCategory.TIMEOUT:
            return Failure(TIMEOUT_MESSAGE, 0, ErrorCategory.TIMEOUT), True
        if transient:
            category = ErrorCategory.NETWORK_ERROR
        message = response.error_message or "Network error"
        if not self.settings.detailed_errors:
            message = error_category_to_reason(category)
        return Failure(message, 0, category), transient

    def _describe(self, exc: BaseException, category: ErrorCategory) -> str:
        if self.settings.detailed_errors:
            return str(exc) or type(exc).__name__
        return error_category_to_reason(category)

    async def _expire_session(self, classification: Classification) -> Failure:
        if not classification.silent:
            logger.warning("Session expired (HTTP %s) - clearing local session", classification.status)
        await self.token_provider.clear_local_session()
        callback = self._session_expired_callback
        if callback is not None:
            result = callback()
            if inspect.isawaitable(result):
                await result
        return Failure(
            error=SESSION_EXPIRED_MESSAGE,
            status=401,
            category=ErrorCategory.SESSION_EXPIRED,
            session_expired=True,
            silent=classification.silent,
            data=classification.data,
        )

    def _url_for(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        path = endpoint if endpoint.startswith("/") else "/" + endpoint
        return self.settings.base_url.rstrip("/") + path

    def _timeout_for(self, request: ApiRequest) -> float:
        if request.timeout is not None:
            return request.timeout
        if request.is_binary:
            return self.settings.upload_timeout
        if request.endpoint.startswith("/auth/"):
            return self.settings.auth_timeout
        return self.settings.timeout

    async def get(self, endpoint: str, *, dedupe: bool = False, **options: Any) -> ApiResult:
        if not dedupe:
            return await self.request(ApiRequest(endpoint, "GET", **options))
        try:
            return await self.deduplicator.run(
                _dedupe_key(endpoint, options),
                lambda: self.request(ApiRequest(endpoint, "GET", **options)),
                timeout=None,
            )
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # the shared request was dropped by clear_security_data() or aclose()
            logger.info("Shared GET %s was cancelled", endpoint)
            message = CANCELLED_MESSAGE if self.settings.detailed_errors else error_category_to_reason(
                ErrorCategory.UNKNOWN_ERROR
            )
            return Failure(message, 0, ErrorCategory.UNKNOWN_ERROR)
        except asyncio.TimeoutError:
            return Failure(TIMEOUT_MESSAGE, 0, ErrorCategory.TIMEOUT)

    async def post(self, endpoint: str, data: Any = None, **options: Any) -> ApiResult:
        return await self.request(ApiRequest(endpoint, "POST", body=data, **options))

    async def put(self, endpoint: str, data: Any = None, **options: Any) -> ApiResult:
        return await self.request(ApiRequest(endpoint, "PUT", body=data, **options))

    async def patch(self, endpoint: str, data: Any = None, **options: Any) -> ApiResult:
        return await self.request(ApiRequest(endpoint, "PATCH", body=data, **options))

    async def delete(self, endpoint: str, **options: Any) -> ApiResult:
        return await self.request(ApiRequest(endpoint, "DELETE", **options))

    async def upload(
        self,
        endpoint: str,
        *,
        fields: Mapping[str, str] | None = None,
        files: Mapping[str, Any] | None = None,
        method: str = "POST",
        **options: Any,
    ) -> ApiResult:
        body = MultipartBody(fields=dict(fields or {}), files=dict(files or {}))
        return await self.request(ApiRequest(endpoint, method.upper(), body=body, **options))  # type: ignore[arg-type]

    async def aclose(self) -> None:
        self.deduplicator.clear()
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()


def create_api_client(
    settings: ClientSettings | None = None,
    *,
    token_provider: TokenProvider | None = None,
) -> ApiClient:
    """Factory for the default httpx-backed client."""
    settings = settings or load_client_settings()
    return ApiClient(settings, token_provider=token_provider, transport=HttpxTransport(settings))


__all__ = ["ApiClient", "BodyValidator", "DEFAULT_BODY_VALIDATORS", "create_api_client"]
