# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import logging
import socket

import httpx

from tartrack.config import DEFAULT_SESSION_EXPIRED_SIGNATURES, ClientSettings, load_client_settings
from tartrack.errors import (
    ErrorCategory,
    RateLimitExceeded,
    ValidationError,
    categorize_exception,
    error_category_to_reason,
    is_transient_exception,
    safe_error_message,
)
from tartrack.log import default_log_level, setup_logging


def test_client_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("TARTRACK_API_URL", "https://api.tartrack.ph/api/")
    monkeypatch.setenv("TARTRACK_ENV", "production")
    monkeypatch.setenv("TARTRACK_HTTP_TIMEOUT", "5.5")
    monkeypatch.setenv("TARTRACK_UPLOAD_TIMEOUT", "90")
    monkeypatch.setenv("TARTRACK_AUTH_TIMEOUT", "3")
    monkeypatch.setenv("TARTRACK_HTTP_RETRIES", "0")
    monkeypatch.setenv("TARTRACK_RETRY_BASE_DELAY", "0.25")
    monkeypatch.setenv("TARTRACK_BYPASS_RATE_LIMIT", "true")
    monkeypatch.setenv("TARTRACK_SESSION_EXPIRED_SIGNATURES", "token_not_valid, JWT expired")
    monkeypatch.setenv("TARTRACK_CIRCUIT_BREAKER_THRESHOLD", "0")
    monkeypatch.setenv("TARTRACK_USER_AGENT", "CustomAgent/1.0")
    monkeypatch.setenv("TARTRACK_VERIFY_SSL", "0")
    monkeypatch.delenv("TARTRACK_RETRY_MAX_DELAY", raising=False)

    settings = load_client_settings()

    assert settings.base_url == "https://api.tartrack.ph/api"
    assert settings.is_production is True
    assert settings.detailed_errors is False
    assert settings.timeout == 5.5
    assert settings.upload_timeout == 90.0
    assert settings.auth_timeout == 3.0
    assert settings.max_retries == 0  # retry config clamps later
    assert settings.retry_base_delay == 0.25
    assert settings.retry_max_delay is None
    assert settings.bypass_rate_limit is True
    assert settings.session_expired_signatures == ("token_not_valid", "JWT expired")
    assert settings.circuit_breaker_threshold == 0
    assert settings.user_agent == "CustomAgent/1.0"
    assert settings.verify_ssl is False


def test_client_settings_invalid_env_fall_back(monkeypatch):
    monkeypatch.setenv("TARTRACK_HTTP_TIMEOUT", "not-a-number")
    monkeypatch.setenv("TARTRACK_HTTP_RETRIES", "ten")
    monkeypatch.setenv("TARTRACK_SESSION_EXPIRED_SIGNATURES", " , ")
    monkeypatch.setenv("TARTRACK_API_URL", "   ")
    monkeypatch.delenv("TARTRACK_ENV", raising=False)

    settings = ClientSettings.from_env()

    assert settings.timeout == 8.0
    assert settings.max_retries == 3
    assert settings.session_expired_signatures == DEFAULT_SESSION_EXPIRED_SIGNATURES
    assert settings.base_url == "http://localhost:8000/api"
    assert settings.detailed_errors is True


def test_default_timeouts():
    settings = ClientSettings()
    assert settings.auth_timeout < settings.timeout < settings.upload_timeout


def test_categorize_exception():
    request = httpx.Request("GET", "http://api.test/")
    assert categorize_exception(httpx.ReadTimeout("slow", request=request)) is ErrorCategory.TIMEOUT
    assert categorize_exception(asyncio.TimeoutError()) is ErrorCategory.TIMEOUT
    assert categorize_exception(httpx.ConnectError("refused", request=request)) is ErrorCategory.NETWORK_ERROR
    assert categorize_exception(socket.gaierror("nodename")) is ErrorCategory.NETWORK_ERROR
    assert categorize_exception(ConnectionResetError()) is ErrorCategory.NETWORK_ERROR
    assert categorize_exception(ValidationError("bad", "Email")) is ErrorCategory.VALIDATION
    assert categorize_exception(RateLimitExceeded("/x/", 1)) is ErrorCategory.RATE_LIMITED
    assert categorize_exception(KeyError("x")) is ErrorCategory.UNKNOWN_ERROR


def test_is_transient_exception():
    assert is_transient_exception(httpx.ConnectError("refused"))
    assert is_transient_exception(httpx.RemoteProtocolError("Server disconnected without sending a response."))
    assert is_transient_exception(TimeoutError())
    assert is_transient_exception(RuntimeError("read ECONNRESET"))
    assert is_transient_exception(OSError("Temporary failure in name resolution"))
    assert not is_transient_exception(ValueError("bad header value"))
    assert not is_transient_exception(KeyError("missing"))


def test_reasons_and_safe_messages():
    assert error_category_to_reason(ErrorCategory.SERVER_ERROR) == "Server error. Please try again later."
    assert error_category_to_reason(None) == ""
    assert safe_error_message("Rate limit exceeded for /auth/login/") == "Too many requests. Please try again later."
    assert safe_error_message("Timeout after 8000ms") == "Request timed out. Please try again."
    assert safe_error_message("IntegrityError: duplicate key users_email") == "An error occurred. Please try again."
    assert safe_error_message(None) == "An error occurred. Please try again."


def test_validation_error_is_value_error():
    err = ValidationError("Invalid email format", "Email")
    assert isinstance(err, ValueError)
    assert err.field == "Email"
    assert str(err) == "Invalid email format"


def test_default_log_level(monkeypatch):
    monkeypatch.delenv("TARTRACK_LOG_LEVEL", raising=False)
    assert default_log_level() == "DEBUG"
    assert default_log_level(production=True) == "WARNING"
    monkeypatch.setenv("TARTRACK_LOG_LEVEL", " info ")
    assert default_log_level(production=True) == "INFO"


def test_setup_logging_quiets_transport_loggers():
    setup_logging("DEBUG")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
    setup_logging("ERROR")
    assert logging.getLogger("httpx").level == logging.ERROR


def test_retry_max_delay_is_opt_in(monkeypatch):
    monkeypatch.setenv("TARTRACK_RETRY_MAX_DELAY", "12")
    assert load_client_settings().retry_max_delay == 12.0
    monkeypatch.setenv("TARTRACK_RETRY_MAX_DELAY", "0")
    assert load_client_settings().retry_max_delay is None
    monkeypatch.setenv("TARTRACK_RETRY_MAX_DELAY", "soon")
    assert load_client_settings().retry_max_delay is None
