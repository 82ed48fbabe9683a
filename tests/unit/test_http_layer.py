# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import json
from datetime import datetime

import httpx
import pytest

from tartrack.config import ClientSettings
from tartrack.errors import ErrorCategory
from tartrack.http.classify import (
    HTML_INSTEAD_OF_JSON_ERROR,
    INVALID_JSON_ERROR,
    Outcome,
    classify_response,
    extract_error_message,
    parse_body,
)
from tartrack.http.headers import build_request_headers, header_value, merge_headers
from tartrack.http.models import ApiRequest, Attempt, Failure, MultipartBody, RetryConfig, Success
from tartrack.http.transport import HttpRequest, HttpxTransport, encode_body

SIGNATURES = ("JWT expired", "PGRST301")


def test_parse_body_variants():
    assert parse_body("application/json; charset=utf-8", '{"id": 1}') == {"id": 1}
    assert parse_body("application/json", "") is None
    assert parse_body("application/json", "{oops") == {"error": INVALID_JSON_ERROR, "raw": "{oops"}
    assert parse_body("text/html", "<!DOCTYPE html><html></html>") == {"error": HTML_INSTEAD_OF_JSON_ERROR}
    assert parse_body("text/plain", "pong") == "pong"


def test_extract_error_message_prefers_known_fields():
    assert extract_error_message({"error": "Booking already accepted", "detail": "x"}) == "Booking already accepted"
    assert extract_error_message({"message": "Package full"}) == "Package full"
    assert extract_error_message({"detail": "Not found."}) == "Not found."
    assert extract_error_message({"email": ["This field is required."]}) == "email: This field is required."
    assert extract_error_message("plain failure") == "plain failure"
    assert extract_error_message({}) == "Unknown error"
    assert extract_error_message(None) == "Unknown error"


def test_classify_success_and_client_error():
    assert classify_response(200, {"ok": 1}, signatures=SIGNATURES).outcome is Outcome.SUCCESS
    assert classify_response(204, None, signatures=SIGNATURES).outcome is Outcome.SUCCESS

    result = classify_response(404, {"detail": "Not found."}, signatures=SIGNATURES)
    assert result.outcome is Outcome.FATAL
    assert result.status == 404
    assert result.message == "Not found."
    assert result.category is ErrorCategory.CLIENT_ERROR


def test_classify_session_expiry_by_status_and_body():
    explicit = classify_response(401, {"detail": "Authentication credentials were not provided."}, signatures=SIGNATURES)
    assert explicit.outcome is Outcome.SESSION_EXPIRED
    assert explicit.silent is False

    raw = '{"code": "PGRST301", "message": "JWT expired"}'
    inferred = classify_response(400, json.loads(raw), raw_text=raw, signatures=SIGNATURES)
    assert inferred.outcome is Outcome.SESSION_EXPIRED
    assert inferred.silent is True
    assert inferred.status == 401

    on_401 = classify_response(401, "JWT expired", signatures=SIGNATURES)
    assert on_401.silent is True


def test_classify_signatures_are_pluggable():
    raw = '{"error": "token_not_valid"}'
    assert classify_response(403, json.loads(raw), raw_text=raw, signatures=SIGNATURES).outcome is Outcome.FATAL
    custom = classify_response(403, json.loads(raw), raw_text=raw, signatures=("token_not_valid",))
    assert custom.outcome is Outcome.SESSION_EXPIRED
    assert custom.silent is True


def test_classify_success_body_never_expires_session():
    assert classify_response(200, {"text": "JWT expired"}, signatures=SIGNATURES).outcome is Outcome.SUCCESS


def test_classify_server_errors_are_retryable():
    for status in (500, 502, 503, 0):
        result = classify_response(status, {"error": "boom"}, signatures=SIGNATURES)
        assert result.outcome is Outcome.RETRYABLE
        assert result.category is ErrorCategory.SERVER_ERROR


def test_build_request_headers_defaults():
    headers = build_request_headers(token="abc", user_agent="UA/1.0")
    assert headers["Content-Type"] == "application/json"
    assert headers["Authorization"] == "Bearer abc"
    assert headers["X-Requested-With"] == "XMLHttpRequest"
    assert headers["Cache-Control"] == "no-cache"
    assert headers["Pragma"] == "no-cache"
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["User-Agent"] == "UA/1.0"


def test_build_request_headers_caller_override_and_multipart():
    headers = build_request_headers({"content-type": "text/csv", "X-Trace": "1"})
    assert [key for key in headers if key.lower() == "content-type"] == ["content-type"]
    assert headers["content-type"] == "text/csv"
    assert "Authorization" not in headers

    upload = build_request_headers({"Content-Type": "multipart/form-data"}, token="t", multipart=True)
    assert header_value(upload, "content-type") == ""
    assert upload["Authorization"] == "Bearer t"


def test_merge_headers_and_header_value():
    merged = merge_headers({"Accept": "a"}, None, {"ACCEPT": "b"})
    assert merged == {"ACCEPT": "b"}
    assert header_value(merged, "accept") == "b"
    assert header_value(None, "accept", "fallback") == "fallback"


def _delays(first: Attempt) -> list[float]:
    delays = []
    attempt = first
    while not attempt.is_last:
        delays.append(attempt.delay)
        attempt = attempt.next()
    return delays


def test_attempt_backoff_is_linear_by_default():
    first = RetryConfig(max_attempts=15, base_delay=1.0).first_attempt()
    assert _delays(first) == [float(n) for n in range(1, 15)]
    assert first.number == 1  # attempts are immutable
    assert Attempt(2, 3, 0.5).delay == 1.0
    assert RetryConfig.from_settings(ClientSettings()).max_delay is None


def test_attempt_backoff_cap_is_opt_in():
    first = RetryConfig(max_attempts=5, base_delay=1.0, max_delay=2.5).first_attempt()
    assert _delays(first) == [1.0, 2.0, 2.5, 2.5]


def test_retry_config_from_settings_and_overrides():
    cfg = RetryConfig.from_settings(ClientSettings(max_retries=0, retry_base_delay=0.2))
    assert cfg.max_attempts == 1
    assert cfg.base_delay == 0.2
    assert cfg.first_attempt(4).total == 4
    assert cfg.first_attempt(0).total == 1


def test_request_and_result_models():
    assert ApiRequest("/upload/", "POST", body=b"\x89PNG").is_binary is True
    assert ApiRequest("/upload/", "POST", body=MultipartBody()).is_binary is True
    assert ApiRequest("/x/", "POST", body={"a": 1}).is_structured is True
    assert ApiRequest("/x/", "POST", body=[{"a": 1}]).is_structured is True
    assert ApiRequest("/x/", "POST", body="raw text").is_structured is False
    assert Success(data={}, status=200).ok is True
    failure = Failure("nope", 404)
    assert failure.ok is False
    assert failure.category is ErrorCategory.UNKNOWN_ERROR


def test_encode_body_variants():
    assert encode_body(None) == {}
    assert encode_body(b"raw") == {"content": b"raw"}
    assert encode_body("text") == {"content": b"text"}
    encoded = encode_body({"when": datetime(2025, 1, 2, 3, 4)})
    assert json.loads(encoded["content"]) == {"when": "2025-01-02T03:04:00"}
    multipart = encode_body(MultipartBody(fields={"k": "v"}, files={"photo": ("p.jpg", b"x", "image/jpeg")}))
    assert multipart["data"] == {"k": "v"}
    assert "photo" in multipart["files"]


@pytest.mark.asyncio
async def test_httpx_transport_success():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        captured["auth"] = request.headers.get("authorization")
        return httpx.Response(201, json={"id": 7})

    settings = ClientSettings()
    transport = HttpxTransport(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    resp = await transport.send(
        HttpRequest(
            url="http://api.test/api/tour-booking/",
            method="POST",
            headers={"Authorization": "Bearer t"},
            body={"package_id": 3},
            timeout=2.0,
        )
    )
    await transport.aclose()

    assert resp.ok is True
    assert resp.status_code == 201
    assert json.loads(resp.text) == {"id": 7}
    assert resp.content_type == "application/json"
    assert captured == {
        "method": "POST",
        "url": "http://api.test/api/tour-booking/",
        "body": {"package_id": 3},
        "auth": "Bearer t",
    }


@pytest.mark.asyncio
async def test_httpx_transport_converts_exceptions():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("ECONNRESET", request=request)

    transport = HttpxTransport(ClientSettings(), client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    resp = await transport.send(HttpRequest(url="http://api.test/api/x/"))
    assert resp.ok is False
    assert resp.status_code is None
    assert resp.error_type == "ConnectError"
    assert isinstance(resp.exception, httpx.ConnectError)


@pytest.mark.asyncio
async def test_httpx_transport_enforces_attempt_deadline():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200)

    transport = HttpxTransport(ClientSettings(), client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    resp = await transport.send(HttpRequest(url="http://api.test/api/slow/", timeout=0.05))
    assert resp.ok is False
    assert resp.error_type == "TimeoutError"
