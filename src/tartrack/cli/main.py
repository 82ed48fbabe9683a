# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""TarTrack API command-line client."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from ..auth.tokens import InMemoryTokenProvider
from ..config import ClientSettings, load_client_settings
from ..http.client import create_api_client
from ..http.models import METHODS, ApiRequest, ApiResult, Failure
from ..log import setup_logging

CLI_TEXT_TRUNCATION_BYTES = 4096


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Issue a single request against the TarTrack API")
    parser.add_argument("method", type=str.upper, choices=METHODS, help="HTTP method")
    parser.add_argument("endpoint", help="API path, e.g. /tourpackage/")
    parser.add_argument("--data", help="JSON request body")
    parser.add_argument("--token", help="Bearer token to authenticate with")
    parser.add_argument("--retries", type=int, default=None, help="Attempt budget (default from settings)")
    parser.add_argument("--timeout", type=float, default=None, help="Per-attempt timeout in seconds")
    parser.add_argument("--base-url", help="Override TARTRACK_API_URL")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of human-friendly summary",
    )
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for local backends with self-signed certificates)",
    )
    return parser


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max_bytes - len(suffix.encode("utf-8"))
    if keep <= 0:
        return suffix[:max_bytes]
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def result_to_dict(result: ApiResult) -> dict[str, Any]:
    if isinstance(result, Failure):
        return {
            "ok": False,
            "status": result.status,
            "error": result.error,
            "category": result.category.value,
            "session_expired": result.session_expired,
            "silent": result.silent,
            "data": result.data,
        }
    return {"ok": True, "status": result.status, "data": result.data}


def _pretty_print(result: ApiResult) -> None:
    if isinstance(result, Failure):
        if result.silent:
            return
        print(f"[TarTrack] HTTP {result.status or '-'} {result.category.value}: {result.error}")
        if result.session_expired:
            print("Session expired; log in again to continue.")
        return
    print(f"[TarTrack] HTTP {result.status} OK")
    body = result.data if isinstance(result.data, str) else json.dumps(result.data, indent=2, default=str)
    print(_truncate_text_bytes(body, CLI_TEXT_TRUNCATION_BYTES))


async def _run(args: argparse.Namespace, settings: ClientSettings) -> ApiResult:
    provider = InMemoryTokenProvider(access_token=args.token)
    body = json.loads(args.data) if args.data else None
    async with create_api_client(settings, token_provider=provider) as client:
        return await client.request(
            ApiRequest(
                endpoint=args.endpoint,
                method=args.method,
                body=body,
                retries=args.retries,
                timeout=args.timeout,
                skip_auth=args.token is None,
            )
        )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_client_settings()
    if args.base_url:
        settings.base_url = args.base_url.rstrip("/")
    if args.ignore_ssl_errors:
        settings.verify_ssl = False
    setup_logging(production=settings.is_production)

    if args.data:
        try:
            json.loads(args.data)
        except ValueError as exc:
            parser.error(f"--data is not valid JSON: {exc}")

    result = asyncio.run(_run(args, settings))

    if args.json:
        json.dump(result_to_dict(result), sys.stdout, indent=2, sort_keys=True, default=str)
        sys.stdout.write("\n")
    else:
        _pretty_print(result)

    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
