# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential providers."""

from .tokens import InMemoryTokenProvider, SessionExpiredCallback, TokenPair, TokenProvider

__all__ = ["InMemoryTokenProvider", "SessionExpiredCallback", "TokenPair", "TokenProvider"]
