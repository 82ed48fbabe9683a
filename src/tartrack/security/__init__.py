# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Input validation, sanitization, rate limiting and request de-duplication."""

from .dedupe import RequestDeduplicator
from .rate_limit import RateLimitBucket, RateLimiter, RateLimitPolicy, policy_for
from .sanitize import sanitize_payload, sanitize_string
from .validation import (
    FORM_RULES,
    CoordinatesRule,
    DateRule,
    EmailRule,
    NumberRule,
    PhoneRule,
    StringRule,
    ValidationRule,
    form_validator,
    validate,
    validate_booking_data,
    validate_coordinates,
    validate_date,
    validate_email,
    validate_form,
    validate_number,
    validate_phone,
    validate_string,
    validate_user_data,
)

__all__ = [
    "FORM_RULES",
    "CoordinatesRule",
    "DateRule",
    "EmailRule",
    "NumberRule",
    "PhoneRule",
    "RateLimitBucket",
    "RateLimitPolicy",
    "RateLimiter",
    "RequestDeduplicator",
    "StringRule",
    "ValidationRule",
    "form_validator",
    "policy_for",
    "sanitize_payload",
    "sanitize_string",
    "validate",
    "validate_booking_data",
    "validate_coordinates",
    "validate_date",
    "validate_email",
    "validate_form",
    "validate_number",
    "validate_phone",
    "validate_string",
    "validate_user_data",
]
