# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Declarative input validation.

Rules are small frozen dataclasses, one per value kind. ``validate`` routes a
value to the handler registered for its rule type; every handler either returns
the normalized value or raises ``ValidationError`` with a field-scoped message.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Union

from ..errors import ValidationError
from .sanitize import sanitize_payload, sanitize_string

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?63[0-9]{10}$|^09[0-9]{9}$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-\.]{2,50}$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d@$!%*?&]{8,}$")
MAX_EMAIL_LENGTH = 254


@dataclass(frozen=True)
class StringRule:
    required: bool = False
    field_name: str = "Field"
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | re.Pattern[str] | None = None


@dataclass(frozen=True)
class EmailRule:
    required: bool = False
    field_name: str = "Email"


@dataclass(frozen=True)
class PhoneRule:
    required: bool = False
    field_name: str = "Phone"


@dataclass(frozen=True)
class NumberRule:
    required: bool = False
    field_name: str = "Field"
    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class CoordinatesRule:
    required: bool = False
    field_name: str = "Coordinates"


@dataclass(frozen=True)
class DateRule:
    required: bool = False
    field_name: str = "Date"


ValidationRule = Union[StringRule, EmailRule, PhoneRule, NumberRule, CoordinatesRule, DateRule]


def _fmt(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def validate_string(
    value: Any,
    *,
    field_name: str = "Field",
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | re.Pattern[str] | None = None,
) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    sanitized = sanitize_string(value)

    if min_length and len(sanitized) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters", field=field_name)
    if max_length and len(sanitized) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters", field=field_name)
    if pattern is not None and not re.search(pattern, sanitized):
        raise ValidationError(f"{field_name} format is invalid", field=field_name)

    return sanitized


def validate_email(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError("Email must be a string", field="email")

    sanitized = sanitize_string(value).lower()
    if not EMAIL_PATTERN.match(sanitized):
        raise ValidationError("Invalid email format", field="email")
    if len(sanitized) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email is too long", field="email")
    return sanitized


def validate_phone(value: Any) -> str:
    """Validate a Philippine mobile number and normalize it to ``+63XXXXXXXXXX``."""
    if not isinstance(value, str):
        raise ValidationError("Phone must be a string", field="phone")

    sanitized = sanitize_string(value)
    if not PHONE_PATTERN.match(sanitized):
        raise ValidationError("Invalid phone number format", field="phone")

    if sanitized.startswith("09"):
        return "+63" + sanitized[1:]
    return sanitized if sanitized.startswith("+") else "+" + sanitized


def validate_number(
    value: Any,
    *,
    field_name: str = "Field",
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a valid number", field=field_name)
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a valid number", field=field_name) from None

    if math.isnan(number):
        raise ValidationError(f"{field_name} must be a valid number", field=field_name)
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field_name} must be at least {_fmt(minimum)}", field=field_name)
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field_name} cannot exceed {_fmt(maximum)}", field=field_name)
    return number


def validate_coordinates(value: Any) -> dict[str, float]:
    if not isinstance(value, Mapping):
        raise ValidationError("Coordinates must be an object with lat and lng", field="coordinates")

    lat = validate_number(value.get("lat"), field_name="Latitude", minimum=-90, maximum=90)
    lng = validate_number(value.get("lng"), field_name="Longitude", minimum=-180, maximum=180)
    return {"lat": lat, "lng": lng}


def validate_date(value: Any) -> datetime:
    """Accept ISO-8601 strings, dates, datetimes, or epoch milliseconds."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValidationError("Invalid date format", field="date") from None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("Invalid date format", field="date") from None
    raise ValidationError("Invalid date format", field="date")


def _string_handler(value: Any, rule: StringRule) -> str:
    return validate_string(
        value,
        field_name=rule.field_name,
        min_length=rule.min_length,
        max_length=rule.max_length,
        pattern=rule.pattern,
    )


def _number_handler(value: Any, rule: NumberRule) -> float:
    return validate_number(value, field_name=rule.field_name, minimum=rule.minimum, maximum=rule.maximum)


_HANDLERS: dict[type, Callable[[Any, Any], Any]] = {
    StringRule: _string_handler,
    EmailRule: lambda value, _rule: validate_email(value),
    PhoneRule: lambda value, _rule: validate_phone(value),
    NumberRule: _number_handler,
    CoordinatesRule: lambda value, _rule: validate_coordinates(value),
    DateRule: lambda value, _rule: validate_date(value),
}


def validate(value: Any, rule: ValidationRule) -> Any:
    """Validate ``value`` against ``rule``; returns the normalized value or ``None`` for absent optionals."""
    handler = _HANDLERS.get(type(rule))
    if handler is None:
        raise TypeError(f"Unsupported validation rule: {rule!r}")
    if value is None:
        if rule.required:
            raise ValidationError(f"{rule.field_name} is required", field=rule.field_name)
        return None
    return handler(value, rule)


def validate_form(data: Mapping[str, Any], rules: Mapping[str, ValidationRule]) -> dict[str, Any]:
    """Apply a rule set to a mapping; absent optional fields are left out of the result."""
    validated: dict[str, Any] = {}
    for name, rule in rules.items():
        result = validate(data.get(name), rule)
        if result is not None:
            validated[name] = result
    return validated


def validate_booking_data(data: Mapping[str, Any]) -> dict[str, Any]:
    validated: dict[str, Any] = {
        "pickup_location": validate_coordinates(data.get("pickup_location")),
        "destination": validate_coordinates(data.get("destination")),
        "scheduled_time": validate_date(data.get("scheduled_time")),
        "passenger_count": validate_number(
            data.get("passenger_count"), field_name="Passenger count", minimum=1, maximum=20
        ),
    }
    if data.get("special_requests"):
        validated["special_requests"] = validate_string(
            data["special_requests"], field_name="Special requests", max_length=500
        )
    if data.get("contact_phone"):
        validated["contact_phone"] = validate_phone(data["contact_phone"])
    return validated


def validate_user_data(data: Mapping[str, Any], is_registration: bool = False) -> dict[str, Any]:
    validated: dict[str, Any] = {}

    if is_registration or data.get("email"):
        validated["email"] = validate_email(data.get("email"))
    if is_registration or data.get("password"):
        validated["password"] = validate_string(
            data.get("password"), field_name="Password", min_length=8, pattern=PASSWORD_PATTERN
        )
    if is_registration or data.get("first_name"):
        validated["first_name"] = validate_string(data.get("first_name"), field_name="First name", pattern=NAME_PATTERN)
    if is_registration or data.get("last_name"):
        validated["last_name"] = validate_string(data.get("last_name"), field_name="Last name", pattern=NAME_PATTERN)
    if data.get("phone"):
        validated["phone"] = validate_phone(data["phone"])
    if data.get("address"):
        validated["address"] = validate_string(data["address"], field_name="Address", max_length=200)

    return validated


_EMAIL = EmailRule(required=True)
_PASSWORD = StringRule(required=True, field_name="Password", min_length=8, pattern=PASSWORD_PATTERN)
_FIRST_NAME = StringRule(required=True, field_name="First name", min_length=2, max_length=50, pattern=NAME_PATTERN)
_LAST_NAME = StringRule(required=True, field_name="Last name", min_length=2, max_length=50, pattern=NAME_PATTERN)
_PHONE = PhoneRule()

FORM_RULES: dict[str, dict[str, ValidationRule]] = {
    "LOGIN": {
        "email": _EMAIL,
        # any length is accepted at login; strength is enforced at registration
        "password": StringRule(required=True, field_name="Password", min_length=1),
    },
    "REGISTER": {
        "email": _EMAIL,
        "password": _PASSWORD,
        "first_name": _FIRST_NAME,
        "last_name": _LAST_NAME,
        "phone": _PHONE,
    },
    "PROFILE_UPDATE": {
        "first_name": _FIRST_NAME,
        "last_name": _LAST_NAME,
        "phone": _PHONE,
        "address": StringRule(field_name="Address", max_length=200),
    },
    "BOOKING": {
        "passenger_count": NumberRule(required=True, field_name="Passenger count", minimum=1, maximum=20),
        "special_requests": StringRule(field_name="Special requests", max_length=500),
        "contact_phone": PhoneRule(field_name="Contact phone"),
    },
    "CHANGE_PASSWORD": {
        "current_password": StringRule(required=True, field_name="Current password", min_length=1),
        "new_password": StringRule(required=True, field_name="New password", min_length=8, pattern=PASSWORD_PATTERN),
        "confirm_password": StringRule(required=True, field_name="Confirm password", min_length=8),
    },
}


def form_validator(form: str) -> Callable[[Mapping[str, Any]], dict[str, Any]]:
    """
    Build a request-body validator from a named rule set.

    Fields covered by the rule set are validated and normalized; every other
    field still goes through generic sanitization so nothing reaches the wire raw.
    """
    rules = FORM_RULES[form]

    def _validator(body: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(sanitize_payload(body))
        merged.update(validate_form(body, rules))
        return merged

    return _validator


__all__ = [
    "CoordinatesRule",
    "DateRule",
    "EmailRule",
    "FORM_RULES",
    "NumberRule",
    "PhoneRule",
    "StringRule",
    "ValidationRule",
    "form_validator",
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
