"""Field validation applied before a user is created or modified."""
from __future__ import annotations

import re
from typing import Dict, Optional

from .models import ErrorKind

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100
AGE_MIN = 0
AGE_MAX = 150
EMAIL_MAX_LENGTH = 255

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.INVALID_NAME: (
        f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
    ),
    ErrorKind.INVALID_AGE: f"Age must be between {AGE_MIN} and {AGE_MAX}",
    ErrorKind.INVALID_EMAIL: "Email address is not valid",
    ErrorKind.DUPLICATE_EMAIL: "A user with that email already exists",
    ErrorKind.NOT_FOUND: "User not found",
    ErrorKind.STORAGE_ERROR: "The user database is unavailable",
    ErrorKind.PARSE_ERROR: "Value must be a whole number",
}


def is_valid_name(name: object) -> bool:
    if not isinstance(name, str):
        return False
    trimmed = name.strip()
    return NAME_MIN_LENGTH <= len(trimmed) <= NAME_MAX_LENGTH


def is_valid_age(age: object) -> bool:
    # bool is an int subclass but never a meaningful age
    if isinstance(age, bool) or not isinstance(age, int):
        return False
    return AGE_MIN <= age <= AGE_MAX


def is_valid_email(email: object) -> bool:
    if not isinstance(email, str):
        return False
    candidate = email.strip()
    if not candidate or len(candidate) > EMAIL_MAX_LENGTH:
        return False
    return _EMAIL_PATTERN.match(candidate) is not None


def validate_user_fields(name: object, age: object, email: object) -> Optional[ErrorKind]:
    """Return the first failing rule for the proposed values, or ``None``."""

    if not is_valid_name(name):
        return ErrorKind.INVALID_NAME
    if not is_valid_age(age):
        return ErrorKind.INVALID_AGE
    if not is_valid_email(email):
        return ErrorKind.INVALID_EMAIL
    return None


def describe_error(kind: ErrorKind) -> str:
    """Return a human readable message for ``kind``."""

    return _MESSAGES[kind]


__all__ = [
    "AGE_MAX",
    "AGE_MIN",
    "EMAIL_MAX_LENGTH",
    "NAME_MAX_LENGTH",
    "NAME_MIN_LENGTH",
    "describe_error",
    "is_valid_age",
    "is_valid_email",
    "is_valid_name",
    "validate_user_fields",
]
