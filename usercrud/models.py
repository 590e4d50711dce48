"""Domain models for the user registry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class UserRecord:
    """Represents a registered user."""

    id: int
    name: str
    age: int
    email: str
    registered_at: datetime
    updated_at: Optional[datetime] = None


class ErrorKind(str, Enum):
    INVALID_NAME = "invalid_name"
    INVALID_AGE = "invalid_age"
    INVALID_EMAIL = "invalid_email"
    DUPLICATE_EMAIL = "duplicate_email"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a store operation: either a value or a tagged failure."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise ValueError(self.detail or f"Operation failed: {self.error.value}")
        return self.value  # type: ignore[return-value]


def ok(value: T) -> OperationResult[T]:
    return OperationResult(value=value)


def failure(kind: ErrorKind, detail: Optional[str] = None) -> OperationResult:
    return OperationResult(error=kind, detail=detail)


__all__ = ["ErrorKind", "OperationResult", "UserRecord", "failure", "ok"]
