"""Record store: validated CRUD operations over a user repository."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

from .errors import DuplicateEmailError, StorageError
from .models import ErrorKind, OperationResult, UserRecord, failure, ok
from .validation import describe_error, validate_user_fields

logger = logging.getLogger("usercrud.store")


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(record: UserRecord) -> tuple:
    return (record.name, record.id)


class UserRepository(Protocol):
    """Storage operations the record store relies on."""

    def insert(self, name: str, age: int, email: str, registered_at: datetime) -> UserRecord:
        ...

    def get(self, user_id: int) -> Optional[UserRecord]:
        ...

    def list_all(self) -> List[UserRecord]:
        ...

    def find_by_name(self, fragment: str) -> List[UserRecord]:
        ...

    def update(self, record: UserRecord) -> bool:
        ...

    def delete(self, user_id: int) -> bool:
        ...

    def email_exists(self, email: str) -> bool:
        ...


class InMemoryRepository:
    """Keeps user records in a dictionary for the lifetime of the process."""

    def __init__(self) -> None:
        self._records: Dict[int, UserRecord] = {}
        self._next_id = 1

    def insert(self, name: str, age: int, email: str, registered_at: datetime) -> UserRecord:
        if self.email_exists(email):
            raise DuplicateEmailError("A user with that email already exists")
        record = UserRecord(
            id=self._next_id,
            name=name,
            age=age,
            email=email,
            registered_at=registered_at,
        )
        self._records[record.id] = record
        self._next_id += 1
        return record

    def get(self, user_id: int) -> Optional[UserRecord]:
        return self._records.get(user_id)

    def list_all(self) -> List[UserRecord]:
        return sorted(self._records.values(), key=_sort_key)

    def find_by_name(self, fragment: str) -> List[UserRecord]:
        matches = [record for record in self._records.values() if fragment in record.name]
        return sorted(matches, key=_sort_key)

    def update(self, record: UserRecord) -> bool:
        if record.id not in self._records:
            return False
        self._records[record.id] = record
        return True

    def delete(self, user_id: int) -> bool:
        return self._records.pop(user_id, None) is not None

    def email_exists(self, email: str) -> bool:
        return any(record.email == email for record in self._records.values())


class UserStore:
    """Validate and apply user operations against a repository.

    Every operation returns an :class:`OperationResult`; nothing is printed
    and storage exceptions never escape.
    """

    def __init__(
        self,
        repository: UserRepository,
        *,
        clock: Callable[[], datetime] = _current_timestamp,
    ) -> None:
        self._repository = repository
        self._clock = clock

    @property
    def repository(self) -> UserRepository:
        return self._repository

    def add(self, name: str, age: int, email: str) -> OperationResult[UserRecord]:
        error = validate_user_fields(name, age, email)
        if error is not None:
            logger.warning("Rejected new user: %s", error.value)
            return failure(error, describe_error(error))

        normalized_name = name.strip()
        normalized_email = email.strip()

        try:
            if self._repository.email_exists(normalized_email):
                return self._duplicate_email(normalized_email)
            record = self._repository.insert(
                normalized_name, age, normalized_email, self._clock()
            )
        except DuplicateEmailError:
            return self._duplicate_email(normalized_email)
        except StorageError as exc:
            return self._storage_failure("add user", exc)

        logger.info("Created user %s (%s)", record.id, record.email)
        return ok(record)

    def list(self) -> OperationResult[List[UserRecord]]:
        try:
            return ok(self._repository.list_all())
        except StorageError as exc:
            return self._storage_failure("list users", exc)

    def get(self, user_id: int) -> OperationResult[UserRecord]:
        try:
            record = self._repository.get(user_id)
        except StorageError as exc:
            return self._storage_failure(f"load user {user_id}", exc)
        if record is None:
            return failure(ErrorKind.NOT_FOUND, describe_error(ErrorKind.NOT_FOUND))
        return ok(record)

    def find(self, fragment: str) -> OperationResult[List[UserRecord]]:
        """Return users whose name contains ``fragment`` (case-sensitive)."""

        try:
            return ok(self._repository.find_by_name(fragment))
        except StorageError as exc:
            return self._storage_failure("search users", exc)

    def edit(self, user_id: int, name: str, age: int, email: str) -> OperationResult[UserRecord]:
        error = validate_user_fields(name, age, email)
        if error is not None:
            logger.warning("Rejected update for user %s: %s", user_id, error.value)
            return failure(error, describe_error(error))

        normalized_email = email.strip()

        try:
            current = self._repository.get(user_id)
            if current is None:
                return failure(ErrorKind.NOT_FOUND, describe_error(ErrorKind.NOT_FOUND))

            if normalized_email != current.email and self._repository.email_exists(normalized_email):
                return self._duplicate_email(normalized_email)

            updated = replace(
                current,
                name=name.strip(),
                age=age,
                email=normalized_email,
                updated_at=self._clock(),
            )
            if not self._repository.update(updated):
                return failure(ErrorKind.NOT_FOUND, describe_error(ErrorKind.NOT_FOUND))
        except DuplicateEmailError:
            return self._duplicate_email(normalized_email)
        except StorageError as exc:
            return self._storage_failure(f"update user {user_id}", exc)

        logger.info("Updated user %s", user_id)
        return ok(updated)

    def delete(self, user_id: int) -> OperationResult[UserRecord]:
        """Remove a user; the successful result carries the deleted record."""

        try:
            record = self._repository.get(user_id)
            if record is None or not self._repository.delete(user_id):
                return failure(ErrorKind.NOT_FOUND, describe_error(ErrorKind.NOT_FOUND))
        except StorageError as exc:
            return self._storage_failure(f"delete user {user_id}", exc)

        logger.info("Deleted user %s", user_id)
        return ok(record)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _duplicate_email(self, email: str) -> OperationResult:
        logger.warning("Email %s is already registered", email)
        return failure(ErrorKind.DUPLICATE_EMAIL, describe_error(ErrorKind.DUPLICATE_EMAIL))

    def _storage_failure(self, action: str, exc: StorageError) -> OperationResult:
        logger.exception("Failed to %s", action)
        return failure(ErrorKind.STORAGE_ERROR, f"{describe_error(ErrorKind.STORAGE_ERROR)}: {exc}")


__all__ = ["InMemoryRepository", "UserRepository", "UserStore"]
