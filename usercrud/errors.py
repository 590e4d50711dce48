"""Exceptions raised by the persistence layer."""
from __future__ import annotations


class StorageError(Exception):
    """Raised when the backing store cannot complete an operation."""


class DuplicateEmailError(StorageError):
    """Raised when a write violates the unique email constraint."""


__all__ = ["DuplicateEmailError", "StorageError"]
