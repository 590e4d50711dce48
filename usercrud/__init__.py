"""Core utilities for the user registry."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path
from .models import ErrorKind, OperationResult, UserRecord
from .store import InMemoryRepository, UserStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "ErrorKind",
    "InMemoryRepository",
    "OperationResult",
    "UserRecord",
    "UserStore",
    "create_app",
    "resolve_database_path",
]
