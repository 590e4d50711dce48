"""Composition root wiring settings, storage and the HTTP application."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings, load_settings
from .database import Database
from .store import InMemoryRepository, UserRepository, UserStore


def build_repository(settings: Settings) -> UserRepository:
    """Create the storage backend selected by ``settings``."""

    if settings.backend == "memory":
        return InMemoryRepository()

    database = Database(settings.database_path, timeout=settings.connect_timeout)
    database.initialize()
    return database


def build_store(settings: Settings) -> UserStore:
    return UserStore(build_repository(settings))


def create_application(*, settings: Optional[Settings] = None) -> FastAPI:
    """Create the ASGI application using settings from the environment."""

    if settings is None:
        settings = load_settings()
    return create_app(store=build_store(settings))


__all__ = ["build_repository", "build_store", "create_application"]
