"""The console and scripts must work on installs without the HTTP stack."""

from __future__ import annotations

import importlib
import sys

import pytest

CORE_MODULES = ("usercrud.validation", "usercrud.database", "usercrud.store")


@pytest.fixture()
def without_http_stack(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(sys.modules):
        if name == "usercrud" or name.startswith("usercrud."):
            monkeypatch.delitem(sys.modules, name)
    for blocked in ("fastapi", "pydantic", "uvicorn"):
        monkeypatch.setitem(sys.modules, blocked, None)


def test_core_modules_do_not_pull_in_fastapi(without_http_stack: None) -> None:
    for name in CORE_MODULES:
        importlib.import_module(name)

    assert "usercrud.api" not in sys.modules
    assert "usercrud.application" not in sys.modules


def test_store_is_usable_without_fastapi(without_http_stack: None, tmp_path) -> None:
    store_module = importlib.import_module("usercrud.store")
    database_module = importlib.import_module("usercrud.database")

    in_memory = store_module.UserStore(store_module.InMemoryRepository())
    assert in_memory.add("Ana", 30, "ana@x.com").unwrap().id == 1

    database = database_module.Database(tmp_path / "users.sqlite3")
    database.initialize()
    on_disk = store_module.UserStore(database)
    assert on_disk.add("Bea", 25, "bea@x.com").is_ok
    assert [user.name for user in on_disk.list().unwrap()] == ["Bea"]
