"""Unit-test conftest: DB isolation safety net.

Provides an ``autouse`` fixture that prevents any unit test from
accidentally opening a real Postgres connection. This catches the class
of bugs where a route or CLI command reaches ``get_session()`` without the
store dependency being replaced first.

The approach:
1. Before every unit test, reset the storage module's global engine and
   session-factory singletons so they start from scratch.
2. Monkey-patch the storage accessors to raise immediately if any code
   path attempts a real DB connection.

Tests that intentionally need a database live in ``tests/integration/``.
"""

from __future__ import annotations

import pytest

import passwordless.storage as _storage_mod


def _install_db_guard(monkeypatch: pytest.MonkeyPatch | None = None) -> None:
    """Install guard functions that prevent real DB access in unit tests."""

    def _guard(name: str):
        def _guarded(*args, **kwargs):
            raise RuntimeError(
                f"Unit test attempted a real DB connection via {name}(). "
                "Override the store dependency or use tests/integration/ for DB tests."
            )

        return _guarded

    for name in ("get_engine", "get_session_factory", "get_session"):
        if monkeypatch:
            monkeypatch.setattr(_storage_mod, name, _guard(name))
        else:
            setattr(_storage_mod, name, _guard(name))


def pytest_configure() -> None:
    """Install DB guards before unit test modules are imported."""
    _storage_mod._engine = None  # type: ignore[attr-defined]
    _storage_mod._session_factory = None  # type: ignore[attr-defined]
    _install_db_guard()


@pytest.fixture(autouse=True)
def _isolate_db(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent unit tests from reaching a real Postgres connection."""
    monkeypatch.setattr(_storage_mod, "_engine", None)
    monkeypatch.setattr(_storage_mod, "_session_factory", None)
    _install_db_guard(monkeypatch)
