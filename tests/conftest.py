"""Pytest configuration for test isolation.

Tests must not pick up a developer's ``DATABASE_URL`` or log level, and
engines cached by ``ledger_db.client`` must not leak between tests that each
bootstrap their own SQLite file.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from ledger_db.client import dispose_engines

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("STATEMENT_INGEST_LOG_LEVEL", raising=False)
    yield
    dispose_engines()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a fresh file-backed SQLite database with the ledger schema."""

    return bootstrap_sqlite_db(tmp_path / "ledger.db")
