"""Pytest configuration for test isolation.

- Environment variables read by the package (``DATABASE_URL``, worker count,
  log level) are cleared so a developer's shell or ``.env`` cannot leak in.
- Cached SQLAlchemy engines are disposed after each test; every test that
  needs a database gets its own SQLite file under ``tmp_path``.
- The package logger is returned to its unconfigured state after each test
  because the CLI configures logging once per process.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines

import household_import.logging_setup as logging_setup
from household_import.models import Category, Member, MemberStatus
from tests.helpers.db import SeededHousehold, bootstrap_sqlite_db, seed_household


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("DATABASE_URL", "HOUSEHOLD_IMPORT_MAX_WORKERS", "HOUSEHOLD_IMPORT_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_engines_and_logging() -> Iterator[None]:
    yield
    dispose_engines()
    pkg_logger = logging.getLogger("household_import")
    for h in list(pkg_logger.handlers):
        pkg_logger.removeHandler(h)
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)
    logging_setup._CONFIGURED = False


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "household.sqlite3")


@pytest.fixture
def seeded(sqlite_url: str) -> SeededHousehold:
    """Household with Alice and Bob approved, Cara pending, and a Groceries category."""

    return seed_household(
        database_url=sqlite_url,
        members=(("Alice", "approved"), ("Bob", "approved"), ("Cara", "pending")),
        categories=("Groceries",),
    )


# ---- In-memory snapshots -------------------------------------------------------


HOUSEHOLD_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")


@pytest.fixture
def household_id() -> uuid.UUID:
    return HOUSEHOLD_ID


@pytest.fixture
def members() -> list[Member]:
    return [
        Member(id=uuid.uuid4(), household_id=HOUSEHOLD_ID, user_id=uuid.uuid4(), display_name="Alice"),
        Member(id=uuid.uuid4(), household_id=HOUSEHOLD_ID, user_id=uuid.uuid4(), display_name="Bob"),
        Member(
            id=uuid.uuid4(),
            household_id=HOUSEHOLD_ID,
            display_name="Cara",
            status=MemberStatus.PENDING,
        ),
    ]


@pytest.fixture
def categories() -> list[Category]:
    return [
        Category(id=uuid.uuid4(), household_id=HOUSEHOLD_ID, name="Groceries", sort_order=0),
        Category(id=uuid.uuid4(), household_id=HOUSEHOLD_ID, name="Utilities", sort_order=1),
    ]
