# tests/conftest.py
"""Fixtures shared by every test directory.

Store fixtures:
- fake_session: FakeStoreSession with ten records (r-0001 .. r-0010)
- store_db: in-memory SQLite StoreDB with the widgets table
- file_store_db: file-backed SQLite StoreDB with the widgets table

Hypothesis profiles, picked with HYPOTHESIS_PROFILE (default "ci"):
- ci: 100 examples per property
- nightly: 1000 examples per property
- debug: 10 examples, verbose, for reproducing a failure

    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from batchscan.core.store import StoreDB
from tests.fixtures.models import Base
from tests.fixtures.store import FakeStoreSession

# --- Hypothesis profiles ------------------------------------------------------

# Every profile runs all phases except explain; none sets a deadline, since
# SQLite-backed examples vary too much in wall time.
_PHASES = [Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink]

settings.register_profile("ci", max_examples=100, phases=_PHASES, deadline=None)
settings.register_profile("nightly", max_examples=1000, phases=_PHASES, deadline=None)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=_PHASES,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# --- Logging isolation --------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


# --- Store fixtures -----------------------------------------------------------


@pytest.fixture
def fake_session() -> FakeStoreSession:
    return FakeStoreSession.with_records(10)


@pytest.fixture
def store_db() -> Iterator[StoreDB]:
    db = StoreDB.in_memory(metadata=Base.metadata)
    yield db
    db.close()


@pytest.fixture
def file_store_db(tmp_path: Path) -> Iterator[StoreDB]:
    db = StoreDB(f"sqlite:///{tmp_path / 'records.db'}", metadata=Base.metadata)
    yield db
    db.close()
