# tests/fixtures/__init__.py
"""Shared fixtures for batchscan tests.

Available helpers:
- FakeStoreSession: in-memory store session for engine tests
- Widget: declaratively mapped record type for SQLite tests
"""

from tests.fixtures.models import Base, Widget, seed_widgets, widget_ids
from tests.fixtures.store import FakeIdentifierStream, FakeRecord, FakeStoreSession

__all__ = [
    "Base",
    "FakeIdentifierStream",
    "FakeRecord",
    "FakeStoreSession",
    "Widget",
    "seed_widgets",
    "widget_ids",
]
