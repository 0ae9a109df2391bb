# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Identifier snapshots (unique, ordered)
- Stale subsets of a snapshot
- Batch sizes

Usage:
    from tests.property.conftest import snapshot_with_stale

    @given(case=snapshot_with_stale())
    def test_cursor_skips_stale(case: tuple[list[str], set[str]]) -> None:
        ...
"""

from __future__ import annotations

from hypothesis import strategies as st

identifiers = st.integers(min_value=0, max_value=9999).map(lambda i: f"r-{i:04d}")

# Unique identifiers in arbitrary (not necessarily sorted) order
identifier_snapshots = st.lists(identifiers, min_size=0, max_size=60, unique=True)

batch_sizes = st.integers(min_value=1, max_value=25)


@st.composite
def snapshot_with_stale(draw: st.DrawFn, *, min_size: int = 0) -> tuple[list[str], set[str]]:
    """An identifier snapshot plus the subset deleted before fetch."""
    snapshot = draw(st.lists(identifiers, min_size=min_size, max_size=60, unique=True))
    stale = draw(st.sets(st.sampled_from(snapshot))) if snapshot else set()
    return snapshot, stale
