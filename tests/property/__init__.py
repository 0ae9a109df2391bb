# tests/property/__init__.py
"""Property-based tests for batchscan.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of: checkpoint counts, exactly-once
delivery, and order preservation under arbitrary staleness.

Test categories:
- engine/: Cursor delivery and driver checkpoint properties
"""
