"""
batchscan: Bounded-memory batch processing over persistent stores.

Scans large result sets one record at a time, applies a caller-supplied
work unit to each, and commits and releases session state at controlled
intervals so neither process memory nor the open transaction grows
without bound.
"""

__version__ = "0.1.0"
