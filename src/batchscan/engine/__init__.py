# src/batchscan/engine/__init__.py
"""Batch engine: cursors, checkpoints and the batch driver.

This module provides the bounded-memory processing engine:
- RecordCursor: Lazy, skip-stale cursor over full records
- ProjectionCursor: Same scan over projected field tuples
- IdCollector: Eager identifier snapshots
- CheckpointCounter: Commit + release every N increments
- BatchDriver: Work unit application with periodic checkpoints
- TerminationFlag: Cooperative stop request

Example:
    from batchscan.core.store import StoreDB
    from batchscan.engine import BatchDriver

    db = StoreDB("sqlite:///records.db")

    with db.session() as session:
        driver = BatchDriver(session, Account)
        ids = driver.collect_identifiers(Account.active.is_(False))
        result = driver.run(ids, 100, purge_links)
"""

from batchscan.engine.checkpoint import CheckpointCounter, checkpoint
from batchscan.engine.collector import IdCollector
from batchscan.engine.cursor import ProjectionCursor, RecordCursor, open_cursor
from batchscan.engine.driver import BatchDriver
from batchscan.engine.termination import TerminationFlag

__all__ = [
    "BatchDriver",
    "CheckpointCounter",
    "IdCollector",
    "ProjectionCursor",
    "RecordCursor",
    "TerminationFlag",
    "checkpoint",
    "open_cursor",
]
