"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
batchscan.core.config.

Import patterns:
    # Contracts (lightweight, no heavy dependencies)
    from batchscan.contracts import BatchResult, QuerySpec, StoreError

    # Settings classes (from core, pulls in pydantic/dynaconf)
    from batchscan.core.config import BatchSettings
"""

from batchscan.contracts.batch import (
    BatchPhase,
    BatchResult,
    BatchState,
    CursorState,
    QuerySpec,
    RecordReference,
    ScanStep,
)
from batchscan.contracts.errors import StoreError, WorkUnitError
from batchscan.contracts.events import (
    BatchRunAborted,
    BatchRunCompleted,
    BatchRunStarted,
    CheckpointCompleted,
)
from batchscan.contracts.store import IdentifierStream, StoreSessionProtocol
from batchscan.contracts.work_unit import WorkUnit

__all__ = [
    "BatchPhase",
    "BatchResult",
    "BatchRunAborted",
    "BatchRunCompleted",
    "BatchRunStarted",
    "BatchState",
    "CheckpointCompleted",
    "CursorState",
    "IdentifierStream",
    "QuerySpec",
    "RecordReference",
    "ScanStep",
    "StoreError",
    "StoreSessionProtocol",
    "WorkUnit",
    "WorkUnitError",
]
