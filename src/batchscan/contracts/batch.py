"""Data contracts for cursors and batch runs.

These types describe one scan: what is being read (QuerySpec,
RecordReference), how far a cursor has progressed (CursorState, ScanStep),
and how a batch run is doing (BatchState, BatchResult).

Cursor and batch state live only for the duration of one run. Nothing here
is persisted.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


@dataclass(frozen=True, slots=True)
class RecordReference:
    """Identifies a record without holding it in memory.

    Identifiers are store-assigned, opaque and unique per record type.
    WorkUnitError carries one to name the record whose work unit failed.
    """

    record_type: type
    identifier: str


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """A query over one record type.

    Attributes:
        record_type: Mapped record class to scan
        where: Store filter expression, or None for all records of the type
        fields: Attribute names to project. Empty means full records.
        order_by: Store ordering expressions. None means identifier order.
    """

    record_type: type
    where: Any = None
    fields: tuple[str, ...] = ()
    order_by: Sequence[Any] | None = None

    @property
    def projected(self) -> bool:
        """Whether this query returns field tuples rather than records."""
        return len(self.fields) > 0


@dataclass(frozen=True, slots=True)
class CursorState:
    """Snapshot of cursor progress.

    size is the identifier snapshot cardinality and is never adjusted for
    records that vanished afterwards. offset counts identifiers consumed and
    never decreases.
    """

    size: int
    offset: int
    produced_count: int


@dataclass(frozen=True, slots=True)
class ScanStep:
    """One scan position of a cursor.

    position is 1-based. record is None when the identifier no longer
    resolves to a live record.
    """

    position: int
    identifier: str
    record: Any

    @property
    def stale(self) -> bool:
        return self.record is None


class BatchPhase(StrEnum):
    """Lifecycle phases of a single batch run."""

    IDLE = "idle"
    SCANNING = "scanning"
    CHECKPOINTING = "checkpointing"
    FLUSHING = "flushing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class BatchState:
    """Mutable progress of one batch run.

    position counts scan positions visited, whether or not the record at
    that position materialized. Checkpoints happen at positive multiples of
    batch_size, plus one flush for a partial tail.

    Exception: stale identifiers ahead of the first live record are consumed
    together by the driver's opening has_next() probe, so a boundary crossed
    inside that run gets no checkpoint (there is no work before it to commit).
    """

    batch_size: int
    position: int = 0
    phase: BatchPhase = BatchPhase.IDLE
    invoked: int = 0
    checkpoint_positions: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be > 0, got {self.batch_size}")

    @property
    def checkpoints(self) -> int:
        return len(self.checkpoint_positions)

    @property
    def last_checkpoint_position(self) -> int:
        return self.checkpoint_positions[-1] if self.checkpoint_positions else 0

    @property
    def at_boundary(self) -> bool:
        """Whether the current position is a positive multiple of batch_size."""
        return self.position > 0 and self.position % self.batch_size == 0

    @property
    def pending(self) -> int:
        """Positions visited since the last checkpoint."""
        return self.position - self.last_checkpoint_position


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Summary of a finished batch run.

    Attributes:
        identifiers: Size of the identifier snapshot the run was given
        positions: Scan positions visited
        invoked: Work unit invocations (live records processed)
        stale_skipped: Identifiers that no longer resolved at fetch time
        checkpoints: Checkpoints performed, including the final flush
        terminated: Whether the run stopped early on the termination flag
        duration_seconds: Wall time of the run
        checkpoint_positions: Position at which each checkpoint ran, in order
    """

    identifiers: int
    positions: int
    invoked: int
    stale_skipped: int
    checkpoints: int
    terminated: bool
    duration_seconds: float
    checkpoint_positions: tuple[int, ...] = ()
