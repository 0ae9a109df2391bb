"""Observability events for batch runs.

Emitted synchronously by BatchDriver through an EventBus. Consumers (progress
reporters, task monitors, tests) subscribe to the event types they care
about.
"""

from dataclasses import dataclass

from batchscan.contracts.batch import BatchResult


@dataclass(frozen=True, slots=True)
class BatchRunStarted:
    """Emitted once the cursor has a live record and scanning begins."""

    identifiers: int
    batch_size: int


@dataclass(frozen=True, slots=True)
class CheckpointCompleted:
    """Emitted after each commit + release.

    Attributes:
        position: Scan position at which the checkpoint ran
        records: Positions covered by this checkpoint (since the previous one)
        flush: True for the final partial-tail checkpoint
    """

    position: int
    records: int
    flush: bool = False


@dataclass(frozen=True, slots=True)
class BatchRunCompleted:
    """Emitted when a run finishes, including early termination."""

    result: BatchResult


@dataclass(frozen=True, slots=True)
class BatchRunAborted:
    """Emitted when a run aborts on a store or work unit failure.

    Stores the full exception object to preserve traceback and chained
    causes. position is the last scan position completed before the
    failure; nothing after the previous checkpoint was committed.
    """

    position: int
    error: BaseException

    @property
    def error_message(self) -> str:
        """Human-readable error message for formatting."""
        return str(self.error)
