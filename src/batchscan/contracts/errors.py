"""Error contracts for batch scanning.

Two failure kinds cross the engine boundary. Both abort the current run
immediately; the last completed checkpoint is the durable high-water mark.

A record that vanished between the identifier snapshot and its fetch is NOT
an error. Stores report it as a None fetch result and cursors skip it.
"""

from batchscan.contracts.batch import RecordReference


class StoreError(Exception):
    """Raised when a query, fetch, commit or release against the store fails.

    Attributes:
        operation: Store operation that failed (e.g., "commit", "fetch_by_id")
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"Store operation '{operation}' failed: {message}")


class WorkUnitError(Exception):
    """Raised when a caller-supplied work unit fails.

    The original exception is chained as __cause__. The position is not
    retried or skipped: the run aborts without committing its partial batch.

    Attributes:
        position: 1-based scan position at which the work unit failed
        record: Reference to the record being processed
    """

    def __init__(self, position: int, record: RecordReference, cause: BaseException) -> None:
        self.position = position
        self.record = record
        super().__init__(
            f"Work unit failed at position {position} "
            f"({record.record_type.__name__} {record.identifier!r}): {type(cause).__name__}: {cause}"
        )

    @property
    def identifier(self) -> str:
        return self.record.identifier
