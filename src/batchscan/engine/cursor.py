"""Lazy, forward-only cursors over identifier snapshots.

A cursor is built from an ordered identifier snapshot (explicit, or
collected from a query) and materializes records one scan position at a
time, so the full result set is never held in memory.

Skip-stale policy:
    An identifier captured in the snapshot may no longer resolve when its
    turn comes (deleted concurrently, or no longer matching the filter of a
    projected scan). The cursor treats that as a normal stale position and
    moves on; it never raises. size stays at the snapshot cardinality.

Two consumption styles:
    - Iterator protocol (has_next() / next() / for-loops) yields live
      records only, skipping stale identifiers.
    - next_step() yields every scan position, stale ones included, for
      callers (BatchDriver) that count positions rather than records.

Both styles share one lookahead buffer and may be mixed: a live record
found by has_next() is delivered by the next call to either.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Generic, Self, TypeVar

from batchscan.contracts.batch import CursorState, QuerySpec, ScanStep
from batchscan.contracts.store import StoreSessionProtocol
from batchscan.core.config import MAX_IN_CLAUSE_SIZE, BatchSettings
from batchscan.core.logging import get_logger
from batchscan.engine.collector import IdCollector
from batchscan.engine.termination import TerminationFlag

logger = get_logger(__name__)

T = TypeVar("T")


class _SnapshotCursor(ABC, Generic[T]):
    """Shared scan mechanics: snapshot, offset, lookahead, counters."""

    def __init__(self, identifiers: Iterable[str]) -> None:
        # Duplicates are dropped (first occurrence wins) so no identifier
        # can be delivered twice.
        self._identifiers: tuple[str, ...] = tuple(dict.fromkeys(identifiers))
        self._offset = 0
        self._produced = 0
        self._stale = 0
        self._lookahead: ScanStep | None = None
        self._closed = False

    @abstractmethod
    def _resolve(self, index: int, identifier: str) -> T | None:
        """Materialize the identifier at snapshot index, or None if stale."""
        ...

    def _release(self) -> None:
        """Drop any buffered store state. Called once by close()."""
        return None

    def _advance(self) -> ScanStep | None:
        if self._closed or self._offset >= len(self._identifiers):
            return None
        identifier = self._identifiers[self._offset]
        record = self._resolve(self._offset, identifier)
        self._offset += 1
        step = ScanStep(position=self._offset, identifier=identifier, record=record)
        if step.stale:
            self._stale += 1
            logger.debug("Skipping stale identifier", identifier=identifier, position=step.position)
        return step

    # -- iterator protocol -------------------------------------------------

    def has_next(self) -> bool:
        """Whether a live record remains.

        Consumes stale identifiers at the head of the snapshot until a live
        record is found (and buffered) or the snapshot is exhausted.
        """
        while self._lookahead is None:
            step = self._advance()
            if step is None:
                return False
            if not step.stale:
                self._lookahead = step
        return True

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> T:
        if not self.has_next():
            raise StopIteration
        # has_next() buffered a live step; next_step() hands it over
        step = self.next_step()
        if step is None:
            raise StopIteration
        record: T = step.record
        return record

    # -- position-level access ---------------------------------------------

    def has_remaining(self) -> bool:
        """Whether any scan position (live or stale) remains."""
        if self._lookahead is not None:
            return True
        return not self._closed and self._offset < len(self._identifiers)

    def next_step(self) -> ScanStep | None:
        """Consume one scan position.

        Returns:
            The next ScanStep (record is None for a stale identifier), or
            None when the snapshot is exhausted.
        """
        if self._lookahead is not None:
            step: ScanStep | None = self._lookahead
            self._lookahead = None
        else:
            step = self._advance()
        if step is not None and not step.stale:
            self._produced += 1
        return step

    # -- progress ------------------------------------------------------------

    @property
    def size(self) -> int:
        """Cardinality of the identifier snapshot (not adjusted for staleness)."""
        return len(self._identifiers)

    @property
    def offset(self) -> int:
        """Identifiers consumed so far, including a buffered lookahead."""
        return self._offset

    @property
    def produced_count(self) -> int:
        """Live records delivered so far."""
        return self._produced

    @property
    def stale_skipped(self) -> int:
        """Identifiers that no longer resolved at fetch time."""
        return self._stale

    @property
    def state(self) -> CursorState:
        return CursorState(size=self.size, offset=self._offset, produced_count=self._produced)

    # -- lifecycle -----------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release buffered store state. The cursor reports exhaustion afterwards."""
        if self._closed:
            return
        self._closed = True
        self._lookahead = None
        self._release()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


class RecordCursor(_SnapshotCursor[Any]):
    """Cursor yielding full records, fetched one identifier at a time.

    Each record is fetched by identifier when its position is reached, so a
    checkpoint that releases the session between positions never detaches a
    record that has not been processed yet.

    Example:
        with RecordCursor(session, Account, ids) as cursor:
            for account in cursor:
                account.flagged = True
                counter.increment()
    """

    def __init__(self, session: StoreSessionProtocol, record_type: type, identifiers: Iterable[str]) -> None:
        """Initialize cursor over an explicit identifier snapshot.

        Args:
            session: Store session to fetch from
            record_type: Record class the identifiers belong to
            identifiers: Ordered identifiers; copied at construction
        """
        super().__init__(identifiers)
        self._session = session
        self._record_type = record_type

    @classmethod
    def from_query(
        cls,
        session: StoreSessionProtocol,
        spec: QuerySpec,
        *,
        termination: TerminationFlag | None = None,
    ) -> "RecordCursor":
        """Snapshot the identifiers matching spec, then fetch records lazily.

        Raises:
            ValueError: If spec projects fields (use ProjectionCursor)
        """
        if spec.projected:
            raise ValueError("RecordCursor returns full records; use ProjectionCursor for projected fields")
        identifiers = IdCollector(session, termination).collect(spec.record_type, spec.where, order_by=spec.order_by)
        return cls(session, spec.record_type, identifiers)

    @property
    def record_type(self) -> type:
        return self._record_type

    def _resolve(self, index: int, identifier: str) -> Any | None:
        return self._session.fetch_by_id(self._record_type, identifier)


class ProjectionCursor(_SnapshotCursor[tuple[Any, ...]]):
    """Cursor yielding projected field tuples.

    For each identifier the requested fields are re-fetched with an
    identifier filter combined with the original filter. chunk_size
    identifiers are fetched per round trip: 1 issues one query per row
    (smallest memory footprint), larger values trade a little memory for
    fewer round trips. Ordering and skip-stale behavior do not depend on
    chunk_size.
    """

    def __init__(
        self,
        session: StoreSessionProtocol,
        spec: QuerySpec,
        identifiers: Iterable[str],
        *,
        chunk_size: int = 1,
    ) -> None:
        """Initialize cursor over an identifier snapshot for spec.

        Args:
            session: Store session to fetch from
            spec: Query whose fields are projected and whose filter is
                re-applied on every fetch
            identifiers: Ordered identifiers; copied at construction
            chunk_size: Identifiers fetched per round trip (1..1000)

        Raises:
            ValueError: If spec has no fields or chunk_size is out of range
        """
        if not spec.projected:
            raise ValueError("ProjectionCursor requires at least one projected field")
        if not 1 <= chunk_size <= MAX_IN_CLAUSE_SIZE:
            raise ValueError(f"chunk_size must be between 1 and {MAX_IN_CLAUSE_SIZE}, got {chunk_size}")
        super().__init__(identifiers)
        self._session = session
        self._spec = spec
        self._chunk_size = chunk_size
        self._chunk: dict[str, tuple[Any, ...]] = {}
        self._chunk_end = 0

    @classmethod
    def from_query(
        cls,
        session: StoreSessionProtocol,
        spec: QuerySpec,
        *,
        chunk_size: int | None = None,
        settings: BatchSettings | None = None,
        termination: TerminationFlag | None = None,
    ) -> "ProjectionCursor":
        """Snapshot the identifiers matching spec, then fetch fields lazily.

        chunk_size None falls back to settings.refetch_chunk_size (default
        settings when settings is None too).
        """
        if chunk_size is None:
            chunk_size = (settings if settings is not None else BatchSettings()).refetch_chunk_size
        identifiers = IdCollector(session, termination).collect(spec.record_type, spec.where, order_by=spec.order_by)
        return cls(session, spec, identifiers, chunk_size=chunk_size)

    @property
    def fields(self) -> tuple[str, ...]:
        return self._spec.fields

    def _load_chunk(self, index: int) -> None:
        chunk_ids = self._identifiers[index : index + self._chunk_size]
        fetched: Mapping[str, tuple[Any, ...]] = self._session.fetch_fields(
            self._spec.record_type,
            chunk_ids,
            self._spec.fields,
            self._spec.where,
        )
        self._chunk = dict(fetched)
        self._chunk_end = index + len(chunk_ids)

    def _resolve(self, index: int, identifier: str) -> tuple[Any, ...] | None:
        if index >= self._chunk_end:
            self._load_chunk(index)
        return self._chunk.pop(identifier, None)

    def _release(self) -> None:
        self._chunk = {}


def open_cursor(
    session: StoreSessionProtocol,
    spec: QuerySpec,
    *,
    chunk_size: int | None = None,
    settings: BatchSettings | None = None,
    termination: TerminationFlag | None = None,
) -> RecordCursor | ProjectionCursor:
    """Open the cursor kind matching spec: projected fields or full records.

    chunk_size and settings only affect projected cursors; see
    ProjectionCursor.from_query.
    """
    if spec.projected:
        return ProjectionCursor.from_query(
            session, spec, chunk_size=chunk_size, settings=settings, termination=termination
        )
    return RecordCursor.from_query(session, spec, termination=termination)
