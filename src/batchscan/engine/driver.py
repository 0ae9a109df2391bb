# src/batchscan/engine/driver.py
"""BatchDriver: batch-commit driver over a record cursor.

Consumes a RecordCursor built from an identifier snapshot, applies a work
unit to every live record, and checkpoints (commit + release) at batch
boundaries and once more for the partial tail.

Run lifecycle:
    idle -> scanning -> (checkpointing <-> scanning) -> flushing -> done
    scanning -> aborted            (store or work unit failure, no flush)
    scanning -> flushing -> done   (termination flag observed)

Position counting:
    position advances once per scan position, stale or live. Checkpoint
    boundaries are therefore computed over the identifier snapshot, not
    over the records that happened to survive. Stale identifiers ahead of
    the first live record are consumed by the initial has_next() probe;
    no work precedes them, so they never trigger a checkpoint.

Failure policy:
    The first failure aborts the run. Work done since the last checkpoint
    is rolled back, never committed. The caller decides whether to
    re-derive the remaining identifiers and run again, on the same session
    or a new one.

Events:
    Every run emits BatchRunStarted first and then exactly one of
    BatchRunCompleted or BatchRunAborted, including runs with nothing to
    process.
"""

from collections.abc import Mapping, Sequence
from time import perf_counter
from typing import Any

from batchscan.contracts.batch import BatchPhase, BatchResult, BatchState, RecordReference, ScanStep
from batchscan.contracts.errors import StoreError, WorkUnitError
from batchscan.contracts.events import (
    BatchRunAborted,
    BatchRunCompleted,
    BatchRunStarted,
    CheckpointCompleted,
)
from batchscan.contracts.store import StoreSessionProtocol
from batchscan.contracts.work_unit import WorkUnit
from batchscan.core.config import BatchSettings
from batchscan.core.events import EventBusProtocol, NullEventBus
from batchscan.core.logging import bind_run_context, get_logger
from batchscan.engine.checkpoint import checkpoint
from batchscan.engine.collector import IdCollector
from batchscan.engine.cursor import RecordCursor
from batchscan.engine.termination import TerminationFlag

logger = get_logger(__name__)


class BatchDriver:
    """Drives one record type through a work unit in checkpointed batches.

    The driver owns its session exclusively for the duration of a run and
    runs on the calling thread. Only terminate() may be called from another
    thread.

    Example:
        with db.session() as session:
            driver = BatchDriver(session, Account, event_bus=bus)
            ids = driver.collect_identifiers(Account.active.is_(False))
            result = driver.run(ids, 50, purge_links, {"reason": "inactive"})
    """

    def __init__(
        self,
        session: StoreSessionProtocol,
        record_type: type,
        *,
        settings: BatchSettings | None = None,
        termination: TerminationFlag | None = None,
        event_bus: EventBusProtocol | None = None,
    ) -> None:
        """Initialize driver.

        Args:
            session: Store session used for fetches, work units and checkpoints
            record_type: Record class the identifiers belong to
            settings: Batch settings; supplies the default batch size
            termination: Shared termination flag. A fresh one is created if omitted.
            event_bus: Receives run and checkpoint events. Defaults to NullEventBus.
        """
        self._session = session
        self._record_type = record_type
        self._settings = settings if settings is not None else BatchSettings()
        self._termination = termination if termination is not None else TerminationFlag()
        self._event_bus: EventBusProtocol = event_bus if event_bus is not None else NullEventBus()
        self._state: BatchState | None = None

    @property
    def termination(self) -> TerminationFlag:
        return self._termination

    @property
    def state(self) -> BatchState | None:
        """State of the current (or most recent) run; None before the first run."""
        return self._state

    def terminate(self) -> None:
        """Request cooperative termination.

        Takes effect at the next poll, between scan positions. A work unit
        in flight always completes (or fails) first.
        """
        self._termination.request()

    def collect_identifiers(self, where: Any = None, *, order_by: Sequence[Any] | None = None) -> list[str]:
        """Snapshot every identifier of the record type matching where.

        Shares the driver's termination flag: if termination is requested
        during collection, the store-side cursor is released early and the
        partial snapshot returned.

        Args:
            where: Filter expression, or None for all records of the type
            order_by: Ordering expressions. None means identifier order.
        """
        return IdCollector(self._session, self._termination).collect(self._record_type, where, order_by=order_by)

    def run(
        self,
        identifiers: Sequence[str],
        batch_size: int | None,
        work_unit: WorkUnit,
        extra_params: Mapping[str, Any] | None = None,
    ) -> BatchResult:
        """Apply work_unit to every live record in identifiers.

        Args:
            identifiers: Ordered identifier snapshot
            batch_size: Scan positions between checkpoints (> 0). None uses
                the configured default.
            work_unit: Called as work_unit(session, record, extra_params)
            extra_params: Read-only parameters passed through to the work unit

        Returns:
            Summary of the run

        Raises:
            ValueError: If batch_size is not positive
            WorkUnitError: If the work unit raised; the original is chained
            StoreError: If a fetch or checkpoint failed
        """
        size = batch_size if batch_size is not None else self._settings.batch_size
        state = BatchState(batch_size=size)
        self._state = state
        params: Mapping[str, Any] = dict(extra_params) if extra_params is not None else {}
        started = perf_counter()
        cursor = RecordCursor(self._session, self._record_type, identifiers)
        with bind_run_context(record_type=self._record_type.__name__, batch_size=size):
            return self._scan(cursor, state, work_unit, params, started)

    def _scan(
        self,
        cursor: RecordCursor,
        state: BatchState,
        work_unit: WorkUnit,
        params: Mapping[str, Any],
        started: float,
    ) -> BatchResult:
        terminated = False
        logger.info("Batch run started", identifiers=cursor.size)
        self._event_bus.emit(BatchRunStarted(identifiers=cursor.size, batch_size=state.batch_size))
        try:
            state.phase = BatchPhase.SCANNING
            if not cursor.has_next():
                logger.info("Nothing to process", identifiers=cursor.size, stale_skipped=cursor.stale_skipped)
                state.phase = BatchPhase.DONE
                return self._complete(state, cursor, terminated, started)

            while cursor.has_remaining():
                if self._termination.is_set():
                    terminated = True
                    logger.info("Termination requested", position=state.position)
                    break
                step = cursor.next_step()
                if step is None:
                    break
                if not step.stale:
                    self._invoke(work_unit, step, params)
                    state.invoked += 1
                state.position = step.position
                if state.at_boundary:
                    self._checkpoint(state, flush=False)

            if state.position > 0 and (terminated or not state.at_boundary):
                self._checkpoint(state, flush=True)

            state.phase = BatchPhase.DONE
            result = self._complete(state, cursor, terminated, started)
            logger.info(
                "Batch run completed",
                positions=result.positions,
                invoked=result.invoked,
                stale_skipped=result.stale_skipped,
                checkpoints=result.checkpoints,
                terminated=terminated,
            )
            return result
        except Exception as e:
            state.phase = BatchPhase.ABORTED
            self._discard_uncommitted()
            logger.error(
                "Batch run aborted",
                position=state.position,
                last_checkpoint=state.last_checkpoint_position,
                error=str(e),
            )
            self._event_bus.emit(BatchRunAborted(position=state.position, error=e))
            raise
        finally:
            cursor.close()

    def _invoke(self, work_unit: WorkUnit, step: ScanStep, params: Mapping[str, Any]) -> None:
        try:
            work_unit(self._session, step.record, params)
        except StoreError:
            raise
        except Exception as e:
            raise WorkUnitError(step.position, RecordReference(self._record_type, step.identifier), e) from e

    def _discard_uncommitted(self) -> None:
        """Roll back work done since the last checkpoint.

        The session may be reused for another run, which must not commit the
        aborted tail. If the rollback itself fails it is logged and the
        original error still propagates.
        """
        try:
            self._session.rollback()
        except Exception as rollback_error:
            logger.warning("Rollback after abort failed", error=str(rollback_error), exc_info=True)

    def _checkpoint(self, state: BatchState, *, flush: bool) -> None:
        state.phase = BatchPhase.FLUSHING if flush else BatchPhase.CHECKPOINTING
        records = state.pending
        checkpoint(self._session)
        state.checkpoint_positions.append(state.position)
        logger.debug("Checkpoint completed", position=state.position, records=records, flush=flush)
        self._event_bus.emit(CheckpointCompleted(position=state.position, records=records, flush=flush))
        if not flush:
            state.phase = BatchPhase.SCANNING

    def _complete(self, state: BatchState, cursor: RecordCursor, terminated: bool, started: float) -> BatchResult:
        result = BatchResult(
            identifiers=cursor.size,
            positions=state.position,
            invoked=state.invoked,
            stale_skipped=cursor.stale_skipped,
            checkpoints=state.checkpoints,
            terminated=terminated,
            duration_seconds=perf_counter() - started,
            checkpoint_positions=tuple(state.checkpoint_positions),
        )
        self._event_bus.emit(BatchRunCompleted(result=result))
        return result
