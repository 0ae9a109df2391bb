"""IdCollector: eager identifier snapshots.

Runs a query that projects only identifiers and materializes the full set
up front. Callers use it to fix the universe of records (and its count)
before batching; RecordCursor.from_query uses it for its first phase.

The snapshot is bounded by result-set size, not streamed to the caller,
but the store-side cursor IS streamed, so an early termination can release
it without reading the remaining rows.
"""

from collections.abc import Sequence
from typing import Any

from batchscan.contracts.store import StoreSessionProtocol
from batchscan.core.logging import get_logger
from batchscan.engine.termination import TerminationFlag

logger = get_logger(__name__)


class IdCollector:
    """Collects identifier snapshots from a store session.

    Example:
        collector = IdCollector(session, termination=flag)
        ids = collector.collect(Account, Account.active.is_(True))
        print(f"{len(ids)} accounts to process")
    """

    def __init__(self, session: StoreSessionProtocol, termination: TerminationFlag | None = None) -> None:
        """Initialize collector.

        Args:
            session: Store session to query
            termination: Flag polled once per identifier. When set, the
                store-side cursor is released early and the partial
                snapshot is returned.
        """
        self._session = session
        self._termination = termination

    def collect(
        self,
        record_type: type,
        where: Any = None,
        *,
        order_by: Sequence[Any] | None = None,
    ) -> list[str]:
        """Materialize every identifier matching where.

        Args:
            record_type: Record class to query
            where: Filter expression, or None for all records of the type
            order_by: Ordering expressions. None means identifier order.

        Returns:
            Identifiers in query order. Incomplete if termination was
            requested during collection.
        """
        identifiers: list[str] = []
        stream = self._session.stream_identifiers(record_type, where, order_by=order_by)
        try:
            for identifier in stream:
                if self._termination is not None and self._termination.is_set():
                    logger.info(
                        "Identifier collection terminated early",
                        record_type=record_type.__name__,
                        collected=len(identifiers),
                    )
                    break
                identifiers.append(identifier)
        finally:
            stream.close()

        logger.debug("Collected identifiers", record_type=record_type.__name__, count=len(identifiers))
        return identifiers
