"""Checkpoint helpers: commit + release.

A checkpoint durably commits pending changes and then detaches every
materialized object from the session, bounding memory growth. It is the
only consistency boundary of a batch run.

CheckpointCounter serves callers that run their own iteration loop but
still want periodic checkpoints:

    counter = CheckpointCounter(session, interval=20)
    for item in items:
        item.needs_refresh = True
        counter.increment()
    session.commit()
"""

from batchscan.contracts.store import StoreSessionProtocol


def checkpoint(session: StoreSessionProtocol) -> None:
    """Commit pending changes, then release every materialized object."""
    session.commit()
    session.release()


class CheckpointCounter:
    """Counts increments and checkpoints every interval of them.

    Holds nothing but a running count. Not safe to share between threads.
    """

    def __init__(self, session: StoreSessionProtocol, interval: int) -> None:
        """Initialize counter.

        Args:
            session: Session to checkpoint
            interval: Increments between checkpoints (must be > 0)
        """
        if interval < 1:
            raise ValueError(f"interval must be > 0, got {interval}")
        self._session = session
        self._interval = interval
        self._count = 0

    @property
    def count(self) -> int:
        """Increments so far."""
        return self._count

    @property
    def interval(self) -> int:
        return self._interval

    def increment(self) -> bool:
        """Record one unit of work and checkpoint on every interval-th call.

        Returns:
            True if this call performed a checkpoint
        """
        self._count += 1
        if self._count % self._interval == 0:
            checkpoint(self._session)
            return True
        return False
