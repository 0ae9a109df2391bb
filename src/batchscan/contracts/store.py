"""Protocol for the persistent-store collaborator.

The engine never talks to a database directly. It drives any session object
that satisfies StoreSessionProtocol, so runs can be pointed at SQLAlchemy
(batchscan.core.store.StoreSession) or at a fake store in tests.

The session is passed explicitly into every engine component. One run owns
its session exclusively; sessions are not safe for concurrent runs.
"""

from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Protocol


class IdentifierStream(Protocol):
    """Store-side cursor over identifiers.

    Must support close() before exhaustion so an aborted collection can
    release the underlying result handle.
    """

    def __iter__(self) -> Iterator[str]: ...

    def close(self) -> None: ...


class StoreSessionProtocol(Protocol):
    """Capabilities the engine requires from a store session."""

    def stream_identifiers(
        self,
        record_type: type,
        where: Any = None,
        *,
        order_by: Sequence[Any] | None = None,
    ) -> IdentifierStream:
        """Open a cursor over identifiers matching where (all records if None)."""
        ...

    def fetch_by_id(self, record_type: type, identifier: str) -> Any | None:
        """Fetch one full record, or None if it no longer exists."""
        ...

    def fetch_fields(
        self,
        record_type: type,
        identifiers: Sequence[str],
        fields: Sequence[str],
        where: Any = None,
    ) -> Mapping[str, tuple[Any, ...]]:
        """Fetch projected fields for a chunk of identifiers.

        Identifiers that no longer exist, or no longer match where, are
        absent from the returned mapping.
        """
        ...

    def commit(self) -> None:
        """Durably persist pending changes."""
        ...

    def release(self, obj: object | None = None) -> None:
        """Detach one object, or every materialized object when obj is None."""
        ...

    def rollback(self) -> None:
        """Discard every change made since the last commit."""
        ...
