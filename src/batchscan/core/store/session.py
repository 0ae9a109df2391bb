# src/batchscan/core/store/session.py
"""SQLAlchemy implementation of the store session protocol.

StoreSession wraps one ORM Session and exposes exactly what the batch
engine needs: identifier streams, fetch by identifier, chunked projected
fetches, commit and release. Every SQLAlchemyError raised by these
operations is re-raised as StoreError.

Record types are declaratively mapped classes with a single-column primary
key. That column is the record identifier.
"""

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Result, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapper, Session

from batchscan.contracts.errors import StoreError


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Convert SQLAlchemy failures into StoreError for one operation."""
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreError(operation, str(e)) from e


def _mapper(record_type: type) -> Mapper[Any]:
    mapper = sa_inspect(record_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise TypeError(f"{record_type!r} is not a mapped record type")
    return mapper


def identifier_attribute(record_type: type) -> Any:
    """Return the mapped attribute holding a record type's identifier.

    Raises:
        TypeError: If record_type is not mapped
        ValueError: If the primary key spans more than one column
    """
    mapper = _mapper(record_type)
    primary_key = mapper.primary_key
    if len(primary_key) != 1:
        raise ValueError(f"{record_type.__name__} must have a single-column primary key, found {len(primary_key)} columns")
    return getattr(record_type, mapper.get_property_by_column(primary_key[0]).key)


def field_attribute(record_type: type, name: str) -> Any:
    """Return a mapped attribute by name.

    Raises:
        ValueError: If record_type has no mapped attribute called name
    """
    mapper = _mapper(record_type)
    if name not in mapper.attrs:
        raise ValueError(f"{record_type.__name__} has no mapped attribute {name!r}")
    return getattr(record_type, name)


class IdentifierResultStream:
    """Identifier stream backed by an open SQLAlchemy result.

    Rows are fetched yield_per at a time. close() releases the result
    handle even when iteration stopped early.
    """

    def __init__(self, result: Result[Any]) -> None:
        self._result = result
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[str]:
        with _store_errors("stream_identifiers"):
            for row in self._result:
                yield row[0]

    def close(self) -> None:
        if not self._closed:
            self._result.close()
            self._closed = True


class StoreSession:
    """Store session for one batch run.

    Owns no connection itself: the wrapped ORM session (exposed as orm for
    work units that need to add or delete objects) is created and closed
    by StoreDB.session().
    """

    def __init__(self, session: Session, *, yield_per: int = 1000) -> None:
        """Initialize with an ORM session.

        Args:
            session: SQLAlchemy ORM session
            yield_per: Identifiers buffered per fetch when streaming identifiers
        """
        self._session = session
        self._yield_per = yield_per

    @property
    def orm(self) -> Session:
        """The underlying SQLAlchemy ORM session."""
        return self._session

    def stream_identifiers(
        self,
        record_type: type,
        where: Any = None,
        *,
        order_by: Sequence[Any] | None = None,
    ) -> IdentifierResultStream:
        """Open a store-side cursor over identifiers.

        Args:
            record_type: Mapped record class
            where: Filter expression, or None for every record of the type
            order_by: Ordering expressions. Defaults to identifier order.

        Returns:
            Stream of identifiers; the caller must close it
        """
        id_attr = identifier_attribute(record_type)
        stmt = select(id_attr)
        if where is not None:
            stmt = stmt.where(where)
        if order_by is not None:
            stmt = stmt.order_by(*order_by)
        else:
            stmt = stmt.order_by(id_attr)
        stmt = stmt.execution_options(yield_per=self._yield_per)

        with _store_errors("stream_identifiers"):
            result = self._session.execute(stmt)
        return IdentifierResultStream(result)

    def fetch_by_id(self, record_type: type, identifier: str) -> Any | None:
        """Fetch one record through the identity map; None if it no longer exists."""
        with _store_errors("fetch_by_id"):
            return self._session.get(record_type, identifier)

    def fetch_fields(
        self,
        record_type: type,
        identifiers: Sequence[str],
        fields: Sequence[str],
        where: Any = None,
    ) -> Mapping[str, tuple[Any, ...]]:
        """Fetch projected fields for a chunk of identifiers in one query.

        The identifier filter is combined with where, so a record that
        changed and no longer matches is treated like a deleted one.

        Returns:
            Mapping of identifier to field values, in the order of fields
        """
        if not identifiers:
            return {}
        id_attr = identifier_attribute(record_type)
        columns = [field_attribute(record_type, name) for name in fields]
        stmt = select(id_attr, *columns).where(id_attr.in_(list(identifiers)))
        if where is not None:
            stmt = stmt.where(where)

        with _store_errors("fetch_fields"):
            rows = self._session.execute(stmt).all()

        fetched: dict[str, tuple[Any, ...]] = {}
        for row in rows:
            values = tuple(row)
            fetched[values[0]] = values[1:]
        return fetched

    def commit(self) -> None:
        """Commit pending changes."""
        with _store_errors("commit"):
            self._session.commit()

    def rollback(self) -> None:
        """Discard pending changes."""
        with _store_errors("rollback"):
            self._session.rollback()

    def release(self, obj: object | None = None) -> None:
        """Detach materialized objects from the session.

        Args:
            obj: Object to detach. None detaches everything in the identity
                map. Objects that are not attached are ignored.
        """
        with _store_errors("release"):
            if obj is None:
                self._session.expunge_all()
            elif obj in self._session:
                self._session.expunge(obj)
