# src/batchscan/core/store/database.py
"""Engine ownership for the record store.

StoreDB wraps one SQLAlchemy engine plus a session factory and hands out a
StoreSession per batch run. SQLite URLs (tests, local runs) get WAL
journaling, foreign keys and a busy timeout on every new connection;
other backends are used as configured.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Self

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, sessionmaker

from batchscan.core.store.session import StoreSession

if TYPE_CHECKING:
    from batchscan.core.config import BatchscanSettings

_SQLITE_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    # Wait up to 5s for a competing writer instead of failing a checkpoint
    "PRAGMA busy_timeout=5000",
)


def _apply_sqlite_pragmas(dbapi_connection: object, connection_record: object) -> None:
    """Engine "connect" hook; runs once per new DBAPI connection."""
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]  # DBAPI connection is untyped in the event signature
    try:
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


class StoreDB:
    """Owns the engine and session factory for one store.

    Record tables belong to the caller's declarative metadata. Pass it to
    the constructor, in_memory(), from_settings() or create_tables() to
    create any that are missing.

    Example:
        with StoreDB("postgresql://app@db/records") as db, db.session() as session:
            BatchDriver(session, Account).run(ids, 100, work_unit)
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        yield_per: int = 1000,
        metadata: MetaData | None = None,
    ) -> None:
        """
        Args:
            url: SQLAlchemy URL, e.g. "sqlite:///./records.db"
            echo: Log every SQL statement
            yield_per: Identifiers buffered per fetch when streaming identifiers
            metadata: Declarative metadata whose tables should be created
        """
        self.url = url
        self._yield_per = yield_per
        engine = create_engine(url, echo=echo)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _apply_sqlite_pragmas)
        self._engine: Engine | None = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(bind=engine)
        if metadata is not None:
            self.create_tables(metadata)

    @classmethod
    def in_memory(cls, metadata: MetaData | None = None) -> Self:
        """Private in-memory SQLite store, for tests."""
        return cls("sqlite:///:memory:", metadata=metadata)

    @classmethod
    def from_settings(cls, settings: "BatchscanSettings", metadata: MetaData | None = None) -> Self:
        """Build from the store section (URL, echo) and the collector's yield size."""
        return cls(
            settings.store.url,
            echo=settings.store.echo,
            yield_per=settings.batch.collect_yield_per,
            metadata=metadata,
        )

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError(f"StoreDB for {self.url} is closed")
        return self._engine

    def create_tables(self, metadata: MetaData) -> None:
        """Create the tables of metadata that do not exist yet."""
        metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        """Open a store session for one batch run.

        The ORM session is closed on exit. Closing discards whatever was not
        committed, so a run that aborts between checkpoints leaves the last
        checkpoint as the durable state.
        """
        orm_session = self._session_factory()
        try:
            yield StoreSession(orm_session, yield_per=self._yield_per)
        finally:
            orm_session.close()

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Core connection in its own transaction: committed on clean exit,
        rolled back if the block raises. For fixtures and maintenance
        statements outside a batch run.
        """
        with self.engine.begin() as conn:
            yield conn

    def close(self) -> None:
        """Dispose of the engine. Safe to call more than once."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
