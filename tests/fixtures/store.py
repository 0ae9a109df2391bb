# tests/fixtures/store.py
"""In-memory store session for engine tests.

FakeStoreSession satisfies StoreSessionProtocol without a database. It
separates pending from durable work so tests can assert exactly what a
checkpoint made durable:

    session = FakeStoreSession.with_records(10)
    def work_unit(s, record, params):
        s.stage(record)
    BatchDriver(session, FakeRecord).run(session.identifiers(), 3, work_unit)
    assert session.durable == session.identifiers()

Filters are predicates over FakeRecord; order_by is a sequence of key
functions.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from batchscan.contracts.errors import StoreError


@dataclass
class FakeRecord:
    identifier: str
    name: str = ""
    status: str = "active"
    touched: int = 0


class FakeIdentifierStream:
    """Identifier stream that tracks how far it was read and whether it was closed."""

    def __init__(self, identifiers: Sequence[str]) -> None:
        self._identifiers = list(identifiers)
        self.read = 0
        self.closed = False

    def __iter__(self) -> Iterator[str]:
        for identifier in self._identifiers:
            if self.closed:
                return
            self.read += 1
            yield identifier

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeStoreSession:
    """Store session over a dict of FakeRecords.

    Attributes:
        records: Live records by identifier
        pending: Identifiers staged by work units since the last commit
        durable: Identifiers made durable by commits, in commit order
        calls: Operation log ("fetch:<id>", "fields:<n>", "commit", "rollback", "release")
        attached: Identifiers currently materialized in the session
        fail_commit_at: 1-based commit number that raises StoreError
        fail_fetch: Identifiers whose fetch raises StoreError
        fail_rollback: Whether rollback raises StoreError
    """

    records: dict[str, FakeRecord] = field(default_factory=dict)
    pending: list[str] = field(default_factory=list)
    durable: list[str] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    attached: set[str] = field(default_factory=set)
    streams: list[FakeIdentifierStream] = field(default_factory=list)
    commits: int = 0
    rollbacks: int = 0
    releases: int = 0
    fail_commit_at: int | None = None
    fail_fetch: set[str] = field(default_factory=set)
    fail_rollback: bool = False

    @classmethod
    def with_records(cls, count: int, **kwargs: Any) -> "FakeStoreSession":
        records = [FakeRecord(identifier=f"r-{i:04d}", name=f"record {i}") for i in range(1, count + 1)]
        return cls(records={r.identifier: r for r in records}, **kwargs)

    # -- test helpers --------------------------------------------------------

    def identifiers(self) -> list[str]:
        return sorted(self.records)

    def delete(self, *identifiers: str) -> None:
        """Remove records, simulating concurrent deletion after a snapshot."""
        for identifier in identifiers:
            del self.records[identifier]

    def stage(self, record: FakeRecord) -> None:
        """Record a modification made by a work unit."""
        record.touched += 1
        self.pending.append(record.identifier)

    @property
    def fetches(self) -> list[str]:
        return [call.split(":", 1)[1] for call in self.calls if call.startswith("fetch:")]

    # -- StoreSessionProtocol ------------------------------------------------

    def _matching(self, where: Callable[[FakeRecord], bool] | None) -> list[FakeRecord]:
        return [r for r in self.records.values() if where is None or where(r)]

    def stream_identifiers(
        self,
        record_type: type,
        where: Callable[[FakeRecord], bool] | None = None,
        *,
        order_by: Sequence[Callable[[FakeRecord], Any]] | None = None,
    ) -> FakeIdentifierStream:
        matching = self._matching(where)
        if order_by is not None:
            matching.sort(key=lambda r: tuple(key(r) for key in order_by))
        else:
            matching.sort(key=lambda r: r.identifier)
        stream = FakeIdentifierStream([r.identifier for r in matching])
        self.streams.append(stream)
        return stream

    def fetch_by_id(self, record_type: type, identifier: str) -> FakeRecord | None:
        self.calls.append(f"fetch:{identifier}")
        if identifier in self.fail_fetch:
            raise StoreError("fetch_by_id", f"cannot fetch {identifier}")
        record = self.records.get(identifier)
        if record is not None:
            self.attached.add(identifier)
        return record

    def fetch_fields(
        self,
        record_type: type,
        identifiers: Sequence[str],
        fields: Sequence[str],
        where: Callable[[FakeRecord], bool] | None = None,
    ) -> Mapping[str, tuple[Any, ...]]:
        self.calls.append(f"fields:{len(identifiers)}")
        fetched: dict[str, tuple[Any, ...]] = {}
        for identifier in identifiers:
            record = self.records.get(identifier)
            if record is None or (where is not None and not where(record)):
                continue
            fetched[identifier] = tuple(getattr(record, name) for name in fields)
        return fetched

    def commit(self) -> None:
        self.commits += 1
        self.calls.append("commit")
        if self.fail_commit_at is not None and self.commits == self.fail_commit_at:
            raise StoreError("commit", "disk full")
        self.durable.extend(self.pending)
        self.pending.clear()

    def rollback(self) -> None:
        self.rollbacks += 1
        self.calls.append("rollback")
        if self.fail_rollback:
            raise StoreError("rollback", "connection lost")
        self.pending.clear()

    def release(self, obj: object | None = None) -> None:
        self.releases += 1
        self.calls.append("release")
        if obj is None:
            self.attached.clear()
        elif isinstance(obj, FakeRecord):
            self.attached.discard(obj.identifier)


def make_session(identifiers: Iterable[str]) -> FakeStoreSession:
    """Session holding one record per identifier, in the given order."""
    return FakeStoreSession(records={i: FakeRecord(identifier=i) for i in identifiers})
