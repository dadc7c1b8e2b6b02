"""The nine keyed collections over SQLite, with multi-collection transactions.

Every record is kept as JSON; the key and the indexed fields are lifted into
their own columns (see db/schema.py). Single-record writes commit on their
own and then notify subscribers; writes made inside ``transaction()`` commit
together or not at all, and notify once per collection after the commit.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from babylog.core.database import DatabaseManager
from babylog.core.errors import DuplicateKey, NotFound, SchemaError
from babylog.db.models import to_record
from babylog.db.schema import CollectionSpec, get_spec, schema_ddl

logger = logging.getLogger(__name__)

Key = Union[int, str]
RecordLike = Union[Dict[str, Any], BaseModel]
T = TypeVar("T")

# Upper bound that sorts after every ASCII suffix of a prefix
_PREFIX_CEILING = "\uffff"


@dataclass(frozen=True)
class WriteEvent:
    """One committed change. bulk=True means "this collection changed" with no per-record detail."""

    collection: str
    key: Optional[Key] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    bulk: bool = False


Listener = Callable[[WriteEvent], Awaitable[None]]


# ── ROW HELPERS ──────────────────────────────────────────────────────────────

def normalize_record(record: RecordLike) -> Dict[str, Any]:
    if isinstance(record, BaseModel):
        return to_record(record)
    return dict(record)


def _row_to_record(spec: CollectionSpec, row: Any) -> Dict[str, Any]:
    data = json.loads(row["data"])
    if spec.auto_increment:
        return {spec.key_field: row[spec.key_field], **data}
    return data


async def _fetch(session: AsyncSession, spec: CollectionSpec, key: Key) -> Optional[Dict[str, Any]]:
    result = await session.execute(
        text(f'SELECT * FROM "{spec.table}" WHERE "{spec.key_field}" = :key'),
        {"key": key},
    )
    row = result.mappings().first()
    if row:
        return _row_to_record(spec, row)
    return None


async def _write(
        session: AsyncSession,
        spec: CollectionSpec,
        record: Dict[str, Any],
        replace: bool,
) -> Dict[str, Any]:
    """Insert (or upsert when replace=True) and return the record as it now reads back."""
    data = dict(record)
    if spec.auto_increment:
        key = data.pop(spec.key_field, None)
        if key is not None and (isinstance(key, bool) or not isinstance(key, int)):
            raise SchemaError(f"{spec.name} key {spec.key_field!r} must be an integer, got {key!r}")
    else:
        key = data.get(spec.key_field)
        if key is None:
            raise SchemaError(f"{spec.name} record is missing its key field {spec.key_field!r}")

    params: Dict[str, Any] = {"key": key, "data": json.dumps(data, ensure_ascii=False)}
    columns = [f'"{spec.key_field}"']
    placeholders = [":key"]
    for i, field in enumerate(spec.indexes):
        value = record.get(field)
        params[f"idx{i}"] = None if value is None else str(value)
        columns.append(f'"{field}"')
        placeholders.append(f":idx{i}")
    columns.append('"data"')
    placeholders.append(":data")

    verb = "INSERT OR REPLACE" if replace else "INSERT"
    try:
        result = await session.execute(
            text(f'''
                {verb} INTO "{spec.table}" ({", ".join(columns)})
                VALUES ({", ".join(placeholders)})
                RETURNING "{spec.key_field}"
            '''),
            params,
        )
    except IntegrityError as e:
        raise DuplicateKey(spec.name, key) from e

    stored_key = result.scalar_one()
    if spec.auto_increment:
        return {spec.key_field: stored_key, **data}
    return data


class _Operations(ABC):
    """CRUD and range queries shared by the store and by an open transaction."""

    @abstractmethod
    def _spec(self, collection: str) -> CollectionSpec:
        ...

    @abstractmethod
    def _reading(self) -> AsyncContextManager[AsyncSession]:
        ...

    @abstractmethod
    def _writing(self) -> AsyncContextManager[AsyncSession]:
        ...

    @abstractmethod
    async def _emit(self, events: List[WriteEvent]) -> None:
        ...

    async def get(self, collection: str, key: Key) -> Optional[Dict[str, Any]]:
        spec = self._spec(collection)
        async with self._reading() as session:
            return await _fetch(session, spec, key)

    async def add(self, collection: str, record: RecordLike) -> Key:
        """Insert a new record. Raises DuplicateKey if its key is already taken."""
        spec = self._spec(collection)
        async with self._writing() as session:
            stored = await _write(session, spec, normalize_record(record), replace=False)
        key = stored[spec.key_field]
        await self._emit([WriteEvent(spec.name, key, None, stored)])
        return key

    async def bulk_add(self, collection: str, records: Iterable[RecordLike]) -> List[Key]:
        spec = self._spec(collection)
        events = []
        async with self._writing() as session:
            for record in records:
                stored = await _write(session, spec, normalize_record(record), replace=False)
                events.append(WriteEvent(spec.name, stored[spec.key_field], None, stored))
        await self._emit(events)
        return [event.key for event in events]

    async def put(self, collection: str, record: RecordLike) -> Key:
        """Upsert by the record's key; a surrogate-keyed record without one gets a fresh key."""
        spec = self._spec(collection)
        data = normalize_record(record)
        async with self._writing() as session:
            key = data.get(spec.key_field)
            before = await _fetch(session, spec, key) if key is not None else None
            stored = await _write(session, spec, data, replace=True)
        key = stored[spec.key_field]
        await self._emit([WriteEvent(spec.name, key, before, stored)])
        return key

    async def update(self, collection: str, key: Key, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge `changes` into the record. The key itself cannot be changed."""
        spec = self._spec(collection)
        async with self._writing() as session:
            before = await _fetch(session, spec, key)
            if before is None:
                raise NotFound(spec.name, key)
            merged = {**before, **{k: v for k, v in changes.items() if k != spec.key_field}}
            stored = await _write(session, spec, merged, replace=True)
        await self._emit([WriteEvent(spec.name, key, before, stored)])
        return stored

    async def delete(self, collection: str, key: Key) -> None:
        """No-op when the key is absent."""
        spec = self._spec(collection)
        async with self._writing() as session:
            before = await _fetch(session, spec, key)
            if before is None:
                return
            await session.execute(
                text(f'DELETE FROM "{spec.table}" WHERE "{spec.key_field}" = :key'),
                {"key": key},
            )
        await self._emit([WriteEvent(spec.name, key, before, None)])

    async def clear(self, collection: str) -> None:
        spec = self._spec(collection)
        async with self._writing() as session:
            await session.execute(text(f'DELETE FROM "{spec.table}"'))
        await self._emit([WriteEvent(spec.name, bulk=True)])

    async def query_range(
            self,
            collection: str,
            field: str,
            lower: Optional[Key] = None,
            upper: Optional[Key] = None,
            descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """Records with lower <= field <= upper (inclusive, either bound optional), ordered by field."""
        spec = self._spec(collection)
        if field not in spec.queryable_fields:
            raise SchemaError(f"{spec.name}.{field} is not indexed")

        conditions = [f'"{field}" IS NOT NULL']
        params: Dict[str, Any] = {}
        if lower is not None:
            conditions.append(f'"{field}" >= :lower')
            params["lower"] = lower
        if upper is not None:
            conditions.append(f'"{field}" <= :upper')
            params["upper"] = upper
        order = "DESC" if descending else "ASC"

        async with self._reading() as session:
            result = await session.execute(
                text(f'''
                    SELECT * FROM "{spec.table}"
                    WHERE {" AND ".join(conditions)}
                    ORDER BY "{field}" {order}, "{spec.key_field}" {order}
                '''),
                params,
            )
            return [_row_to_record(spec, row) for row in result.mappings().all()]

    async def query_prefix(
            self,
            collection: str,
            field: str,
            prefix: str,
            descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """e.g. query_prefix("feedEvents", "datetime", "2024-03-01") -> that day's feeds."""
        return await self.query_range(collection, field, prefix, prefix + _PREFIX_CEILING, descending)

    async def to_list(self, collection: str) -> List[Dict[str, Any]]:
        spec = self._spec(collection)
        async with self._reading() as session:
            result = await session.execute(
                text(f'SELECT * FROM "{spec.table}" ORDER BY "{spec.key_field}" ASC')
            )
            return [_row_to_record(spec, row) for row in result.mappings().all()]

    async def count(self, collection: str) -> int:
        spec = self._spec(collection)
        async with self._reading() as session:
            result = await session.execute(text(f'SELECT COUNT(*) FROM "{spec.table}"'))
            return result.scalar_one()


class StoreTransaction(_Operations):
    """Operations bound to one open transaction, limited to the collections it was opened with."""

    def __init__(self, session: AsyncSession, collections: Set[str]):
        self._session = session
        self._collections = collections
        self.touched: Set[str] = set()

    def _spec(self, collection: str) -> CollectionSpec:
        spec = get_spec(collection)
        if collection not in self._collections:
            raise SchemaError(f"{collection} is not part of this transaction")
        return spec

    @asynccontextmanager
    async def _reading(self):
        yield self._session

    @asynccontextmanager
    async def _writing(self):
        yield self._session

    async def _emit(self, events: List[WriteEvent]) -> None:
        self.touched.update(event.collection for event in events)


class EntityStore(_Operations):
    """Explicitly opened/closed store. One instance per database; writes are serialized."""

    def __init__(self, database: DatabaseManager):
        self.database = database
        self._write_lock = asyncio.Lock()
        self._listeners: List[Listener] = []

    # Used by: main.open_babylog, tests
    async def open(self) -> "EntityStore":
        if not self.database.is_connected:
            await self.database.connect()
        await self.database.execute_ddl(schema_ddl())
        logger.info("Entity store ready")
        return self

    async def close(self) -> None:
        self._listeners.clear()
        await self.database.disconnect()
        logger.info("Entity store closed")

    async def __aenter__(self) -> "EntityStore":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Used by: DailyAggregator.attach, LiveQuery.start
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an async listener for committed writes. Returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _spec(self, collection: str) -> CollectionSpec:
        return get_spec(collection)

    @asynccontextmanager
    async def _reading(self):
        async with self.database.session() as session:
            yield session

    @asynccontextmanager
    async def _writing(self):
        async with self._write_lock:
            async with self.database.session() as session:
                async with session.begin():
                    yield session

    async def _emit(self, events: List[WriteEvent]) -> None:
        for event in events:
            for listener in list(self._listeners):
                await listener(event)

    # Used by: backup.import_all
    async def transaction(
            self,
            collections: Iterable[str],
            body: Callable[[StoreTransaction], Awaitable[T]],
    ) -> T:
        """Run `body(tx)` atomically over `collections`; any exception rolls back every write and propagates."""
        names = set(collections)
        for name in names:
            get_spec(name)

        async with self._write_lock:
            async with self.database.session() as session:
                async with session.begin():
                    tx = StoreTransaction(session, names)
                    result = await body(tx)

        await self._emit([WriteEvent(name, bulk=True) for name in sorted(tx.touched)])
        return result
