"""Collection descriptors and the SQLite tables behind them.

Each collection is one table holding the record as a JSON ``data`` column,
plus its key column and one column per indexed field so range scans can use
an index. Records stay schema-less: only the key and the indexed fields are
lifted out of the JSON.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from babylog.core import constants
from babylog.core.errors import SchemaError


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    table: str
    key_field: str
    auto_increment: bool
    indexes: Tuple[str, ...] = ()

    @property
    def queryable_fields(self) -> Tuple[str, ...]:
        return (self.key_field,) + self.indexes


COLLECTIONS: Dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        CollectionSpec(constants.PROFILES, "profiles", "id", True),
        CollectionSpec(constants.DAILY_LOGS, "daily_logs", "date", False),
        CollectionSpec(constants.FEED_EVENTS, "feed_events", "id", True, ("datetime",)),
        CollectionSpec(constants.SLEEP_EVENTS, "sleep_events", "id", True, ("start", "end")),
        CollectionSpec(constants.DIAPER_EVENTS, "diaper_events", "id", True, ("datetime",)),
        CollectionSpec(constants.GROWTH_RECORDS, "growth_records", "id", True, ("date",)),
        CollectionSpec(constants.VACCINE_RECORDS, "vaccine_records", "id", True, ("date",)),
        CollectionSpec(constants.MILESTONES, "milestones", "id", True, ("date",)),
        CollectionSpec(constants.JOURNAL_ENTRIES, "journal_entries", "id", True, ("datetime",)),
    )
}


def get_spec(collection: str) -> CollectionSpec:
    spec = COLLECTIONS.get(collection)
    if spec is None:
        raise SchemaError(f"Unknown collection: {collection!r}")
    return spec


def _table_ddl(spec: CollectionSpec) -> List[str]:
    if spec.auto_increment:
        key_column = f'"{spec.key_field}" INTEGER PRIMARY KEY AUTOINCREMENT'
    else:
        key_column = f'"{spec.key_field}" TEXT PRIMARY KEY'
    columns = [key_column] + [f'"{field}" TEXT' for field in spec.indexes] + ['"data" TEXT NOT NULL']
    statements = [
        f'CREATE TABLE IF NOT EXISTS "{spec.table}" (\n    '
        + ",\n    ".join(columns)
        + "\n);"
    ]
    for field in spec.indexes:
        statements.append(
            f'CREATE INDEX IF NOT EXISTS "idx_{spec.table}_{field}" ON "{spec.table}"("{field}");'
        )
    return statements


# Used by: EntityStore.open
def schema_ddl() -> List[str]:
    statements: List[str] = []
    for spec in COLLECTIONS.values():
        statements.extend(_table_ddl(spec))
    return statements
