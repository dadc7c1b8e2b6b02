"""Whole-store export to one versioned JSON document, and atomic restore from it."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from babylog.core.constants import (
    ALL_COLLECTIONS,
    BACKUP_FILENAME_PREFIX,
    BACKUP_TIMESTAMP_FORMAT,
    SCHEMA_VERSION,
)
from babylog.core.errors import InvalidFormat
from babylog.core.settings import settings
from babylog.services.entity_store import EntityStore, StoreTransaction

logger = logging.getLogger(__name__)


# Used by: export_json(), write_backup_file()
async def export_all(store: EntityStore) -> Dict[str, Any]:
    """Snapshot of every collection. Each collection is read on its own; there is no cross-collection snapshot."""
    results = await asyncio.gather(*(store.to_list(name) for name in ALL_COLLECTIONS))

    document: Dict[str, Any] = {
        "schemaVersion": SCHEMA_VERSION,
        "exportedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    for name, records in zip(ALL_COLLECTIONS, results):
        document[name] = records

    logger.info(
        "Exported backup: "
        + ", ".join(f"{name}={len(document[name])}" for name in ALL_COLLECTIONS)
    )
    return document


async def export_json(store: EntityStore) -> str:
    return json.dumps(await export_all(store), ensure_ascii=False, indent=2)


def parse_document(document: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """Checks everything that can be checked before the store is touched."""
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise InvalidFormat(f"Invalid backup file: not valid JSON ({e.msg})") from e

    if not isinstance(document, dict):
        raise InvalidFormat("Invalid backup file: top level must be an object")

    version = document.get("schemaVersion")
    if not version:
        raise InvalidFormat("Invalid backup file: missing schemaVersion")
    if version != SCHEMA_VERSION:
        logger.warning(f"Backup schemaVersion {version} differs from current {SCHEMA_VERSION}")

    for name in ALL_COLLECTIONS:
        records = document.get(name)
        if records is None:
            continue
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise InvalidFormat(f"Invalid backup file: {name} must be a list of objects")

    return document


async def import_all(store: EntityStore, document: Union[str, bytes, Dict[str, Any]]) -> Dict[str, int]:
    """Replace the whole store with the document's contents, all or nothing.

    Imported daily aggregates are taken as-is; they travel with the events
    they were computed from, so no resync is run.
    """
    data = parse_document(document)

    async def replace_all(tx: StoreTransaction) -> Dict[str, int]:
        for name in ALL_COLLECTIONS:
            await tx.clear(name)
        counts = {}
        for name in ALL_COLLECTIONS:
            records = data.get(name) or []
            if records:
                await tx.bulk_add(name, records)
            counts[name] = len(records)
        return counts

    try:
        counts = await store.transaction(ALL_COLLECTIONS, replace_all)
    except Exception as e:
        logger.error(f"Backup import rolled back: {e}")
        raise

    logger.info(f"Imported backup exported at {data.get('exportedAt')}: {counts}")
    return counts


def backup_filename(now: Optional[datetime] = None) -> str:
    """baby-log-YYYYMMDD-HHMM.json in local time."""
    now = now or datetime.now()
    return f"{BACKUP_FILENAME_PREFIX}-{now.strftime(BACKUP_TIMESTAMP_FORMAT)}.json"


async def write_backup_file(store: EntityStore, directory: Union[str, Path, None] = None) -> Path:
    target_dir = Path(directory or settings.BACKUP_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / backup_filename()
    path.write_text(await export_json(store), encoding="utf-8")
    logger.info(f"Backup written to {path}")
    return path


async def import_from_file(store: EntityStore, path: Union[str, Path]) -> Dict[str, int]:
    text = Path(path).expanduser().read_text(encoding="utf-8")
    return await import_all(store, text)
