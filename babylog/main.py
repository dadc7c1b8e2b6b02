"""Application wiring: logging, database, store and aggregator, opened and closed together."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .core.database import DatabaseManager
from .core.settings import settings
from .services.daily_sync import DailyAggregator
from .services.entity_store import EntityStore


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@dataclass
class BabyLog:
    database: DatabaseManager
    store: EntityStore
    aggregator: DailyAggregator


# Used by: callers of the core (screens, scripts), tests
@asynccontextmanager
async def open_babylog(
        database_url: Optional[str] = None,
        resync_all_sleep_dates: Optional[bool] = None,
) -> AsyncIterator[BabyLog]:
    """Connect, create tables, attach the aggregator; tear everything down on exit."""
    configure_logging()

    database = DatabaseManager(database_url or settings.DATABASE_URL)
    store = EntityStore(database)
    await store.open()
    aggregator = DailyAggregator(store, resync_all_sleep_dates=resync_all_sleep_dates).attach()

    try:
        yield BabyLog(database=database, store=store, aggregator=aggregator)
    finally:
        aggregator.detach()
        await store.close()
