"""Database handle: async SQLite engine via SQLAlchemy, explicitly connected and disconnected."""

import logging
from typing import Iterable, Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the engine. Call connect() before use and disconnect() when done."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    # Used by: main.open_babylog (startup), tests
    async def connect(self) -> None:
        if self._engine is not None:
            logger.warning("Database already connected")
            return

        logger.info(f"Connecting to database {self.database_url}...")

        self._engine = create_async_engine(self.database_url, echo=False)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Database connected")

    # Used by: main.open_babylog (shutdown), tests
    async def disconnect(self) -> None:
        if self._engine is None:
            return

        logger.info("Disconnecting from database...")
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    # Used by: EntityStore.open
    async def execute_ddl(self, statements: Iterable[str]) -> None:
        if self._engine is None:
            raise RuntimeError("Database not connected")
        async with self._engine.begin() as conn:
            for statement in statements:
                await conn.execute(text(statement))

    # Used by: EntityStore (every read/write scope)
    def session(self) -> AsyncSession:
        """Use as: async with db.session() as session: ..."""
        if self._session_factory is None:
            raise RuntimeError("Database not connected")
        return self._session_factory()
