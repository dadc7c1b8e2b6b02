"""Live queries: re-run a query and hand the result to a callback whenever its collections change."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from babylog.db.schema import get_spec
from babylog.services.entity_store import EntityStore, WriteEvent

logger = logging.getLogger(__name__)

Query = Callable[[EntityStore], Awaitable[Any]]
Callback = Callable[[Any], Any]


class LiveQuery:
    """Delivers the current result on start() and again after every write to a watched collection.

    Example:
        live = LiveQuery(store, ["dailyLogs"], lambda s: s.get("dailyLogs", today), render)
        await live.start()
    """

    def __init__(self, store: EntityStore, collections: Iterable[str], query: Query, callback: Callback):
        self.store = store
        self.collections = frozenset(collections)
        for name in self.collections:
            get_spec(name)
        self.query = query
        self.callback = callback
        self.last_result: Any = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_active(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> Any:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_write)
        return await self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh(self) -> Any:
        self.last_result = await self.query(self.store)
        outcome = self.callback(self.last_result)
        if inspect.isawaitable(outcome):
            await outcome
        return self.last_result

    async def _on_write(self, event: WriteEvent) -> None:
        if event.collection in self.collections:
            await self.refresh()
