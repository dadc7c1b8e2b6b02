"""Daily aggregate: recomputes a day's feed/diaper/sleep summary from its raw events."""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Union

from babylog.core import constants
from babylog.core.constants import DAILY_LOGS, DIAPER_EVENTS, FEED_EVENTS, SLEEP_EVENTS
from babylog.core.settings import settings
from babylog.db.models import DailyLog, DiaperKind, to_record
from babylog.services.entity_store import EntityStore, WriteEvent
from babylog.utils.day_window import clip_to_day, date_prefix, dates_spanned

logger = logging.getLogger(__name__)


@dataclass
class DayCounts:
    milk_times: int = 0
    milk_total_ml: Union[int, float] = 0
    poop_times: int = 0
    pee_times: int = 0
    sleep_hours: float = 0.0


# Used by: compute_day_counts()
def round_hours(ms: int) -> float:
    """Milliseconds -> hours, one decimal, halves rounded away from zero."""
    hours = Decimal(ms) / Decimal(constants.MS_PER_HOUR)
    quantum = Decimal(1).scaleb(-constants.SLEEP_HOURS_DECIMALS)
    return float(hours.quantize(quantum, rounding=ROUND_HALF_UP))


# Used by: DailyAggregator.resync
def compute_day_counts(
    day: str,
    feeds: List[Dict[str, Any]],
    diapers: List[Dict[str, Any]],
    sleeps: List[Dict[str, Any]],
    timezone: str = "",
) -> DayCounts:
    """Pure function of the day's events; sleeps must already be the ones overlapping `day`."""
    milk_total = sum(feed.get("amountMl") or 0 for feed in feeds)
    sleep_ms = sum(clip_to_day(s.get("start"), s.get("end"), day, timezone) for s in sleeps)

    return DayCounts(
        milk_times=len(feeds),
        milk_total_ml=milk_total,
        poop_times=sum(1 for d in diapers if d.get("kind") == DiaperKind.STOOL.value),
        pee_times=sum(1 for d in diapers if d.get("kind") == DiaperKind.URINE.value),
        sleep_hours=round_hours(sleep_ms),
    )


def _overlaps(sleep: Dict[str, Any], day: str) -> bool:
    return date_prefix(sleep.get("start")) <= day <= date_prefix(sleep.get("end"))


class DailyAggregator:
    """Keeps each dailyLogs record consistent with the raw events of its date."""

    def __init__(
            self,
            store: EntityStore,
            resync_all_sleep_dates: Optional[bool] = None,
            timezone: Optional[str] = None,
    ):
        self.store = store
        self.resync_all_sleep_dates = (
            settings.RESYNC_ALL_SLEEP_DATES if resync_all_sleep_dates is None else resync_all_sleep_dates
        )
        self.timezone = settings.TIMEZONE if timezone is None else timezone
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def resync(self, day: str) -> Dict[str, Any]:
        """Recompute and upsert the aggregate for `day` (YYYY-MM-DD), keeping its note and symptom tags."""
        feeds = await self.store.query_prefix(FEED_EVENTS, "datetime", day)
        diapers = await self.store.query_prefix(DIAPER_EVENTS, "datetime", day)
        # Intervals can start on an earlier day, so every sleep is checked
        all_sleeps = await self.store.to_list(SLEEP_EVENTS)
        sleeps = [s for s in all_sleeps if _overlaps(s, day)]

        counts = compute_day_counts(day, feeds, diapers, sleeps, self.timezone)

        existing = await self.store.get(DAILY_LOGS, day)
        daily_log = DailyLog(
            date=day,
            milk_times=counts.milk_times,
            milk_total_ml=counts.milk_total_ml,
            poop_times=counts.poop_times,
            pee_times=counts.pee_times,
            sleep_hours=counts.sleep_hours,
            note=(existing or {}).get("note") or "",
            symptoms_tags=(existing or {}).get("symptomsTags") or [],
        )
        record = to_record(daily_log)
        await self.store.put(DAILY_LOGS, record)

        logger.debug(
            f"Resynced {day}: {counts.milk_times} feeds / {counts.milk_total_ml} ml, "
            f"{counts.poop_times} stool, {counts.pee_times} urine, {counts.sleep_hours} h sleep"
        )
        return record

    def dates_touched(self, collection: str, record: Optional[Dict[str, Any]]) -> List[str]:
        if not record:
            return []
        if collection == SLEEP_EVENTS:
            if self.resync_all_sleep_dates:
                return dates_spanned(record.get("start"), record.get("end"))
            day = date_prefix(record.get("start"))
            return [day] if day else []
        day = date_prefix(record.get("datetime"))
        return [day] if day else []

    # Used by: EntityStore.subscribe (via attach)
    async def on_write(self, event: WriteEvent) -> None:
        if event.bulk or event.collection not in constants.AGGREGATED_COLLECTIONS:
            return

        days = []
        # An edit that moves an event to another day has to refresh both days
        for record in (event.before, event.after):
            for day in self.dates_touched(event.collection, record):
                if day not in days:
                    days.append(day)

        for day in sorted(days):
            await self.resync(day)

    def attach(self) -> "DailyAggregator":
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.on_write)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


# Used by: daily log views (direct edits bypass the aggregator)
async def save_daily_note(
        store: EntityStore,
        day: str,
        note: str,
        symptoms_tags: List[str],
) -> Dict[str, Any]:
    """Write the user-entered fields onto the day's aggregate without touching the derived counts."""
    existing = await store.get(DAILY_LOGS, day)
    if existing is None:
        record = to_record(DailyLog(date=day, note=note, symptoms_tags=list(symptoms_tags)))
    else:
        record = {**existing, "note": note, "symptomsTags": list(symptoms_tags)}
    await store.put(DAILY_LOGS, record)
    return record


async def recent_daily_logs(store: EntityStore, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Aggregates newest first."""
    logs = await store.query_range(DAILY_LOGS, "date", descending=True)
    return logs[:limit] if limit is not None else logs


async def events_on(store: EntityStore, collection: str, day: str) -> List[Dict[str, Any]]:
    """A raw-event collection's records on `day`, in time order."""
    field = "start" if collection == SLEEP_EVENTS else "datetime"
    return await store.query_prefix(collection, field, day)
