"""Pydantic models for the nine record shapes.

Attributes are snake_case; the wire (store and backup) names are camelCase
aliases. Validation here is the input-level checking that forms rely on; the
store itself never validates, so imported or legacy records are accepted as-is.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from babylog.core import constants
from babylog.core.errors import SchemaError
from babylog.core.settings import settings
from babylog.utils.day_window import parse_timestamp, to_local_naive

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


def _check_timestamp(value: str) -> str:
    if parse_timestamp(value) is None:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}")
    return value


# ── ENUMS ────────────────────────────────────────────────────────────────────

class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class FeedType(str, Enum):
    BREAST = "breast"
    FORMULA = "formula"
    MIXED = "mixed"


class FeedSide(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"
    NONE = "none"


class SleepPlace(str, Enum):
    CRIB = "crib"
    HELD = "held"
    STROLLER = "stroller"
    OTHER = "other"


class SleepMethod(str, Enum):
    FED_TO_SLEEP = "fed-to-sleep"
    HELD_TO_SLEEP = "held-to-sleep"
    SELF_SOOTHED = "self-soothed"
    OTHER = "other"


class DiaperKind(str, Enum):
    STOOL = "stool"
    URINE = "urine"


class PoopTexture(str, Enum):
    WATERY = "watery"
    MUSHY = "mushy"
    FORMED = "formed"
    HARD = "hard"


class PoopColor(str, Enum):
    YELLOW = "yellow"
    GREEN = "green"
    BLACK = "black"
    RED = "red"


# ── RECORDS ──────────────────────────────────────────────────────────────────

class Profile(Record):
    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    nickname: Optional[str] = None
    birth_date: str = Field(..., pattern=DATE_PATTERN)
    birth_time: Optional[str] = None
    gender: Optional[Gender] = None
    photo: Optional[str] = None


class DailyLog(Record):
    date: str = Field(..., pattern=DATE_PATTERN)
    milk_times: int = Field(0, ge=0)
    milk_total_ml: Union[int, float] = 0
    poop_times: int = Field(0, ge=0)
    pee_times: int = Field(0, ge=0)
    sleep_hours: float = Field(0, ge=0)
    note: str = ""
    symptoms_tags: List[str] = Field(default_factory=list)


class FeedEvent(Record):
    id: Optional[int] = None
    datetime: str
    type: FeedType
    amount_ml: Optional[float] = Field(None, ge=0)
    duration_min: Optional[float] = Field(None, ge=0)
    side: FeedSide = FeedSide.NONE
    spit_up: bool = False
    burp_ok: bool = False
    note: str = ""

    @field_validator("datetime")
    @classmethod
    def _check_datetime(cls, value: str) -> str:
        return _check_timestamp(value)


class SleepEvent(Record):
    id: Optional[int] = None
    start: str
    end: str
    place: SleepPlace = SleepPlace.CRIB
    method: SleepMethod = SleepMethod.OTHER
    note: str = ""

    @field_validator("start", "end")
    @classmethod
    def _check_bounds(cls, value: str) -> str:
        return _check_timestamp(value)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "SleepEvent":
        # Mixed naive/aware bounds compare as local wall-clock time
        start = to_local_naive(parse_timestamp(self.start), settings.TIMEZONE)
        end = to_local_naive(parse_timestamp(self.end), settings.TIMEZONE)
        if end < start:
            raise ValueError("sleep end is earlier than its start")
        return self


class DiaperEvent(Record):
    """Texture and color are stool-only; a urine record must leave them unset."""

    id: Optional[int] = None
    datetime: str
    kind: DiaperKind
    poop_texture: Optional[PoopTexture] = None
    poop_color: Optional[PoopColor] = None
    note: str = ""

    @field_validator("datetime")
    @classmethod
    def _check_datetime(cls, value: str) -> str:
        return _check_timestamp(value)

    @model_validator(mode="after")
    def _stool_only_fields(self) -> "DiaperEvent":
        if self.kind == DiaperKind.URINE and (self.poop_texture or self.poop_color):
            raise ValueError("poopTexture/poopColor only apply to stool")
        return self


class GrowthRecord(Record):
    id: Optional[int] = None
    date: str = Field(..., pattern=DATE_PATTERN)
    weight_kg: Optional[float] = Field(None, gt=0)
    height_cm: Optional[float] = Field(None, gt=0)
    head_cm: Optional[float] = Field(None, gt=0)
    note: str = ""

    @model_validator(mode="after")
    def _at_least_one_measurement(self) -> "GrowthRecord":
        if self.weight_kg is None and self.height_cm is None and self.head_cm is None:
            raise ValueError("growth record needs weight, height or head circumference")
        return self


class VaccineRecord(Record):
    id: Optional[int] = None
    date: str = Field(..., pattern=DATE_PATTERN)
    name: str = Field(..., min_length=1)
    reaction: str = ""
    note: str = ""


class Milestone(Record):
    id: Optional[int] = None
    date: str = Field(..., pattern=DATE_PATTERN)
    title: str = Field(..., min_length=1)
    description: str = ""
    tags: List[str] = Field(default_factory=list)


class JournalEntry(Record):
    id: Optional[int] = None
    datetime: str
    title: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)
    context: str = ""
    action: str = ""
    result: str = ""
    next: str = ""
    mood: Optional[str] = None

    @field_validator("datetime")
    @classmethod
    def _check_datetime(cls, value: str) -> str:
        return _check_timestamp(value)


MODEL_BY_COLLECTION: Dict[str, Type[Record]] = {
    constants.PROFILES: Profile,
    constants.DAILY_LOGS: DailyLog,
    constants.FEED_EVENTS: FeedEvent,
    constants.SLEEP_EVENTS: SleepEvent,
    constants.DIAPER_EVENTS: DiaperEvent,
    constants.GROWTH_RECORDS: GrowthRecord,
    constants.VACCINE_RECORDS: VaccineRecord,
    constants.MILESTONES: Milestone,
    constants.JOURNAL_ENTRIES: JournalEntry,
}


# Used by: EntityStore (models passed to add/put), DailyAggregator
def to_record(model: BaseModel) -> Dict[str, Any]:
    """Wire dict: camelCase keys, unset optionals omitted."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_record(collection: str, record: Dict[str, Any]) -> Record:
    model = MODEL_BY_COLLECTION.get(collection)
    if model is None:
        raise SchemaError(f"Unknown collection: {collection!r}")
    return model.model_validate(record)
