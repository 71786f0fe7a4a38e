"""Core Data Models - Pydantic models for type safety.

All models are value objects with no behavior beyond validation.
Entries carry an explicit ``kind`` discriminant; it is never persisted because
the sequence an entry lives in already implies it.
"""

from datetime import date as DateType
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


EntryKind = Literal["walks", "meals", "snacks"]
ENTRY_KINDS: tuple[EntryKind, ...] = ("walks", "meals", "snacks")


class WalkEntry(BaseModel):
    """A walk, identified only by when it happened."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["walk"] = "walk"
    time: Any = Field(default=None, description="ISO-8601 instant; legacy data may hold epoch ms or junk")


class MealEntry(BaseModel):
    """A meal with its portion weight."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["meal"] = "meal"
    time: str = Field(min_length=1, description="ISO-8601 instant")
    weight: int = Field(gt=0, description="Portion weight in grams")


class SnackEntry(BaseModel):
    """A snack with its type and how many were given."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["snack"] = "snack"
    time: str = Field(min_length=1, description="ISO-8601 instant")
    type: str = Field(min_length=1, description="Snack type, e.g. 'biscuit'")
    quantity: int = Field(gt=0, description="Number of pieces")


Entry = Annotated[Union[WalkEntry, MealEntry, SnackEntry], Field(discriminator="kind")]


class DayLog(BaseModel):
    """All entries recorded for one calendar day.

    Records that failed validation are kept aside in ``quarantined`` (keyed by
    sequence name) so that writing the day back never loses them.
    """

    walks: list[WalkEntry] = Field(default_factory=list)
    meals: list[MealEntry] = Field(default_factory=list)
    snacks: list[SnackEntry] = Field(default_factory=list)
    quarantined: dict[str, list[Any]] = Field(default_factory=dict)


class DayHandle(BaseModel):
    """Resolved document identity for a calendar day."""

    key: str = Field(description="'main' for today, YYYY-MM-DD otherwise")
    day: DateType
    is_today: bool
    created: bool = Field(default=False, description="True if this resolve created the document")


class WeatherReading(BaseModel):
    """Current conditions reported by the weather provider."""

    temperature: float = Field(description="Degrees Celsius")
    humidity: int = Field(ge=0, le=100, description="Relative humidity in percent")
    wind_speed: float = Field(ge=0, description="Wind speed in m/s")
    description: str
    icon: str = Field(description="Provider icon code, e.g. '10d'")
    emoji: str


class WeatherStatus(BaseModel):
    """Last known weather state shown on the dashboard."""

    reading: Optional[WeatherReading] = None
    error: bool = Field(default=False, description="True only if no reading was ever obtained")


class DashboardView(BaseModel):
    """Snapshot of everything the dashboard renders."""

    selected_date: DateType
    is_today: bool
    history_mode: bool
    can_edit: bool
    log: DayLog
    walk_due: bool
    next_walk: str
    catalog: list[DateType] = Field(default_factory=list)
    has_more_history: bool = False
    weather: WeatherStatus = Field(default_factory=WeatherStatus)
