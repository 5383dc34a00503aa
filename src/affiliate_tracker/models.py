"""Pydantic models for stored entries and the report outputs built from them.

`Entry` is the stored record as read back from the entry store. `CreateEntry`
and `UpdateEntry` carry the write-side validation. `DerivedEntry`, `Bucket`
and `SummaryTotals` are plain computed values handed to renderers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from affiliate_tracker.dates import to_calendar_date

CalendarDate = Annotated[datetime, BeforeValidator(to_calendar_date)]

AdNetwork = Literal["facebook", "newsbreak", "tiktok"]
CpaNetwork = Literal["maxbounty", "performcb", "cashnetwork", "point2web"]
Granularity = Literal["day", "week", "month"]

MAX_AMOUNT = 1_000_000


class EntryStatus(str, Enum):
    """Lifecycle state of an entry."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class Preset(str, Enum):
    """Named date-range shorthands."""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    MONTH_TO_DATE = "mtd"
    QUARTER_TO_DATE = "qtd"
    YEAR_TO_DATE = "ytd"
    CUSTOM = "custom"


class AdSpendLine(BaseModel):
    """Spend attributed to a single ad account."""
    model_config = ConfigDict(extra="forbid")
    id: str = Field(..., min_length=1)
    name: str | None = None
    spend: float = Field(..., ge=0)


class Entry(BaseModel):
    """Schema for a stored daily entry.

    Attributes:
        id: Opaque document identifier.
        owner_id: User who owns the entry.
        date: Business day of the entry (normalized by `to_calendar_date`).
        spend: Amount spent, never negative.
        revenue: Total revenue for the day; preferred over `earnings`.
        earnings: Legacy revenue field kept for older documents.
        profit: Persisted profit; authoritative when present.
        status: `active` or `archived`.
        currency: 3-letter ISO currency code.
        notes: Free text, only used for search.
        ad_spend_details: Per-account ad spend keyed by ad network.
        revenue_sources: Revenue totals keyed by CPA network.
    """
    model_config = ConfigDict(extra="ignore")
    id: str
    owner_id: str
    date: CalendarDate
    spend: float = Field(..., ge=0)
    revenue: float | None = None
    earnings: float | None = None
    profit: float | None = None
    status: EntryStatus = EntryStatus.ACTIVE
    currency: str = Field("USD", pattern=r"^[A-Z]{3}$")
    notes: str | None = None
    ad_spend_details: dict[AdNetwork, list[AdSpendLine]] = Field(default_factory=dict)
    revenue_sources: dict[CpaNetwork, float] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DerivedEntry(Entry):
    """An entry with computed `profit` and `roi_pct` attached."""
    profit: float
    roi_pct: float | None


class _EntryInput(BaseModel):
    """Fields shared by the create and update inputs."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
    revenue: float | None = Field(None, ge=0, lt=MAX_AMOUNT)
    profit: float | None = Field(None, gt=-MAX_AMOUNT, lt=MAX_AMOUNT)
    ad_spend_details: dict[AdNetwork, list[AdSpendLine]] | None = None
    revenue_sources: dict[CpaNetwork, Annotated[float, Field(ge=0)]] | None = None
    currency: str | None = Field(None, pattern=r"^[A-Za-z]{3}$")
    notes: str | None = Field(None, max_length=1000)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str | None) -> str | None:
        return v.upper() if isinstance(v, str) else v


class CreateEntry(_EntryInput):
    """Validated input for a new entry."""
    date: CalendarDate
    spend: float = Field(0.0, ge=0, lt=MAX_AMOUNT)
    currency: str = Field("USD", pattern=r"^[A-Za-z]{3}$")
    status: EntryStatus = EntryStatus.ACTIVE


class UpdateEntry(_EntryInput):
    """Validated partial update; unset fields are left untouched."""
    date: CalendarDate | None = None
    spend: float | None = Field(None, ge=0, lt=MAX_AMOUNT)
    status: EntryStatus | None = None


class ValueRange(BaseModel):
    """Inclusive numeric range."""
    min: float
    max: float


class DateRange(BaseModel):
    """Inclusive datetime range."""
    model_config = ConfigDict(frozen=True)
    start: CalendarDate
    end: CalendarDate


class EntryFilters(BaseModel):
    """Optional filters for list views and reports."""
    date_range: DateRange | None = None
    statuses: list[EntryStatus] | None = None
    roi_range: ValueRange | None = None
    spend_range: ValueRange | None = None
    earnings_range: ValueRange | None = None
    revenue_range: ValueRange | None = None
    search_text: str | None = None


class Bucket(BaseModel):
    """Aggregated totals for one time period."""
    key: str
    sort_key: int
    spend: float
    earnings: float
    profit: float
    roi: float
    count: int = Field(..., ge=0)


class SummaryTotals(BaseModel):
    """Scalar totals over a filtered set of entries."""
    count: int = Field(..., ge=0)
    spend: float
    earnings: float
    profit: float
    avg_roi: float | None


class NetworkTotal(BaseModel):
    """Spend or revenue attributed to one ad/CPA network."""
    network: str
    amount: float
    count: int = Field(..., ge=0)


class EntryPage(BaseModel):
    """One page of entries, newest first."""
    entries: list[Entry]
    has_more: bool
    next_cursor: str | None = None


class UserPreferences(BaseModel):
    """Per-user dashboard preferences."""
    model_config = ConfigDict(extra="ignore")
    currency: str = Field("USD", pattern=r"^[A-Z]{3}$")
    default_preset: Preset = Preset.LAST_30_DAYS
    default_granularity: Granularity = "day"
    include_archived: bool = False
    theme: Literal["light", "dark", "system"] = "system"
