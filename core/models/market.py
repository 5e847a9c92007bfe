"""Market models -- instruments, indices, news items and backfilled price rows."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

Trend = Literal["up", "down", "neutral"]
NewsImpact = Literal["positive", "negative", "neutral", "mixed"]


class Sector(str, Enum):
    """Sectors an instrument can belong to."""

    TECH = "tech"
    RETAIL = "retail"
    FINANCE = "finance"
    AUTO = "auto"
    MEDIA = "media"
    ENERGY = "energy"
    HEALTH = "health"
    FOOD = "food"
    TELECOM = "telecom"
    AEROSPACE = "aerospace"


class EarningsSchedule(BaseModel):
    """Quarterly earnings release: day-of-month in the listed months."""

    day: int = Field(ge=1, le=31)
    months: list[int] = Field(default_factory=list)

    def matches(self, day: int, month: int) -> bool:
        return self.day == day and month in self.months


class DividendSchedule(EarningsSchedule):
    """Dividend payment with a per-share amount."""

    amount: float = Field(ge=0.0)


class CompanyNews(BaseModel):
    """An instrument-specific headline with its own trigger probability."""

    headline: str
    impact: float
    probability: float = Field(ge=0.0, le=1.0)


class Instrument(BaseModel):
    """One tradable company and its live simulation state."""

    # Identity
    id: str
    sector: Sector
    name: str
    full_name: str = ""
    description: str = ""
    logo: str = ""

    # Risk / fundamentals
    volatility: float = Field(gt=0.0)
    beta: float = Field(default=1.0, gt=0.0)
    total_shares: int = Field(gt=0)
    market_cap: float = Field(ge=0.0)
    pe: float | None = None
    revenue: float | None = None
    dividend_yield: float | None = None

    # Market state
    current_price: float = Field(gt=0.0)
    previous_price: float = 0.0
    price_history: list[float] = Field(default_factory=list)
    percent_change: float = 0.0
    trending: Trend = "neutral"
    volume: int = 0
    day_high: float = 0.0
    day_low: float = 0.0
    week_high: float = 0.0
    week_low: float = 0.0

    # Supply/demand and momentum
    buy_pressure: float = Field(default=0.0, ge=0.0)
    sell_pressure: float = Field(default=0.0, ge=0.0)
    price_trend: float = Field(default=0.0, ge=-0.5, le=0.5)

    # Direction since the last snapshot sample
    last_recorded_price: float = 0.0
    price_direction: Trend = "neutral"
    price_change_time: datetime | None = None

    # Ownership mirror (authoritative holdings live in the ledger)
    owned: int = Field(default=0, ge=0)
    company_owned: bool = False

    # Calendar and news tables
    earnings: EarningsSchedule | None = None
    dividend: DividendSchedule | None = None
    # Calendar events fire once per date, however many ticks that date spans
    last_earnings_date: date | None = None
    last_dividend_date: date | None = None
    news: list[CompanyNews] = Field(default_factory=list)
    recent_news: NewsItem | None = None

    # Advisory external series, never drives current_price
    backfill_ticker: str | None = None
    backfill_history: list[float] = Field(default_factory=list)
    backfill_updated_at: datetime | None = None

    @model_validator(mode="after")
    def _fill_price_defaults(self) -> Instrument:
        price = self.current_price
        if self.previous_price <= 0:
            self.previous_price = price
        if self.last_recorded_price <= 0:
            self.last_recorded_price = price
        if self.day_high <= 0:
            self.day_high = price
        if self.day_low <= 0:
            self.day_low = price
        if self.week_high <= 0:
            self.week_high = price
        if self.week_low <= 0:
            self.week_low = price
        if not self.price_history:
            self.price_history = [price]
        return self

    @property
    def market_value(self) -> float:
        return self.current_price * self.total_shares


class MarketIndex(BaseModel):
    """A sector index derived from the mean price of its members."""

    id: str
    name: str
    description: str = ""
    logo: str = ""
    members: list[str] = Field(min_length=1)
    base_value: float = Field(gt=0.0)

    current_value: float = 0.0
    previous_value: float = 0.0
    value_history: list[float] = Field(default_factory=list)
    percent_change: float = 0.0
    trending: Trend = "neutral"


class CompositeIndex(BaseModel):
    """Market-cap-weighted composite over every instrument (the NOW Average)."""

    name: str = "NOW Average"
    description: str = "Market-cap-weighted average of all stocks currently trading"
    current_value: float = 0.0
    previous_value: float = 0.0
    value_history: list[float] = Field(default_factory=list)
    percent_change: float = 0.0
    trending: Trend = "neutral"
    status_message: str = "Market Opening: Trading begins for the day"


class NewsItem(BaseModel):
    """One entry in the market news feed."""

    id: str = Field(default_factory=lambda: f"news_{uuid4().hex[:12]}")
    headline: str
    content: str = ""
    impact: NewsImpact = "neutral"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    company_id: str | None = None
    sectors: list[Sector] | None = None
    is_personal: bool = False
    is_market_wide: bool = False


class MarketData(BaseModel):
    """A single backfilled daily close stored in SQLite."""

    ticker: str
    timestamp: datetime
    close: float
    source: str = ""


Instrument.model_rebuild()
