"""Session state models -- clock, mood and the whole-market snapshot blob."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from core.models.ledger import Holding, Transaction
from core.models.market import CompositeIndex, Instrument, MarketIndex, NewsItem

SessionPhase = Literal["PRE_OPEN", "OPEN", "CLOSED"]
MoodLabel = Literal["bullish", "positive", "neutral", "negative", "bearish"]


class MarketClock(BaseModel):
    """Simulated trading-day clock."""

    day: int = Field(default=1, ge=1)
    hour: int = Field(default=9, ge=0, le=23)
    minute: int = Field(default=30, ge=0, le=59)
    open: bool = True
    phase: SessionPhase = "OPEN"

    @property
    def label(self) -> str:
        return f"Day {self.day} {self.hour:02d}:{self.minute:02d}"


class MarketMood(BaseModel):
    """Bounded, mean-reverting sentiment scalar."""

    value: float = Field(default=0.0, ge=-10.0, le=10.0)
    label: MoodLabel = "neutral"


class MarketState(BaseModel):
    """Everything the simulation owns. Saved and restored as one JSON blob."""

    instruments: list[Instrument] = Field(default_factory=list)
    indices: list[MarketIndex] = Field(default_factory=list)
    composite: CompositeIndex = Field(default_factory=CompositeIndex)
    holdings: list[Holding] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    watchlist: list[str] = Field(default_factory=list)
    news: list[NewsItem] = Field(default_factory=list)
    clock: MarketClock = Field(default_factory=MarketClock)
    mood: MarketMood = Field(default_factory=MarketMood)

    market_status: str = "Market Opening: Trading begins for the day"
    calendar_date: date | None = None
    tick_count: int = 0
    last_update: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_price_record_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def instrument(self, stock_id: str) -> Instrument | None:
        for inst in self.instruments:
            if inst.id == stock_id:
                return inst
        return None

    def holding(self, stock_id: str) -> Holding | None:
        for h in self.holdings:
            if h.stock_id == stock_id:
                return h
        return None

    @property
    def market_trend(self) -> str:
        return self.mood.label
