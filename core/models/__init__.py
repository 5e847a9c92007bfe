"""Pydantic data models shared across all components."""

from core.models.events import Event, EventTypes
from core.models.market import (
    CompanyNews,
    CompositeIndex,
    DividendSchedule,
    EarningsSchedule,
    Instrument,
    MarketData,
    MarketIndex,
    NewsItem,
    Sector,
)
from core.models.ledger import Holding, PortfolioPosition, PortfolioSummary, TradeResult, Transaction
from core.models.state import MarketClock, MarketMood, MarketState

__all__ = [
    "Event",
    "EventTypes",
    "CompanyNews",
    "CompositeIndex",
    "DividendSchedule",
    "EarningsSchedule",
    "Instrument",
    "MarketData",
    "MarketIndex",
    "NewsItem",
    "Sector",
    "Holding",
    "PortfolioPosition",
    "PortfolioSummary",
    "TradeResult",
    "Transaction",
    "MarketClock",
    "MarketMood",
    "MarketState",
]
