"""Event model -- the message format published on the in-process bus."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


class Event(BaseModel):
    """A typed event that flows through the EventBus.

    The scheduler publishes these after each applied message so observers
    (HTTP stream, audit log) never touch simulation state directly.
    Types are dotted "<family>.<name>" strings, see EventTypes.
    """

    id: str = Field(default_factory=lambda: f"evt_{uuid4().hex[:12]}")
    type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    payload: dict = Field(default_factory=dict)

    @property
    def family(self) -> str:
        return self.type.split(".", 1)[0]


# -- Event type constants --

class EventTypes:
    """Well-known event type strings."""

    # Price loop
    MARKET_TICK = "market.tick"
    MARKET_SNAPSHOT = "market.snapshot"
    MARKET_NEWS = "market.news"
    MARKET_DAY_CLOSED = "market.day_closed"
    MARKET_DAY_OPENED = "market.day_opened"

    # Ledger
    TRADE_EXECUTED = "trade.executed"
    TRADE_REJECTED = "trade.rejected"
    DIVIDEND_PAID = "dividend.paid"
    COMPANY_ACTION = "company.action"
    WATCHLIST_CHANGED = "watchlist.changed"

    # Background work
    BACKFILL_COMPLETED = "backfill.completed"
    SNAPSHOT_SAVED = "snapshot.saved"


# Published every tick or every few ticks; kept out of the audit trail by default
HIGH_FREQUENCY_EVENTS = frozenset({EventTypes.MARKET_TICK, EventTypes.MARKET_SNAPSHOT})
