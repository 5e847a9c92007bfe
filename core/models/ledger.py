"""Ledger models -- holdings, transactions, trade results and portfolio views."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field


class Holding(BaseModel):
    """The player's position in one instrument (weighted-average cost basis)."""

    stock_id: str
    shares: int = Field(gt=0)
    average_cost: float = Field(ge=0.0)
    total_invested: float = Field(ge=0.0)
    purchased_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Transaction(BaseModel):
    """Immutable audit record of an executed trade."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: f"txn_{uuid4().hex[:12]}")
    type: Literal["buy", "sell"]
    stock_id: str
    shares: int
    price: float
    total: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TradeResult(BaseModel):
    """Outcome of a trade request. Rejections are results, not exceptions."""

    success: bool
    message: str
    transaction: Transaction | None = None

    @classmethod
    def rejected(cls, message: str) -> TradeResult:
        return cls(success=False, message=message)


class PortfolioPosition(BaseModel):
    """A holding valued at the current market price."""

    stock_id: str
    name: str = ""
    shares: int
    average_cost: float
    total_cost: float
    current_price: float
    current_value: float
    profit: float
    profit_percent: float


class PortfolioSummary(BaseModel):
    """All open positions plus totals."""

    positions: list[PortfolioPosition] = Field(default_factory=list)
    total_value: float = 0.0
    total_cost: float = 0.0
    total_profit: float = 0.0
    total_profit_percent: float = 0.0
