"""Order ledger -- validates and applies buy/sell orders against the market state.

Rejections (unknown instrument, bad share count, not enough cash or shares)
are returned as TradeResult(success=False). A rejected order leaves cash,
holdings and instrument pressure exactly as they were.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from core.config import SimulationConfig
from core.models.ledger import Holding, TradeResult, Transaction
from core.models.market import Instrument
from core.models.state import MarketState
from core.protocols import CashLedger

logger = logging.getLogger(__name__)


class OrderLedger:
    """Executes player trades with weighted-average cost accounting."""

    def __init__(self, state: MarketState, cash: CashLedger, config: SimulationConfig) -> None:
        self._state = state
        self._cash = cash
        self._config = config

    @property
    def state(self) -> MarketState:
        return self._state

    @state.setter
    def state(self, state: MarketState) -> None:
        self._state = state

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def buy(self, stock_id: str, shares: int) -> TradeResult:
        inst = self._state.instrument(stock_id)
        if inst is None:
            return TradeResult.rejected(f"Unknown stock: {stock_id}")
        if shares <= 0:
            return TradeResult.rejected("Share count must be positive")

        price = inst.current_price
        total = price * shares
        if self._cash.balance < total:
            return TradeResult.rejected(
                f"Insufficient funds: need ${total:,.2f}, have ${self._cash.balance:,.2f}"
            )

        self._cash.debit(total)
        txn = self._record("buy", stock_id, shares, price, total)

        holding = self._state.holding(stock_id)
        if holding is None:
            self._state.holdings.append(Holding(
                stock_id=stock_id,
                shares=shares,
                average_cost=price,
                total_invested=total,
                purchased_at=txn.timestamp,
            ))
        else:
            new_shares = holding.shares + shares
            new_invested = holding.total_invested + total
            holding.shares = new_shares
            holding.average_cost = new_invested / new_shares
            holding.total_invested = new_invested

        weight = self._share_weight(inst, shares)
        inst.buy_pressure += weight * self._config.buy_pressure_per_share
        inst.sell_pressure = max(0.0, inst.sell_pressure - weight * self._config.counter_pressure_per_share)
        self._sync_ownership(inst)

        logger.info("Bought %d %s at %.2f (total %.2f)", shares, stock_id, price, total)
        return TradeResult(
            success=True,
            message=f"Bought {shares} shares of {inst.name} at ${price:,.2f}",
            transaction=txn,
        )

    def sell(self, stock_id: str, shares: int) -> TradeResult:
        inst = self._state.instrument(stock_id)
        if inst is None:
            return TradeResult.rejected(f"Unknown stock: {stock_id}")
        if shares <= 0:
            return TradeResult.rejected("Share count must be positive")

        holding = self._state.holding(stock_id)
        if holding is None:
            return TradeResult.rejected(f"You don't own any shares of {inst.name}")
        if holding.shares < shares:
            return TradeResult.rejected(f"You only own {holding.shares} shares of {inst.name}")

        price = inst.current_price
        total = price * shares
        self._cash.credit(total)
        txn = self._record("sell", stock_id, shares, price, total)

        remaining = holding.shares - shares
        if remaining == 0:
            self._state.holdings.remove(holding)
        else:
            # Average cost is unchanged by a partial sale
            holding.shares = remaining
            holding.total_invested = holding.average_cost * remaining

        weight = self._share_weight(inst, shares)
        inst.sell_pressure += weight * self._config.buy_pressure_per_share
        inst.buy_pressure = max(0.0, inst.buy_pressure - weight * self._config.counter_pressure_per_share)
        self._sync_ownership(inst)

        logger.info("Sold %d %s at %.2f (total %.2f)", shares, stock_id, price, total)
        return TradeResult(
            success=True,
            message=f"Sold {shares} shares of {inst.name} at ${price:,.2f}",
            transaction=txn,
        )

    def toggle_watch(self, stock_id: str) -> TradeResult:
        """Add the instrument to the watchlist, or remove it if already there."""
        inst = self._state.instrument(stock_id)
        if inst is None:
            return TradeResult.rejected(f"Unknown stock: {stock_id}")

        if stock_id in self._state.watchlist:
            self._state.watchlist.remove(stock_id)
            return TradeResult(success=True, message=f"Removed {inst.name} from watchlist")

        self._state.watchlist.append(stock_id)
        return TradeResult(success=True, message=f"Added {inst.name} to watchlist")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record(self, kind: str, stock_id: str, shares: int, price: float, total: float) -> Transaction:
        txn = Transaction(
            type=kind,  # type: ignore[arg-type]
            stock_id=stock_id,
            shares=shares,
            price=price,
            total=total,
            timestamp=datetime.now(timezone.utc),
        )
        # Newest first
        self._state.transactions.insert(0, txn)
        return txn

    @staticmethod
    def _share_weight(inst: Instrument, shares: int) -> float:
        if inst.total_shares <= 0:
            return 0.0
        return shares / inst.total_shares

    def _sync_ownership(self, inst: Instrument) -> None:
        holding = self._state.holding(inst.id)
        inst.owned = holding.shares if holding else 0
        inst.company_owned = inst.owned > self._config.ownership_threshold * inst.total_shares
