"""Portfolio tracker -- values the player's holdings at current market prices."""

from __future__ import annotations

import logging

from core.models.ledger import PortfolioPosition, PortfolioSummary
from core.models.state import MarketState

logger = logging.getLogger(__name__)


class PortfolioTracker:
    """Read-only view over the holdings in a MarketState."""

    def __init__(self, state: MarketState) -> None:
        self._state = state

    @property
    def state(self) -> MarketState:
        return self._state

    @state.setter
    def state(self, state: MarketState) -> None:
        self._state = state

    # ------------------------------------------------------------------
    # Read portfolio state
    # ------------------------------------------------------------------

    def get_position(self, stock_id: str) -> PortfolioPosition | None:
        holding = self._state.holding(stock_id)
        if holding is None:
            return None

        inst = self._state.instrument(stock_id)
        if inst is None:
            logger.warning("Holding %s has no matching instrument", stock_id)
            return None

        current_value = inst.current_price * holding.shares
        profit = current_value - holding.total_invested
        return PortfolioPosition(
            stock_id=stock_id,
            name=inst.name,
            shares=holding.shares,
            average_cost=holding.average_cost,
            total_cost=holding.total_invested,
            current_price=inst.current_price,
            current_value=current_value,
            profit=profit,
            profit_percent=(profit / holding.total_invested * 100) if holding.total_invested else 0,
        )

    def list_positions(self) -> list[PortfolioPosition]:
        positions = []
        for holding in self._state.holdings:
            position = self.get_position(holding.stock_id)
            if position is not None:
                positions.append(position)
        return positions

    def get_summary(self) -> PortfolioSummary:
        positions = self.list_positions()
        total_value = sum(p.current_value for p in positions)
        total_cost = sum(p.total_cost for p in positions)
        total_profit = total_value - total_cost

        return PortfolioSummary(
            positions=positions,
            total_value=total_value,
            total_cost=total_cost,
            total_profit=total_profit,
            total_profit_percent=(total_profit / total_cost * 100) if total_cost else 0,
        )
