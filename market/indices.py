"""Index aggregation -- sector indices and the NOW Average composite.

Index values are pure functions of instrument prices. Nothing else writes
them; `recompute` runs after every tick and after any out-of-tick price
move such as a company action.
"""

from __future__ import annotations

import logging

from core.config import SimulationConfig
from core.models.market import CompositeIndex, Instrument, MarketIndex
from market.simulator import classify
from market.tables import market_status_message

logger = logging.getLogger(__name__)


def composite_value(instruments: list[Instrument], scale: float = 100.0) -> float:
    """Market-cap-weighted mean price times the display scale.

    With no market cap anywhere every instrument is weighted equally.
    """
    if not instruments:
        return 0.0
    total_cap = sum(inst.market_cap for inst in instruments)
    if total_cap <= 0:
        return sum(inst.current_price for inst in instruments) / len(instruments) * scale
    weighted = sum(inst.current_price * inst.market_cap for inst in instruments)
    return weighted / total_cap * scale


def sector_value(members: list[Instrument], base_value: float, previous: bool = False) -> float:
    if not members:
        return 0.0
    prices = [inst.previous_price if previous else inst.current_price for inst in members]
    return sum(prices) / len(prices) * base_value / 100


def percent_change(current: float, prior: float) -> float:
    if prior <= 0:
        return 0.0
    return (current - prior) / prior * 100


class IndexAggregator:
    """Recomputes sector indices and the composite from one instrument snapshot."""

    def __init__(self, config: SimulationConfig) -> None:
        self._config = config

    def recompute(
        self,
        instruments: list[Instrument],
        indices: list[MarketIndex],
        composite: CompositeIndex,
    ) -> None:
        by_id = {inst.id: inst for inst in instruments}
        for index in indices:
            self._recompute_sector(index, [by_id[m] for m in index.members if m in by_id])
        self._recompute_composite(instruments, composite)

    def _recompute_sector(self, index: MarketIndex, members: list[Instrument]) -> None:
        if not members:
            logger.warning("Index %s has no live members; value unchanged", index.id)
            return

        value = sector_value(members, index.base_value)
        prior = index.current_value if index.current_value > 0 else value
        from_previous_prices = sector_value(members, index.base_value, previous=True)

        index.previous_value = prior
        index.current_value = value
        index.percent_change = percent_change(value, prior)
        index.trending = classify(
            percent_change(value, from_previous_prices) / 100,
            self._config.index_dead_zone,
        )
        index.value_history.append(value)

    def _recompute_composite(self, instruments: list[Instrument], composite: CompositeIndex) -> None:
        value = composite_value(instruments, self._config.composite_scale)
        prior = composite.current_value if composite.current_value > 0 else value

        composite.previous_value = prior
        composite.current_value = value
        composite.percent_change = percent_change(value, prior)
        composite.trending = classify(composite.percent_change, self._config.composite_dead_zone)
        composite.status_message = market_status_message(composite.percent_change)
        composite.value_history.append(value)

    @staticmethod
    def reset_day(indices: list[MarketIndex], composite: CompositeIndex) -> None:
        """Day rollover: every history restarts from the value at reopen."""
        for index in indices:
            index.value_history = [index.current_value]
        composite.value_history = [composite.current_value]
