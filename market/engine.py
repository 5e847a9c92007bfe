"""Market engine -- the one owner of MarketState.

Every mutation of the simulation goes through a MarketEngine method. The
engine itself is synchronous and never awaits: the scheduler serializes
calls into it and turns the returned reports into bus events.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from core.config import MarketConfig, SimulationConfig
from core.models.ledger import Holding, PortfolioSummary, TradeResult, Transaction
from core.models.market import CompositeIndex, Instrument, MarketIndex, NewsItem
from core.models.state import MarketClock, MarketMood, MarketState
from core.protocols import CashLedger, RandomSource
from ledger.orders import OrderLedger
from ledger.portfolio import PortfolioTracker
from market.catalog import COMPANIES, build_indices, build_instrument
from market.clock import ClockStep, advance_clock, opening_clock
from market.indices import IndexAggregator
from market.mood import market_move_news, update_mood
from market.simulator import PriceSimulator, clamp
from market.tables import COMPANY_ACTIONS

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """What one fast tick did, for the scheduler to publish."""

    ticked: bool = False
    news: list[NewsItem] = field(default_factory=list)
    dividends: list[tuple[str, float]] = field(default_factory=list)
    composite_value: float = 0.0
    composite_change: float = 0.0


def build_initial_state(
    market: MarketConfig,
    simulation: SimulationConfig,
    rng: RandomSource | None = None,
    companies: list[dict] | None = None,
) -> MarketState:
    """Fresh state from the catalog, with indices computed once."""
    instruments = [build_instrument(entry, rng) for entry in (companies or COMPANIES)]
    indices = build_indices(instruments)
    composite = CompositeIndex()

    IndexAggregator(simulation).recompute(instruments, indices, composite)
    IndexAggregator.reset_day(indices, composite)

    calendar = date.fromisoformat(market.calendar_date) if market.calendar_date else None
    return MarketState(
        instruments=instruments,
        indices=indices,
        composite=composite,
        clock=opening_clock(market),
        calendar_date=calendar,
    )


class MarketEngine:
    """Applies ticks, trades and backfill results to one MarketState.

    Usage:
        engine = MarketEngine(config.market, config.simulation, Wallet(10_000))
        report = engine.tick()
        result = engine.buy("MSOFT", 10)
    """

    def __init__(
        self,
        market: MarketConfig,
        simulation: SimulationConfig,
        cash: CashLedger,
        rng: RandomSource | None = None,
        state: MarketState | None = None,
    ) -> None:
        self._market = market
        self._simulation = simulation
        self._cash = cash
        self._rng: RandomSource = rng if rng is not None else random.Random(market.seed)
        self._state = state if state is not None else build_initial_state(market, simulation, self._rng)

        self._simulator = PriceSimulator(simulation, self._rng)
        self._aggregator = IndexAggregator(simulation)
        self._orders = OrderLedger(self._state, cash, simulation)
        self._portfolio = PortfolioTracker(self._state)

    @property
    def state(self) -> MarketState:
        return self._state

    @property
    def cash(self) -> CashLedger:
        return self._cash

    def restore(self, state: MarketState) -> None:
        """Swap in a restored snapshot. Missed ticks are not replayed."""
        self._state = state
        self._orders.state = state
        self._portfolio.state = state
        logger.info(
            "Restored market state: %d instruments, %d holdings, %s",
            len(state.instruments),
            len(state.holdings),
            state.clock.label,
        )

    # ------------------------------------------------------------------
    # Periodic work
    # ------------------------------------------------------------------

    def tick(self) -> TickReport:
        """One fast tick: move every price, recompute indices, update mood."""
        state = self._state
        report = TickReport()
        state.tick_count += 1
        state.last_update = datetime.now(timezone.utc)

        if not state.clock.open:
            return report

        ctx = self._simulator.prepare(state.mood.value, self.today())
        if ctx.market_event is not None:
            event = ctx.market_event
            report.news.append(NewsItem(
                headline=event.headline,
                content="Market-wide news affecting multiple sectors.",
                impact=event.impact,
                sectors=list(event.sectors),
                is_market_wide=True,
            ))

        for inst in state.instruments:
            outcome = self._simulator.advance(inst, ctx, self._market.history_limit)
            report.news.extend(outcome.news)
            if outcome.dividend_credit > 0:
                self._cash.credit(outcome.dividend_credit)
                report.dividends.append((inst.id, outcome.dividend_credit))
                logger.info("Dividend from %s: %.2f", inst.id, outcome.dividend_credit)

        self._aggregator.recompute(state.instruments, state.indices, state.composite)

        change = state.composite.percent_change
        update_mood(state.mood, change)
        state.market_status = state.composite.status_message
        move = market_move_news(change, self._simulation.market_move_news_threshold)
        if move is not None:
            report.news.append(move)

        self.add_news(report.news)
        report.ticked = True
        report.composite_value = state.composite.current_value
        report.composite_change = change
        return report

    def advance_clock(self) -> ClockStep:
        """One clock step; a rollover resets day-scoped history."""
        state = self._state
        step = advance_clock(state.clock, self._market)

        if step.closed:
            state.market_status = "Market Closed: Trading has ended for the day"
        if step.rolled_over:
            self._roll_day(step.new_week)
        if step.opened:
            state.market_status = "Market Opening: Trading begins for the day"
        return step

    def _roll_day(self, new_week: bool) -> None:
        state = self._state
        self._aggregator.reset_day(state.indices, state.composite)
        for inst in state.instruments:
            inst.day_high = inst.current_price
            inst.day_low = inst.current_price
            if new_week:
                inst.week_high = inst.current_price
                inst.week_low = inst.current_price
        if state.calendar_date is not None:
            state.calendar_date += timedelta(days=1)
        logger.info("Rolled over to day %d", state.clock.day)

    def record_snapshot(self) -> int:
        """Sample direction since the last snapshot. Returns how many instruments moved."""
        now = datetime.now(timezone.utc)
        moved = 0
        for inst in self._state.instruments:
            if inst.current_price > inst.last_recorded_price:
                inst.price_direction = "up"
            elif inst.current_price < inst.last_recorded_price:
                inst.price_direction = "down"
            else:
                inst.price_direction = "neutral"

            if inst.price_direction != "neutral":
                inst.price_change_time = now
                moved += 1
            inst.last_recorded_price = inst.current_price

        self._state.last_price_record_time = now
        return moved

    def today(self) -> date:
        return self._state.calendar_date or date.today()

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def buy(self, stock_id: str, shares: int) -> TradeResult:
        return self._orders.buy(stock_id, shares)

    def sell(self, stock_id: str, shares: int) -> TradeResult:
        return self._orders.sell(stock_id, shares)

    def toggle_watch(self, stock_id: str) -> TradeResult:
        return self._orders.toggle_watch(stock_id)

    def take_company_action(self, stock_id: str) -> TradeResult:
        """Corporate action by a controlling shareholder; moves the price at once."""
        inst = self._state.instrument(stock_id)
        if inst is None:
            return TradeResult.rejected(f"Unknown stock: {stock_id}")
        if not inst.company_owned:
            return TradeResult.rejected(
                f"You need to own more than {self._simulation.ownership_threshold:.0%} "
                f"of {inst.name} to take company actions"
            )

        action = self._rng.choice(COMPANY_ACTIONS)
        breaker = self._simulation.circuit_breaker
        self._simulator.apply_change(inst, clamp(action.impact, -breaker, breaker), self._market.history_limit)
        state = self._state
        self._aggregator.recompute(state.instruments, state.indices, state.composite)

        news = NewsItem(
            headline=f"{inst.name} announces {action.action.lower()}",
            content=action.description,
            impact="positive" if action.impact > 0 else "negative",
            company_id=inst.id,
        )
        inst.recent_news = news
        self.add_news([news])

        logger.info("Company action on %s: %s (%+.1f%%)", stock_id, action.action, action.impact * 100)
        return TradeResult(success=True, message=f"{action.action}: {action.description}")

    # ------------------------------------------------------------------
    # Backfill
    # ------------------------------------------------------------------

    def apply_backfill(self, stock_id: str, ticker: str, closes: list[float]) -> bool:
        """Merge an external close series into the advisory chart buffer."""
        inst = self._state.instrument(stock_id)
        if inst is None:
            logger.warning("Backfill for unknown instrument %s dropped", stock_id)
            return False
        inst.backfill_ticker = ticker
        inst.backfill_history = list(closes)
        inst.backfill_updated_at = datetime.now(timezone.utc)
        return True

    # ------------------------------------------------------------------
    # News feed
    # ------------------------------------------------------------------

    def add_news(self, items: list[NewsItem]) -> None:
        """Prepend items newest-first and keep the feed bounded."""
        if not items:
            return
        feed = self._state.news
        for item in items:
            feed.insert(0, item)
        del feed[self._market.news_limit:]

    # ------------------------------------------------------------------
    # Read-only snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> MarketState:
        return self._state.model_copy(deep=True)

    def instruments(self) -> list[Instrument]:
        return [inst.model_copy(deep=True) for inst in self._state.instruments]

    def instrument(self, stock_id: str) -> Instrument | None:
        inst = self._state.instrument(stock_id)
        return inst.model_copy(deep=True) if inst else None

    def indices(self) -> list[MarketIndex]:
        return [index.model_copy(deep=True) for index in self._state.indices]

    def composite(self) -> CompositeIndex:
        return self._state.composite.model_copy(deep=True)

    def holdings(self) -> list[Holding]:
        return [h.model_copy() for h in self._state.holdings]

    def transactions(self, limit: int | None = None) -> list[Transaction]:
        txns = self._state.transactions
        return list(txns[:limit] if limit is not None else txns)

    def news(self) -> list[NewsItem]:
        return [n.model_copy() for n in self._state.news]

    def clock(self) -> MarketClock:
        return self._state.clock.model_copy()

    def mood(self) -> MarketMood:
        return self._state.mood.model_copy()

    def watchlist(self) -> list[str]:
        return list(self._state.watchlist)

    def portfolio(self) -> PortfolioSummary:
        return self._portfolio.get_summary()
