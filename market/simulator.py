"""Price simulator -- advances one instrument by one tick.

Per tick the model blends:
1. a sector impact (market trend + sector random draw + market news)
2. an idiosyncratic draw scaled by volatility and beta
3. a smoothed momentum term (price_trend)
4. a supply/demand term from buy/sell pressure
then applies calendar events (earnings, dividends), random company news,
the circuit breaker and the price floor. Pressure decays every tick.

Nothing here raises during a tick: every division is guarded and every
result is clamped.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from core.config import SimulationConfig
from core.models.market import Instrument, NewsItem, Sector
from core.protocols import RandomSource
from market.tables import MARKET_NEWS_EVENTS, MARKET_SENTIMENT, SECTOR_TRENDS, MarketNewsEvent

logger = logging.getLogger(__name__)

PRICE_FLOOR = 0.01
TREND_LIMIT = 0.5


@dataclass
class TickContext:
    """Market-wide inputs shared by every instrument in one tick."""

    market_trend: float
    sector_impacts: dict[Sector, float]
    today: date
    market_event: MarketNewsEvent | None = None


@dataclass
class InstrumentTick:
    """What one instrument's tick produced besides its new state."""

    raw_change: float = 0.0
    news: list[NewsItem] = field(default_factory=list)
    dividend_credit: float = 0.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def classify(change: float, dead_zone: float) -> str:
    """Map a change onto up/down/neutral with a symmetric dead zone."""
    if change > dead_zone:
        return "up"
    if change < -dead_zone:
        return "down"
    return "neutral"


class PriceSimulator:
    """Stochastic per-instrument price model.

    Usage:
        sim = PriceSimulator(config.simulation, rng)
        ctx = sim.prepare(mood_value=state.mood.value, today=date.today())
        for inst in instruments:
            outcome = sim.advance(inst, ctx, history_limit=60)
    """

    def __init__(self, config: SimulationConfig, rng: RandomSource) -> None:
        self._config = config
        self._rng = rng

    # ------------------------------------------------------------------
    # Market-wide draws
    # ------------------------------------------------------------------

    def prepare(self, mood_value: float, today: date) -> TickContext:
        """Draw the market trend, an optional market news event and sector impacts."""
        market_trend = self.market_trend(mood_value)
        event = self.draw_market_event()
        return TickContext(
            market_trend=market_trend,
            sector_impacts=self.sector_impacts(market_trend, event),
            today=today,
            market_event=event,
        )

    def market_trend(self, mood_value: float) -> float:
        """Fresh sentiment draw blended with mood momentum (mood is on a +/-10 scale)."""
        cfg = self._config
        sentiment = self._rng.uniform(MARKET_SENTIMENT.min, MARKET_SENTIMENT.max)
        return sentiment * cfg.sentiment_weight + (mood_value / 100) * cfg.mood_weight

    def draw_market_event(self) -> MarketNewsEvent | None:
        if self._rng.random() < self._config.market_news_probability:
            return self._rng.choice(MARKET_NEWS_EVENTS)
        return None

    def sector_impacts(
        self,
        market_trend: float,
        event: MarketNewsEvent | None = None,
    ) -> dict[Sector, float]:
        cfg = self._config
        impacts: dict[Sector, float] = {}
        for sector, trend_range in SECTOR_TRENDS.items():
            sector_random = self._rng.uniform(trend_range.min, trend_range.max)
            impact = market_trend * cfg.market_trend_weight + sector_random * cfg.sector_random_weight

            if event is not None and sector in event.sectors:
                impact += self._event_direction(event) * event.magnitude

            impacts[sector] = impact
        return impacts

    def _event_direction(self, event: MarketNewsEvent) -> int:
        if event.impact == "positive":
            return 1
        if event.impact == "negative":
            return -1
        # mixed / neutral news moves each sector a random way
        return 1 if self._rng.random() > 0.5 else -1

    # ------------------------------------------------------------------
    # Per-instrument tick
    # ------------------------------------------------------------------

    def advance(self, inst: Instrument, ctx: TickContext, history_limit: int = 60) -> InstrumentTick:
        """Advance one instrument in place and report news and dividend credit."""
        cfg = self._config
        outcome = InstrumentTick()

        sector_impact = ctx.sector_impacts.get(inst.sector, 0.0)
        idio = self._rng.uniform(-1.0, 1.0) * inst.volatility * inst.beta

        inst.price_trend = clamp(
            inst.price_trend * cfg.trend_memory + (sector_impact + idio) * (1 - cfg.trend_memory),
            -TREND_LIMIT,
            TREND_LIMIT,
        )

        pressure_term = (inst.buy_pressure - inst.sell_pressure) * cfg.pressure_factor

        change = (
            cfg.blend_weight * (sector_impact * cfg.sector_weight + idio * cfg.idiosyncratic_weight)
            + cfg.trend_weight * inst.price_trend
            + cfg.pressure_weight * pressure_term
        )

        change += self._earnings(inst, ctx.today, outcome)
        change += self._dividend(inst, ctx.today, outcome)
        change += self._company_news(inst, outcome)

        change = clamp(change, -cfg.circuit_breaker, cfg.circuit_breaker)
        outcome.raw_change = change

        self.apply_change(inst, change, history_limit)
        self._update_volume(inst, change)
        self.decay_pressure(inst, cfg.pressure_decay)

        return outcome

    def apply_change(self, inst: Instrument, change: float, history_limit: int = 60) -> float:
        """Move the price by a fractional change, floor-clamped. Returns the new price."""
        old_price = inst.current_price
        new_price = max(PRICE_FLOOR, old_price * (1 + change))

        inst.previous_price = old_price
        inst.current_price = new_price
        inst.price_history.append(new_price)
        if len(inst.price_history) > history_limit:
            del inst.price_history[:-history_limit]

        inst.percent_change = (new_price / old_price - 1) * 100 if old_price > 0 else 0.0
        inst.trending = classify(change, self._config.trend_dead_zone)

        inst.day_high = max(inst.day_high, new_price)
        inst.day_low = min(inst.day_low, new_price)
        inst.week_high = max(inst.week_high, new_price)
        inst.week_low = min(inst.week_low, new_price)
        return new_price

    @staticmethod
    def decay_pressure(inst: Instrument, factor: float) -> None:
        inst.buy_pressure *= factor
        inst.sell_pressure *= factor

    def _update_volume(self, inst: Instrument, change: float) -> None:
        # Bigger moves trade more shares
        jitter = 0.75 + self._rng.random() * 0.5
        inst.volume += int(abs(change) * inst.total_shares * 0.05 * jitter)

    # ------------------------------------------------------------------
    # Calendar and news
    # ------------------------------------------------------------------

    def _earnings(self, inst: Instrument, today: date, outcome: InstrumentTick) -> float:
        if inst.earnings is None or not inst.earnings.matches(today.day, today.month):
            return 0.0
        if inst.last_earnings_date == today:
            return 0.0
        inst.last_earnings_date = today

        # High P/E names are punished harder on a miss and rewarded less on a beat
        pe_multiplier = min(math.sqrt(inst.pe / 20), 1.5) if inst.pe and inst.pe > 0 else 1.0

        result = self._rng.random()
        if result > 0.6:
            impact = (self._rng.random() * 0.05 + 0.02) / pe_multiplier
            headline = f"{inst.name} beats earnings expectations"
        elif result > 0.25:
            impact = self._rng.random() * 0.02 - 0.01
            headline = f"{inst.name} meets earnings expectations"
        else:
            impact = -(self._rng.random() * 0.06 + 0.03) * pe_multiplier
            headline = f"{inst.name} misses earnings expectations"

        outcome.news.append(NewsItem(
            headline=headline,
            content=f"{inst.name} reported quarterly earnings.",
            impact="positive" if impact > 0 else "negative" if impact < 0 else "neutral",
            company_id=inst.id,
        ))
        logger.info("Earnings for %s: %+.2f%%", inst.id, impact * 100)
        return impact

    def _dividend(self, inst: Instrument, today: date, outcome: InstrumentTick) -> float:
        dividend = inst.dividend
        if dividend is None or not dividend.matches(today.day, today.month):
            return 0.0
        if inst.last_dividend_date == today:
            return 0.0
        inst.last_dividend_date = today

        outcome.news.append(NewsItem(
            headline=f"{inst.name} pays quarterly dividend of ${dividend.amount:.2f} per share",
            content="Shareholders of record received dividends today.",
            impact="positive",
            company_id=inst.id,
        ))

        if inst.owned > 0:
            credit = inst.owned * dividend.amount
            outcome.dividend_credit = credit
            outcome.news.append(NewsItem(
                headline=f"You received ${credit:,.2f} in dividends from {inst.name}",
                content=f"Dividend payment for {inst.owned} shares at ${dividend.amount:.2f} per share.",
                impact="positive",
                company_id=inst.id,
                is_personal=True,
            ))

        return self._config.dividend_bump

    def _company_news(self, inst: Instrument, outcome: InstrumentTick) -> float:
        if not inst.news or self._rng.random() >= self._config.company_news_probability:
            return 0.0

        item = self._rng.choice(inst.news)
        if self._rng.random() >= item.probability:
            return 0.0

        news = NewsItem(
            headline=item.headline,
            content=f"News specific to {inst.name}.",
            impact="positive" if item.impact > 0 else "negative",
            company_id=inst.id,
            timestamp=datetime.now(timezone.utc),
        )
        inst.recent_news = news
        outcome.news.append(news)
        return item.impact
