from datetime import date

import pytest
from pydantic import ValidationError

from core.config import SimulationConfig
from core.models.market import CompanyNews, DividendSchedule, EarningsSchedule, Sector
from market.simulator import PriceSimulator, TickContext
from market.tables import MARKET_NEWS_EVENTS
from tests.conftest import NeutralRandom, ScriptedRandom, make_instrument

TODAY = date(2026, 1, 2)


def neutral_context(**overrides) -> TickContext:
    fields = {"market_trend": 0.0, "sector_impacts": {s: 0.0 for s in Sector}, "today": TODAY}
    fields.update(overrides)
    return TickContext(**fields)


def test_baseline_tick_leaves_price_unchanged():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(current_price=100.0, volatility=0.01, beta=1.0)

    ctx = sim.prepare(mood_value=0.0, today=TODAY)
    outcome = sim.advance(inst, ctx)

    assert outcome.raw_change == 0.0
    assert inst.current_price == 100.0
    assert inst.previous_price == 100.0
    assert inst.percent_change == 0.0
    assert inst.trending == "neutral"


def test_non_positive_risk_parameters_are_rejected():
    with pytest.raises(ValidationError):
        make_instrument(volatility=0.0)
    with pytest.raises(ValidationError):
        make_instrument(beta=-1.0)
    with pytest.raises(ValidationError):
        make_instrument(total_shares=0)


def test_circuit_breaker_caps_upward_move():
    sim = PriceSimulator(SimulationConfig(), ScriptedRandom(uniform="max"))
    inst = make_instrument(current_price=100.0, volatility=0.5, beta=2.0)

    outcome = sim.advance(inst, sim.prepare(0.0, TODAY))

    assert outcome.raw_change == pytest.approx(0.09)
    assert inst.current_price == pytest.approx(109.0)
    assert inst.percent_change == pytest.approx(9.0)
    assert inst.trending == "up"


def test_price_stays_positive_and_bounded_under_sustained_selling():
    sim = PriceSimulator(SimulationConfig(), ScriptedRandom(uniform="min"))
    inst = make_instrument(current_price=0.05, volatility=0.9, beta=3.0, sell_pressure=50.0)

    for _ in range(300):
        sim.advance(inst, sim.prepare(-10.0, TODAY))
        assert inst.current_price >= 0.01
        assert abs(inst.percent_change) <= 9.0 + 1e-9

    assert inst.current_price == pytest.approx(0.01)


def test_price_trend_is_smoothed_and_clamped():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(price_trend=0.5)
    ctx = neutral_context(sector_impacts={s: 100.0 for s in Sector})

    sim.advance(inst, ctx)

    assert inst.price_trend == 0.5


def test_pressure_decays_monotonically():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(buy_pressure=1.0, sell_pressure=0.4)

    previous = (inst.buy_pressure, inst.sell_pressure)
    for _ in range(50):
        sim.advance(inst, neutral_context())
        assert inst.buy_pressure <= previous[0]
        assert inst.sell_pressure <= previous[1]
        previous = (inst.buy_pressure, inst.sell_pressure)

    assert inst.buy_pressure == pytest.approx(0.995 ** 50)


def test_buy_pressure_pushes_price_up():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(buy_pressure=1.0)

    outcome = sim.advance(inst, neutral_context())

    # 0.2 weight on (1.0 * 0.15)
    assert outcome.raw_change == pytest.approx(0.03)
    assert inst.current_price == pytest.approx(103.0)


def test_earnings_beat_without_pe():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(earnings=EarningsSchedule(day=TODAY.day, months=[TODAY.month]))

    outcome = sim.advance(inst, neutral_context())

    # random() == 0.99 -> beat: 0.99 * 0.05 + 0.02
    assert outcome.raw_change == pytest.approx(0.0695)
    assert "beats" in outcome.news[0].headline
    assert outcome.news[0].company_id == "TEST"


def test_earnings_miss_is_scaled_up_by_high_pe():
    sim = PriceSimulator(SimulationConfig(), ScriptedRandom(randoms=[0.1, 0.0]))
    inst = make_instrument(pe=80.0, earnings=EarningsSchedule(day=TODAY.day, months=[TODAY.month]))

    outcome = sim.advance(inst, neutral_context())

    # miss: -(0 * 0.06 + 0.03) * min(sqrt(80 / 20), 1.5)
    assert outcome.raw_change == pytest.approx(-0.045)
    assert outcome.news[0].impact == "negative"


def test_earnings_only_on_matching_date():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(earnings=EarningsSchedule(day=TODAY.day, months=[TODAY.month + 1]))

    outcome = sim.advance(inst, neutral_context())

    assert outcome.news == []
    assert inst.current_price == 100.0


def test_dividend_credits_owner_and_bumps_price():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(
        owned=10,
        dividend=DividendSchedule(day=TODAY.day, months=[TODAY.month], amount=0.5),
    )

    outcome = sim.advance(inst, neutral_context())

    assert outcome.dividend_credit == pytest.approx(5.0)
    assert outcome.raw_change == pytest.approx(0.003)
    assert [n.is_personal for n in outcome.news] == [False, True]


def test_dividend_without_shares_credits_nothing():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(dividend=DividendSchedule(day=TODAY.day, months=[TODAY.month], amount=0.5))

    outcome = sim.advance(inst, neutral_context())

    assert outcome.dividend_credit == 0.0
    assert len(outcome.news) == 1


def test_company_news_applies_item_impact():
    sim = PriceSimulator(SimulationConfig(), ScriptedRandom(randoms=[0.0, 0.0]))
    inst = make_instrument(news=[CompanyNews(headline="Test Co wins award", impact=0.02, probability=0.5)])

    outcome = sim.advance(inst, neutral_context())

    assert outcome.raw_change == pytest.approx(0.02)
    assert inst.recent_news is not None
    assert inst.recent_news.headline == "Test Co wins award"


def test_company_news_second_gate_uses_item_probability():
    sim = PriceSimulator(SimulationConfig(), ScriptedRandom(randoms=[0.0, 0.6]))
    inst = make_instrument(news=[CompanyNews(headline="Test Co wins award", impact=0.02, probability=0.5)])

    outcome = sim.advance(inst, neutral_context())

    assert outcome.news == []
    assert inst.current_price == 100.0


def test_market_news_event_shifts_its_sectors():
    sim = PriceSimulator(SimulationConfig(), ScriptedRandom(randoms=[0.0]))

    ctx = sim.prepare(0.0, TODAY)

    event = MARKET_NEWS_EVENTS[0]
    assert ctx.market_event == event
    for sector in event.sectors:
        assert ctx.sector_impacts[sector] == pytest.approx(-event.magnitude)
    assert ctx.sector_impacts[Sector.TECH] == 0.0


def test_mood_feeds_market_trend():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())

    assert sim.market_trend(10.0) == pytest.approx(0.03)
    assert sim.market_trend(-10.0) == pytest.approx(-0.03)


def test_trending_uses_dead_zone():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument()

    sim.apply_change(inst, 0.002)
    assert inst.trending == "neutral"
    sim.apply_change(inst, -0.003)
    assert inst.trending == "down"


def test_history_is_capped_and_chronological():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument()

    for _ in range(10):
        sim.apply_change(inst, 0.01, history_limit=5)

    assert len(inst.price_history) == 5
    assert inst.price_history == sorted(inst.price_history)
    assert inst.price_history[-1] == inst.current_price


def test_day_and_week_extremes_follow_price():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument()

    sim.apply_change(inst, 0.05)
    sim.apply_change(inst, -0.08)

    assert inst.day_high == pytest.approx(105.0)
    assert inst.day_low == pytest.approx(96.6)
    assert inst.week_high == inst.day_high


def test_calendar_events_fire_once_per_date():
    sim = PriceSimulator(SimulationConfig(), NeutralRandom())
    inst = make_instrument(
        owned=10,
        earnings=EarningsSchedule(day=TODAY.day, months=[TODAY.month]),
        dividend=DividendSchedule(day=TODAY.day, months=[TODAY.month], amount=0.5),
    )
    next_year = TODAY.replace(year=TODAY.year + 1)

    first = sim.advance(inst, neutral_context())
    second = sim.advance(inst, neutral_context())
    later = sim.advance(inst, neutral_context(today=next_year))

    assert first.dividend_credit == pytest.approx(5.0)
    assert len(first.news) == 3
    assert second.dividend_credit == 0.0
    assert second.news == []
    assert second.raw_change == 0.0
    assert later.dividend_credit == pytest.approx(5.0)
    assert inst.last_dividend_date == inst.last_earnings_date == next_year
