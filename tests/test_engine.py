from datetime import date

import pytest

from core.config import SimulationConfig
from core.models.market import NewsItem
from core.models.state import MarketState
from ledger.cash import Wallet
from market.engine import MarketEngine, build_initial_state
from market.indices import composite_value
from market.tables import COMPANY_ACTIONS
from tests.conftest import TEST_COMPANIES, NeutralRandom


def test_initial_state_from_catalog(market_config, sim_config):
    state = build_initial_state(market_config, sim_config)

    assert len(state.instruments) == 21
    assert {index.id for index in state.indices} == {"TECH", "RETA", "FINS", "TRNP"}
    assert state.composite.current_value > 0
    assert state.composite.value_history == [state.composite.current_value]
    assert state.clock.open and state.clock.label == "Day 1 09:30"


def test_baseline_tick_through_engine(engine, state):
    prices = {inst.id: inst.current_price for inst in state.instruments}

    report = engine.tick()

    assert report.ticked
    assert {inst.id: inst.current_price for inst in state.instruments} == prices
    assert state.mood.value == 0.0
    assert state.tick_count == 1


def test_engine_buy_ten_at_fifty(engine, wallet):
    result = engine.buy("BBB", 10)

    assert result.success
    assert wallet.balance == pytest.approx(500.0)
    [holding] = engine.holdings()
    assert (holding.shares, holding.average_cost, holding.total_invested) == (10, 50.0, 500.0)


def test_dividend_day_credits_wallet(market_config, sim_config):
    market_config.calendar_date = "2026-03-15"
    wallet = Wallet(1_000.0)
    state = build_initial_state(market_config, sim_config, companies=TEST_COMPANIES)
    engine = MarketEngine(market_config, sim_config, wallet, rng=NeutralRandom(), state=state)
    engine.buy("CCC", 10)

    report = engine.tick()

    assert report.dividends == [("CCC", pytest.approx(5.0))]
    assert wallet.balance == pytest.approx(1_000.0 - 200.0 + 5.0)
    assert any(item.is_personal for item in engine.news())


def test_company_action_requires_control(engine):
    result = engine.take_company_action("AAA")

    assert not result.success
    assert "51%" in result.message


def test_company_action_moves_price(market_config, sim_config, state):
    engine = MarketEngine(market_config, sim_config, Wallet(100_000.0), rng=NeutralRandom(), state=state)
    engine.buy("AAA", 600)
    inst = state.instrument("AAA")
    before = inst.current_price

    result = engine.take_company_action("AAA")

    action = COMPANY_ACTIONS[0]
    assert result.success
    assert action.action in result.message
    assert inst.current_price == pytest.approx(before * (1 + action.impact))
    assert engine.news()[0].company_id == "AAA"


def test_news_feed_is_newest_first_and_capped(engine):
    engine.add_news([NewsItem(headline=f"item {i}") for i in range(20)])

    headlines = [item.headline for item in engine.news()]
    assert len(headlines) == 15
    assert headlines[0] == "item 19"


def test_backfill_never_touches_live_price(engine, state):
    inst = state.instrument("AAA")
    price = inst.current_price

    assert engine.apply_backfill("AAA", "AAA", [1.0, 2.0, 3.0])

    assert inst.current_price == price
    assert inst.backfill_history == [1.0, 2.0, 3.0]
    assert inst.backfill_updated_at is not None
    assert not engine.apply_backfill("NOPE", "X", [1.0])


def test_record_snapshot_tracks_direction(engine, state):
    inst = state.instrument("AAA")
    inst.current_price += 1.0

    moved = engine.record_snapshot()

    assert moved == 1
    assert inst.price_direction == "up"
    assert inst.last_recorded_price == inst.current_price
    assert state.instrument("BBB").price_direction == "neutral"


def test_snapshot_restore_resumes_from_stored_state(engine, market_config, sim_config):
    engine.buy("BBB", 4)
    for _ in range(5):
        engine.tick()
    blob = engine.snapshot().model_dump_json()

    restored = MarketEngine(market_config, sim_config, Wallet(0.0), rng=NeutralRandom())
    restored.restore(MarketState.model_validate_json(blob))

    assert restored.state.tick_count == 5
    assert restored.holdings()[0].shares == 4
    assert restored.composite().current_value == pytest.approx(engine.composite().current_value)

    restored.tick()
    assert restored.state.tick_count == 6


def test_snapshots_are_copies(engine, state):
    copy = engine.instrument("AAA")
    copy.current_price = 1.0

    assert state.instrument("AAA").current_price != 1.0
    assert engine.instrument("NOPE") is None


def test_today_defaults_to_calendar(engine):
    assert engine.today() == date(2026, 1, 2)


def test_dividend_is_paid_once_across_a_trading_day(market_config, sim_config):
    market_config.calendar_date = "2026-03-15"
    wallet = Wallet(1_000.0)
    state = build_initial_state(market_config, sim_config, companies=TEST_COMPANIES)
    engine = MarketEngine(market_config, sim_config, wallet, rng=NeutralRandom(), state=state)
    engine.buy("CCC", 10)

    reports = [engine.tick() for _ in range(10)]

    assert [r.dividends for r in reports if r.dividends] == [[("CCC", pytest.approx(5.0))]]
    assert wallet.balance == pytest.approx(805.0)
    assert sum(1 for item in engine.news() if item.is_personal) == 1


def test_company_action_keeps_indices_in_step(market_config, sim_config, state):
    engine = MarketEngine(market_config, sim_config, Wallet(100_000.0), rng=NeutralRandom(), state=state)
    engine.buy("AAA", 600)

    engine.take_company_action("AAA")

    composite = engine.composite()
    assert composite.current_value == pytest.approx(composite_value(state.instruments))
    assert composite.value_history[-1] == composite.current_value
    tech = next(index for index in engine.indices() if "AAA" in index.members)
    members = [state.instrument(m) for m in tech.members]
    assert tech.current_value == pytest.approx(
        sum(m.current_price for m in members) / len(members) * tech.base_value / 100
    )


class PickAction(NeutralRandom):
    def __init__(self, name: str) -> None:
        self._name = name

    def choice(self, seq):
        return next(item for item in seq if getattr(item, "action", None) == self._name)


@pytest.mark.parametrize("name,breaker,expected", [
    ("Stock Buyback", 0.02, 0.02),
    ("Missed Earnings", 0.04, -0.04),
    ("Executive Change", 0.09, 0.01),
])
def test_company_action_is_clamped_by_circuit_breaker(market_config, name, breaker, expected):
    sim_config = SimulationConfig(circuit_breaker=breaker)
    state = build_initial_state(market_config, sim_config, companies=TEST_COMPANIES)
    engine = MarketEngine(market_config, sim_config, Wallet(100_000.0), rng=PickAction(name), state=state)
    engine.buy("AAA", 600)
    before = state.instrument("AAA").current_price

    result = engine.take_company_action("AAA")

    assert result.success
    assert name in result.message
    assert state.instrument("AAA").current_price == pytest.approx(before * (1 + expected))
