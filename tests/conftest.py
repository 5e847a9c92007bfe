from __future__ import annotations

from datetime import date

import pytest

from core.bus import AsyncIOBus
from core.config import MarketConfig, SimulationConfig
from core.models.events import Event
from core.models.market import Instrument, Sector
from ledger.cash import Wallet
from market.engine import MarketEngine, build_initial_state

# A date with no earnings or dividends in the test catalog
QUIET_DATE = date(2026, 1, 2)


class NeutralRandom:
    """Every uniform draw lands on 0 (clamped into range); no probability gate fires."""

    def random(self) -> float:
        return 0.99

    def uniform(self, a: float, b: float) -> float:
        return max(a, min(b, 0.0))

    def choice(self, seq):
        return seq[0]


class ScriptedRandom(NeutralRandom):
    """Plays back queued random() values, then behaves like NeutralRandom."""

    def __init__(self, randoms: list[float] | None = None, uniform: str = "zero") -> None:
        self._randoms = list(randoms or [])
        self._uniform = uniform

    def random(self) -> float:
        if self._randoms:
            return self._randoms.pop(0)
        return 0.99

    def uniform(self, a: float, b: float) -> float:
        if self._uniform == "min":
            return a
        if self._uniform == "max":
            return b
        return super().uniform(a, b)


TEST_COMPANIES = [
    {
        "id": "AAA", "name": "Alpha", "sector": Sector.TECH, "base_price": 100.0,
        "volatility": 0.02, "beta": 1.0, "market_cap": 3_000_000, "total_shares": 1_000,
        "news": [("Alpha signs big contract", 0.02, 0.5)],
    },
    {
        "id": "BBB", "name": "Beta", "sector": Sector.TECH, "base_price": 50.0,
        "volatility": 0.015, "beta": 1.2, "market_cap": 1_000_000, "total_shares": 20_000,
    },
    {
        "id": "CCC", "name": "Gamma", "sector": Sector.FINANCE, "base_price": 20.0,
        "volatility": 0.01, "beta": 0.8, "market_cap": 500_000, "total_shares": 25_000,
        "dividend": {"day": 15, "months": [3], "amount": 0.5},
    },
]


def make_instrument(**overrides) -> Instrument:
    fields = {
        "id": "TEST",
        "sector": Sector.TECH,
        "name": "Test Co",
        "volatility": 0.02,
        "beta": 1.0,
        "total_shares": 1_000,
        "market_cap": 100_000,
        "current_price": 100.0,
    }
    fields.update(overrides)
    return Instrument(**fields)


@pytest.fixture
def sim_config():
    return SimulationConfig()


@pytest.fixture
def market_config():
    return MarketConfig(calendar_date=QUIET_DATE.isoformat(), autosave_every=0, backfill_refresh_every=0)


@pytest.fixture
def wallet():
    return Wallet(1_000.0)


@pytest.fixture
def state(market_config, sim_config):
    return build_initial_state(market_config, sim_config, companies=TEST_COMPANIES)


@pytest.fixture
def engine(market_config, sim_config, wallet, state):
    return MarketEngine(market_config, sim_config, wallet, rng=NeutralRandom(), state=state)


@pytest.fixture
def bus():
    return AsyncIOBus()


@pytest.fixture
def events(bus):
    """Every event published on the bus, in order."""
    seen: list[Event] = []

    async def collect(event: Event) -> None:
        seen.append(event)

    bus.subscribe("*", collect)
    return seen
