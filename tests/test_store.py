from datetime import datetime, timedelta, timezone

import pytest

from core.data.store import Store
from core.models.market import MarketData


@pytest.fixture
def store(tmp_path):
    s = Store(tmp_path)
    yield s
    s.close()


def test_snapshot_round_trip(store, engine):
    engine.buy("BBB", 3)
    engine.tick()

    path = store.save_snapshot(engine.state)
    loaded = store.load_snapshot()

    assert path.name == "market_state.json"
    assert loaded == engine.state


def test_missing_snapshot_is_none(store):
    assert store.load_snapshot("nope.json") is None


def test_corrupt_snapshot_is_none(store, tmp_path):
    (tmp_path / "snapshots").mkdir(exist_ok=True)
    (tmp_path / "snapshots" / "bad.json").write_text("{not json")

    assert store.load_snapshot("bad.json") is None


def test_market_data_is_returned_oldest_first(store):
    rows = [
        MarketData(ticker="SPY", timestamp=datetime(2026, 1, day, tzinfo=timezone.utc), close=400.0 + day)
        for day in (3, 1, 2)
    ]

    assert store.save_market_data(rows) == 3

    assert [r.close for r in store.query_market_data("SPY")] == [401.0, 402.0, 403.0]
    assert [r.close for r in store.query_market_data("SPY", limit=2)] == [402.0, 403.0]


def test_save_closes_overwrites_same_days(store):
    store.save_closes("QQQ", [1.0, 2.0], "synthetic")
    store.save_closes("QQQ", [3.0, 4.0], "synthetic")

    assert [r.close for r in store.query_market_data("QQQ")] == [3.0, 4.0]


def test_recent_closes_respect_max_age(store):
    store.save_closes("IWM", [1.0, 2.0, 3.0], "yahoo_finance")

    assert store.load_recent_closes("IWM", 2, timedelta(hours=1)) == ([2.0, 3.0], "yahoo_finance")
    assert store.load_recent_closes("OTHER", 2, timedelta(hours=1)) is None

    store.db.execute("UPDATE market_data SET fetched_at = ?", ("2000-01-01T00:00:00+00:00",))
    assert store.load_recent_closes("IWM", 2, timedelta(hours=1)) is None
