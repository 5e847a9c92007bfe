import pytest

from core.models.state import MarketState
from core.protocols import CashLedger
from ledger.cash import Wallet
from ledger.orders import OrderLedger
from ledger.portfolio import PortfolioTracker
from tests.conftest import make_instrument


@pytest.fixture
def market():
    return MarketState(instruments=[
        make_instrument(id="FIFTY", name="Fifty", current_price=50.0, total_shares=1_000),
        make_instrument(id="TEN", name="Ten", current_price=10.0, total_shares=100_000),
    ])


@pytest.fixture
def orders(market, wallet, sim_config):
    return OrderLedger(market, wallet, sim_config)


def test_buy_ten_at_fifty(orders, market, wallet):
    result = orders.buy("FIFTY", 10)

    assert result.success
    assert wallet.balance == pytest.approx(500.0)
    holding = market.holding("FIFTY")
    assert holding.shares == 10
    assert holding.average_cost == pytest.approx(50.0)
    assert holding.total_invested == pytest.approx(500.0)
    assert market.instrument("FIFTY").owned == 10
    assert result.transaction.type == "buy"
    assert result.transaction.total == pytest.approx(500.0)


def test_insufficient_funds_has_no_side_effects(orders, market, wallet):
    inst = market.instrument("FIFTY")
    inst.sell_pressure = 0.3

    result = orders.buy("FIFTY", 21)

    assert not result.success
    assert "Insufficient funds" in result.message
    assert wallet.balance == 1_000.0
    assert market.holdings == []
    assert market.transactions == []
    assert inst.buy_pressure == 0.0
    assert inst.sell_pressure == 0.3


def test_rejects_unknown_stock_and_bad_share_counts(orders, wallet):
    assert not orders.buy("NOPE", 1).success
    assert not orders.buy("FIFTY", 0).success
    assert not orders.buy("FIFTY", -5).success
    assert not orders.sell("FIFTY", 0).success
    assert wallet.balance == 1_000.0


def test_weighted_average_cost(orders, market):
    orders.buy("FIFTY", 4)
    market.instrument("FIFTY").current_price = 80.0
    orders.buy("FIFTY", 6)

    holding = market.holding("FIFTY")
    assert holding.shares == 10
    assert holding.average_cost == pytest.approx((50.0 * 4 + 80.0 * 6) / 10)
    assert holding.total_invested == pytest.approx(holding.average_cost * holding.shares)


def test_buy_then_sell_at_frozen_price_nets_zero(orders, wallet):
    orders.buy("TEN", 37)
    orders.sell("TEN", 37)

    assert wallet.balance == pytest.approx(1_000.0)


def test_selling_more_than_held_is_rejected(orders, market, wallet):
    orders.buy("FIFTY", 5)
    before = market.holding("FIFTY").model_copy()
    balance = wallet.balance

    result = orders.sell("FIFTY", 6)

    assert not result.success
    assert market.holding("FIFTY") == before
    assert wallet.balance == balance


def test_selling_without_holding_is_rejected(orders):
    result = orders.sell("FIFTY", 1)

    assert not result.success
    assert "don't own" in result.message


def test_partial_sell_keeps_average_cost(orders, market):
    orders.buy("FIFTY", 10)
    market.instrument("FIFTY").current_price = 60.0

    orders.sell("FIFTY", 4)

    holding = market.holding("FIFTY")
    assert holding.shares == 6
    assert holding.average_cost == pytest.approx(50.0)
    assert holding.total_invested == pytest.approx(300.0)


def test_full_sell_deletes_holding(orders, market):
    orders.buy("FIFTY", 10)
    orders.sell("FIFTY", 10)

    assert market.holding("FIFTY") is None
    assert market.instrument("FIFTY").owned == 0


def test_trades_move_pressure(orders, market):
    inst = market.instrument("FIFTY")
    inst.sell_pressure = 0.01

    orders.buy("FIFTY", 10)
    # 10 / 1000 shares: +5x to buy pressure, -2x off sell pressure (floored at 0)
    assert inst.buy_pressure == pytest.approx(0.05)
    assert inst.sell_pressure == 0.0

    orders.sell("FIFTY", 10)
    assert inst.sell_pressure == pytest.approx(0.05)
    assert inst.buy_pressure == pytest.approx(0.03)


def test_company_ownership_threshold(sim_config):
    market = MarketState(instruments=[make_instrument(id="TINY", current_price=1.0, total_shares=1_000)])
    orders = OrderLedger(market, Wallet(10_000.0), sim_config)

    orders.buy("TINY", 510)
    assert not market.instrument("TINY").company_owned

    orders.buy("TINY", 1)
    assert market.instrument("TINY").company_owned

    orders.sell("TINY", 100)
    assert not market.instrument("TINY").company_owned


def test_transactions_are_newest_first(orders, market):
    orders.buy("TEN", 1)
    orders.buy("FIFTY", 1)
    orders.sell("TEN", 1)

    assert [(t.type, t.stock_id) for t in market.transactions] == [
        ("sell", "TEN"),
        ("buy", "FIFTY"),
        ("buy", "TEN"),
    ]


def test_toggle_watch(orders, market):
    assert orders.toggle_watch("TEN").success
    assert market.watchlist == ["TEN"]

    assert orders.toggle_watch("TEN").success
    assert market.watchlist == []

    assert not orders.toggle_watch("NOPE").success


def test_portfolio_summary(orders, market):
    orders.buy("FIFTY", 10)
    orders.buy("TEN", 20)
    market.instrument("FIFTY").current_price = 55.0

    summary = PortfolioTracker(market).get_summary()

    assert len(summary.positions) == 2
    assert summary.total_cost == pytest.approx(700.0)
    assert summary.total_value == pytest.approx(750.0)
    assert summary.total_profit == pytest.approx(50.0)
    fifty = next(p for p in summary.positions if p.stock_id == "FIFTY")
    assert fifty.profit_percent == pytest.approx(10.0)


def test_wallet_rejects_overdraft():
    wallet = Wallet(10.0)

    with pytest.raises(ValueError):
        wallet.debit(10.01)
    with pytest.raises(ValueError):
        wallet.credit(-1.0)
    assert wallet.balance == 10.0


def test_wallet_takes_unsigned_amounts_in_both_directions():
    wallet = Wallet(10.0)

    wallet.credit(5.0)
    wallet.debit(12.5)

    assert isinstance(wallet, CashLedger)
    assert wallet.balance == pytest.approx(2.5)
    with pytest.raises(ValueError):
        wallet.debit(-1.0)
