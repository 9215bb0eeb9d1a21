from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_tx
from stock_ledger.analytics import allocation, summarize_realized
from stock_ledger.engine import compute_ledger
from stock_ledger.models import Broker, Currency, PriceQuote


def build_positions():
    txs = [
        make_tx("b1", date(2023, 1, 1), "Buy", "10", "10"),
        make_tx("s1", date(2023, 6, 1), "Sell", "5", "12"),
        make_tx("s2", date(2024, 6, 1), "Sell", "5", "20"),
        make_tx("b2", date(2024, 1, 2), "Buy", "1000", "500", symbol="2330", broker=Broker.FUBON_TW),
        make_tx("s3", date(2024, 2, 1), "Sell", "1000", "550", symbol="2330", broker=Broker.FUBON_TW),
    ]
    return compute_ledger(txs).realized_positions


def test_realized_summary_splits_by_holding_period():
    summary = summarize_realized(build_positions(), currency=Currency.USD)
    assert summary.short_term.net_gain == Decimal("10")
    assert summary.long_term.net_gain == Decimal("50")
    assert summary.total.adjusted_cost == Decimal("100")
    assert summary.total.sales_proceeds == Decimal("160")
    assert summary.total.net_gain_percent == Decimal("60")


def test_realized_summary_filters_currency():
    summary = summarize_realized(build_positions(), currency=Currency.TWD)
    assert summary.short_term.net_gain == Decimal("50000")
    assert summary.long_term.net_gain == Decimal("0")
    assert summary.long_term.net_gain_percent == Decimal("0")


def test_allocation_orders_by_market_value():
    txs = [
        make_tx("b1", date(2024, 1, 1), "Buy", "10", "100", symbol="AAPL"),
        make_tx("b2", date(2024, 1, 1), "Buy", "5", "100", symbol="MSFT", broker=Broker.FUBON_SUB),
        make_tx("b3", date(2024, 1, 1), "Buy", "1", "100", symbol="AAPL", broker=Broker.FUBON_SUB),
    ]
    holdings = compute_ledger(txs, {"MSFT": PriceQuote(Decimal("400"))}).holdings

    assert allocation(holdings) == [("MSFT", Decimal("2000")), ("AAPL", Decimal("1100"))]
    assert allocation(holdings, by="broker") == [("FubonSub", Decimal("2100")), ("Firstrade", Decimal("1000"))]


def test_allocation_rejects_unknown_key():
    with pytest.raises(ValueError):
        allocation([], by="sector")  # type: ignore[arg-type]
