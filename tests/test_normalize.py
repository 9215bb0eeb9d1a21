from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from stock_ledger.errors import TransactionValidationError
from stock_ledger.models import Broker, Currency, IssueKind, TransactionType
from stock_ledger.normalize import (
    coerce_decimal,
    normalize_records,
    parse_broker,
    parse_trade_date,
    parse_transaction_type,
    transaction_from_record,
    transaction_to_record,
)


def record(**overrides):
    base = {
        "id": "t1",
        "date": "2024-03-01",
        "broker": "Firstrade",
        "symbol": "aapl",
        "type": "Buy",
        "shares": "10",
        "price": "180.5",
        "fee": "0",
    }
    base.update(overrides)
    return base


@pytest.mark.parametrize(
    "raw",
    ["2024-03-05", "2024/3/5", "2024/3/5 上午 10:21:23", "2024-03-05T10:00:00Z", datetime(2024, 3, 5, 9, 30), date(2024, 3, 5)],
)
def test_parse_trade_date_formats(raw):
    assert parse_trade_date(raw) == date(2024, 3, 5)


@pytest.mark.parametrize("raw", ["", None, "yesterday", "2024/13/40"])
def test_parse_trade_date_rejects_garbage(raw):
    with pytest.raises(TransactionValidationError):
        parse_trade_date(raw)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1,234.5", "1234.5"), ("$ 12", "12"), (7, "7"), (2.5, "2.5"), ("abc", "0"), (None, "0"), ("", "0")],
)
def test_coerce_decimal(raw, expected):
    assert coerce_decimal(raw) == Decimal(expected)


def test_aliases():
    assert parse_transaction_type("現股買進") == TransactionType.BUY
    assert parse_transaction_type("SELL") == TransactionType.SELL
    assert parse_broker("fubontw") == Broker.FUBON_TW
    assert parse_broker("富邦複委託") == Broker.FUBON_SUB


def test_record_is_normalized():
    tx = transaction_from_record(record(shares="1,000", note="first"))
    assert tx.symbol == "AAPL"
    assert tx.shares == Decimal("1000")
    assert tx.currency == Currency.USD
    assert tx.notes == "first"


def test_currency_inferred_from_taiwan_broker():
    tx = transaction_from_record(record(broker="FubonTW", symbol="2330"))
    assert tx.currency == Currency.TWD


def test_lenient_mode_coerces_bad_numbers_to_zero():
    tx = transaction_from_record(record(price="n/a", fee=None))
    assert tx.price == Decimal("0")
    assert tx.fee == Decimal("0")


@pytest.mark.parametrize(
    "overrides",
    [{"price": "n/a"}, {"shares": "0"}, {"fee": "-1"}, {"id": ""}, {"shares": None}],
)
def test_strict_mode_rejects_bad_fields(overrides):
    with pytest.raises(TransactionValidationError):
        transaction_from_record(record(**overrides), strict=True)


@pytest.mark.parametrize("overrides", [{"type": "Dividend"}, {"broker": "Robinhood"}, {"date": "soon"}, {"symbol": " "}])
def test_unrecoverable_fields_raise_in_both_modes(overrides):
    with pytest.raises(TransactionValidationError):
        transaction_from_record(record(**overrides))


def test_normalize_records_reports_bad_rows():
    transactions, issues = normalize_records([record(), record(id="t2", type="Split")])
    assert [tx.id for tx in transactions] == ["t1"]
    (issue,) = issues
    assert issue.kind == IssueKind.MALFORMED
    assert issue.transaction_id == "t2"


def test_normalize_records_strict_raises():
    with pytest.raises(TransactionValidationError):
        normalize_records([record(type="Split")], strict=True)


def test_record_round_trip_keeps_decimal_text():
    tx = transaction_from_record(record(price="0.1"))
    stored = transaction_to_record(tx)
    assert stored["price"] == "0.1"
    assert stored["date"] == "2024-03-01"
    assert transaction_from_record(stored) == tx
