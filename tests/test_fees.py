from __future__ import annotations

from decimal import Decimal

import pytest

from stock_ledger.fees import calculate_fee
from stock_ledger.models import Broker, TransactionType

BUY = TransactionType.BUY
SELL = TransactionType.SELL


@pytest.mark.parametrize(
    ("broker", "side", "shares", "price", "expected"),
    [
        (Broker.FUBON_TW, BUY, "1000", "10", "20"),
        (Broker.FUBON_TW, BUY, "1000", "100", "142"),
        (Broker.FUBON_TW, SELL, "1000", "100", "442"),
        (Broker.FUBON_TW, SELL, "10", "10", "0"),
        (Broker.FUBON_SUB, BUY, "10", "123.45", "3"),
        (Broker.FUBON_SUB, SELL, "1", "200", "1"),
        (Broker.FIRSTRADE, BUY, "100", "150", "0"),
        (Broker.FUBON_TW, BUY, "0", "100", "0"),
    ],
)
def test_fee_schedule(broker, side, shares, price, expected):
    assert calculate_fee(broker, side, Decimal(shares), Decimal(price)) == Decimal(expected)
