"""Broker commission schedules.

This is a pricing-policy lookup used to pre-fill the fee of a new trade. The
ledger engine never calls it; it only consumes the fee stored on each
transaction.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from .models import Broker, TransactionType

FUBON_TW_COMMISSION_RATE = Decimal("0.001425")
FUBON_TW_MIN_BUY_COMMISSION = Decimal("20")
FUBON_TW_SECURITIES_TAX_RATE = Decimal("0.003")
FUBON_SUB_COMMISSION_RATE = Decimal("0.0025")


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def calculate_fee(
    broker: Broker,
    type: TransactionType,
    shares: Decimal,
    price: Decimal,
) -> Decimal:
    """Return the total fee (commission plus tax) for a trade."""

    value = Decimal(shares) * Decimal(price)
    if value <= 0:
        return Decimal("0")

    if broker == Broker.FUBON_SUB:
        return (value * FUBON_SUB_COMMISSION_RATE).to_integral_value(rounding=ROUND_HALF_UP)

    if broker == Broker.FUBON_TW:
        commission = _floor(value * FUBON_TW_COMMISSION_RATE)
        if type == TransactionType.BUY:
            return max(commission, FUBON_TW_MIN_BUY_COMMISSION)
        return commission + _floor(value * FUBON_TW_SECURITIES_TAX_RATE)

    return Decimal("0")


__all__ = ["calculate_fee"]
