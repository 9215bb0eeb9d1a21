"""Summaries derived from ledger output for dashboards and reports."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Literal, Sequence

from .engine import ZERO, safe_percent
from .models import Currency, Holding, RealizedPosition

AllocationKey = Literal["symbol", "broker"]


@dataclass(frozen=True)
class RealizedBucket:
    sales_proceeds: Decimal = ZERO
    adjusted_cost: Decimal = ZERO
    net_gain: Decimal = ZERO

    @property
    def net_gain_percent(self) -> Decimal:
        return safe_percent(self.net_gain, self.adjusted_cost)


@dataclass(frozen=True)
class RealizedSummary:
    short_term: RealizedBucket
    long_term: RealizedBucket
    total: RealizedBucket


def _bucket(positions: Iterable[RealizedPosition]) -> RealizedBucket:
    proceeds = cost = net = ZERO
    for position in positions:
        proceeds += position.sales_proceeds
        cost += position.adjusted_cost
        net += position.net_gain_loss
    return RealizedBucket(sales_proceeds=proceeds, adjusted_cost=cost, net_gain=net)


def summarize_realized(
    positions: Sequence[RealizedPosition],
    *,
    currency: Currency | None = None,
) -> RealizedSummary:
    """Group realized positions into short-term and long-term totals.

    Amounts are summed in each position's native currency; pass ``currency``
    to keep TWD and USD sales apart.
    """

    selected = [p for p in positions if currency is None or p.currency == currency]
    short_term = _bucket(p for p in selected if p.is_short_term)
    long_term = _bucket(p for p in selected if not p.is_short_term)
    total = RealizedBucket(
        sales_proceeds=short_term.sales_proceeds + long_term.sales_proceeds,
        adjusted_cost=short_term.adjusted_cost + long_term.adjusted_cost,
        net_gain=short_term.net_gain + long_term.net_gain,
    )
    return RealizedSummary(short_term=short_term, long_term=long_term, total=total)


def allocation(holdings: Sequence[Holding], by: AllocationKey = "symbol") -> list[tuple[str, Decimal]]:
    """Market value per symbol or per broker, largest first."""

    if by not in ("symbol", "broker"):
        raise ValueError(f"Unsupported allocation key: {by}")
    totals: dict[str, Decimal] = {}
    for holding in holdings:
        name = holding.symbol if by == "symbol" else holding.broker.value
        totals[name] = totals.get(name, ZERO) + holding.market_value
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


__all__ = [
    "AllocationKey",
    "RealizedBucket",
    "RealizedSummary",
    "allocation",
    "summarize_realized",
]
