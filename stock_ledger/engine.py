"""FIFO lot ledger: replay a transaction log into holdings and realized gains.

The engine is a pure function of its inputs. Every call rebuilds the lot
queues from the complete history; nothing is cached between calls, so two
invocations with the same transactions and prices produce equal results.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, getcontext
from enum import Enum
from typing import Deque, Iterable, Mapping, Sequence

from .errors import OversellError
from .models import (
    Broker,
    Currency,
    Holding,
    IssueKind,
    LedgerIssue,
    LedgerResult,
    PortfolioStats,
    PriceQuote,
    RealizedPosition,
    Transaction,
    TransactionType,
)

getcontext().prec = 28

ZERO = Decimal("0")
HUNDRED = Decimal("100")
SHARE_EPSILON = Decimal("0.000001")
LONG_TERM_DAYS = 365


class OversellPolicy(str, Enum):
    REPORT = "REPORT"
    RAISE = "RAISE"


@dataclass
class _Lot:
    """Remaining slice of one Buy."""

    shares: Decimal
    original_shares: Decimal
    price: Decimal
    fee: Decimal
    acquired: date


@dataclass
class _Partition:
    symbol: str
    broker: Broker
    currency: Currency
    total_shares: Decimal = ZERO
    total_cost: Decimal = ZERO
    lots: Deque[_Lot] = field(default_factory=deque)


def safe_percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Return numerator / denominator × 100, or zero when the denominator is zero."""

    if denominator == 0:
        return ZERO
    return numerator / denominator * HUNDRED


def _malformed(tx: Transaction, message: str) -> LedgerIssue:
    return LedgerIssue(
        kind=IssueKind.MALFORMED,
        transaction_id=tx.id,
        message=message,
        symbol=tx.symbol,
        broker=tx.broker,
    )


def _apply_buy(partition: _Partition, tx: Transaction) -> None:
    partition.lots.append(
        _Lot(
            shares=tx.shares,
            original_shares=tx.shares,
            price=tx.price,
            fee=tx.fee,
            acquired=tx.date,
        )
    )
    partition.total_shares += tx.shares
    partition.total_cost += tx.shares * tx.price + tx.fee


def _apply_sell(
    partition: _Partition,
    tx: Transaction,
    realized: list[RealizedPosition],
) -> tuple[Decimal, Decimal]:
    """Consume lots from the head of the queue.

    Returns the realized P/L of this sale and the shares left unmatched.
    """

    shares_to_sell = tx.shares
    sell_fee_per_share = tx.fee / tx.shares if tx.shares else ZERO
    realized_pl = ZERO

    while shares_to_sell > 0 and partition.lots:
        lot = partition.lots[0]
        take = min(shares_to_sell, lot.shares)

        # Fees are apportioned per unit of the lot's size at purchase.
        acquisition_fee = lot.fee / lot.original_shares * take
        sale_fee = sell_fee_per_share * take
        adjusted_cost = lot.price * take + acquisition_fee
        proceeds = tx.price * take - sale_fee
        net = proceeds - adjusted_cost
        days_held = (tx.date - lot.acquired).days

        realized.append(
            RealizedPosition(
                symbol=partition.symbol,
                broker=partition.broker,
                currency=partition.currency,
                quantity=take,
                date_acquired=lot.acquired,
                date_sold=tx.date,
                days_held=days_held,
                acquisition_price=lot.price,
                acquisition_fee=acquisition_fee,
                sale_price=tx.price,
                sale_fee=sale_fee,
                adjusted_cost=adjusted_cost,
                sales_proceeds=proceeds,
                net_gain_loss=net,
                gain_loss_percent=safe_percent(net, adjusted_cost),
                is_short_term=days_held < LONG_TERM_DAYS,
            )
        )
        realized_pl += net

        lot.shares -= take
        if lot.shares <= 0:
            partition.lots.popleft()
        partition.total_shares -= take
        partition.total_cost -= adjusted_cost
        shares_to_sell -= take

    return realized_pl, shares_to_sell


def value_holding(
    symbol: str,
    broker: Broker,
    currency: Currency,
    shares: Decimal,
    total_cost: Decimal,
    quote: PriceQuote | None = None,
) -> Holding:
    """Build a Holding from its cost basis and an optional market quote."""

    avg_cost = total_cost / shares
    current = quote.current if quote is not None else None
    previous = quote.previous_close if quote is not None else None

    day_change = None
    day_change_percent = None
    if current is not None and previous is not None:
        price_change = current - previous
        day_change = price_change * shares
        day_change_percent = safe_percent(price_change, previous)

    market_value = shares * (current if current is not None else avg_cost)
    unrealized = market_value - total_cost
    return Holding(
        symbol=symbol,
        broker=broker,
        currency=currency,
        shares=shares,
        avg_cost=avg_cost,
        total_cost=total_cost,
        market_value=market_value,
        unrealized_pl=unrealized,
        unrealized_pl_percent=safe_percent(unrealized, total_cost),
        current_price=current,
        day_change=day_change,
        day_change_percent=day_change_percent,
    )


def compute_ledger(
    transactions: Iterable[Transaction],
    prices: Mapping[str, PriceQuote] | None = None,
    *,
    oversell: OversellPolicy = OversellPolicy.REPORT,
) -> LedgerResult:
    """Replay ``transactions`` with FIFO lot matching.

    Transactions are sorted by date (ties keep input order) and partitioned by
    ``(symbol, broker)``. Buys open lots; Sells consume the oldest lots and
    emit one ``RealizedPosition`` per lot touched. Partitions left with more
    than ``SHARE_EPSILON`` shares become holdings, valued with ``prices`` when
    a quote is available and at average cost otherwise.
    """

    prices = prices or {}
    partitions: dict[tuple[str, Broker], _Partition] = {}
    realized: list[RealizedPosition] = []
    issues: list[LedgerIssue] = []
    total_realized = ZERO

    for tx in sorted(transactions, key=lambda t: t.date):
        partition = partitions.get(tx.partition_key)
        if partition is None:
            partition = _Partition(symbol=tx.symbol, broker=tx.broker, currency=tx.currency)
            partitions[tx.partition_key] = partition

        if tx.shares <= 0:
            issues.append(_malformed(tx, f"{tx.type.value} {tx.symbol} has no shares; ignored"))
            continue

        if tx.type == TransactionType.BUY:
            _apply_buy(partition, tx)
            continue

        realized_pl, unmatched = _apply_sell(partition, tx, realized)
        total_realized += realized_pl
        if unmatched > 0:
            issue = LedgerIssue(
                kind=IssueKind.OVERSELL,
                transaction_id=tx.id,
                message=(
                    f"Sell of {tx.shares} {tx.symbol} at {tx.broker.value} on {tx.date.isoformat()} "
                    f"exceeds open lots by {unmatched}"
                ),
                symbol=tx.symbol,
                broker=tx.broker,
                unmatched_shares=unmatched,
            )
            if oversell == OversellPolicy.RAISE:
                raise OversellError(issue)
            issues.append(issue)

    holdings = [
        value_holding(
            p.symbol,
            p.broker,
            p.currency,
            p.total_shares,
            p.total_cost,
            prices.get(p.symbol),
        )
        for p in partitions.values()
        if p.total_shares > SHARE_EPSILON
    ]
    return LedgerResult(
        holdings=holdings,
        realized_positions=realized,
        total_realized_pl=total_realized,
        issues=issues,
    )


def compute_stats(holdings: Sequence[Holding], total_realized_pl: Decimal = ZERO) -> PortfolioStats:
    """Sum value, cost and unrealized P/L across holdings."""

    total_value = sum((h.market_value for h in holdings), ZERO)
    total_cost = sum((h.total_cost for h in holdings), ZERO)
    total_unrealized = sum((h.market_value - h.total_cost for h in holdings), ZERO)
    return PortfolioStats(
        total_value=total_value,
        total_cost=total_cost,
        total_unrealized_pl=total_unrealized,
        total_unrealized_pl_percent=safe_percent(total_unrealized, total_cost),
        total_realized_pl=total_realized_pl,
    )


__all__ = [
    "LONG_TERM_DAYS",
    "OversellPolicy",
    "SHARE_EPSILON",
    "compute_ledger",
    "compute_stats",
    "safe_percent",
    "value_holding",
]
