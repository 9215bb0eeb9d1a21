"""Domain models used by the lot ledger engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    BUY = "Buy"
    SELL = "Sell"


class Broker(str, Enum):
    FUBON_TW = "FubonTW"
    FUBON_SUB = "FubonSub"
    FIRSTRADE = "Firstrade"


class Currency(str, Enum):
    TWD = "TWD"
    USD = "USD"


class IssueKind(str, Enum):
    OVERSELL = "OVERSELL"
    MALFORMED = "MALFORMED"


@dataclass(frozen=True)
class Transaction:
    """A normalized Buy or Sell execution."""

    id: str
    date: date
    broker: Broker
    symbol: str
    type: TransactionType
    shares: Decimal
    price: Decimal
    fee: Decimal = Decimal("0")
    currency: Currency = Currency.USD
    notes: Optional[str] = None

    @property
    def partition_key(self) -> tuple[str, Broker]:
        return (self.symbol, self.broker)


@dataclass(frozen=True)
class PriceQuote:
    """Latest market quote for a symbol."""

    current: Decimal
    previous_close: Optional[Decimal] = None


@dataclass(frozen=True)
class Holding:
    """An open position for one (symbol, broker) pair."""

    symbol: str
    broker: Broker
    currency: Currency
    shares: Decimal
    avg_cost: Decimal
    total_cost: Decimal
    market_value: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal
    current_price: Optional[Decimal] = None
    day_change: Optional[Decimal] = None
    day_change_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class RealizedPosition:
    """A closed slice of one lot, produced by a Sell."""

    symbol: str
    broker: Broker
    currency: Currency
    quantity: Decimal
    date_acquired: date
    date_sold: date
    days_held: int
    acquisition_price: Decimal
    acquisition_fee: Decimal
    sale_price: Decimal
    sale_fee: Decimal
    adjusted_cost: Decimal
    sales_proceeds: Decimal
    net_gain_loss: Decimal
    gain_loss_percent: Decimal
    is_short_term: bool


@dataclass(frozen=True)
class PortfolioStats:
    """Aggregate figures across all open holdings."""

    total_value: Decimal
    total_cost: Decimal
    total_unrealized_pl: Decimal
    total_unrealized_pl_percent: Decimal
    total_realized_pl: Decimal


@dataclass(frozen=True)
class LedgerIssue:
    """An input anomaly absorbed or detected while replaying transactions."""

    kind: IssueKind
    transaction_id: str
    message: str
    symbol: Optional[str] = None
    broker: Optional[Broker] = None
    unmatched_shares: Optional[Decimal] = None


@dataclass(frozen=True)
class LedgerResult:
    """Everything derived from one replay of the transaction log."""

    holdings: list[Holding] = field(default_factory=list)
    realized_positions: list[RealizedPosition] = field(default_factory=list)
    total_realized_pl: Decimal = Decimal("0")
    issues: list[LedgerIssue] = field(default_factory=list)

    @property
    def stats(self) -> PortfolioStats:
        from .engine import compute_stats

        return compute_stats(self.holdings, self.total_realized_pl)


@dataclass(frozen=True)
class HistoryEntry:
    """Daily portfolio snapshot split by market (TWD vs USD holdings).

    P/L rates are fractions (0.05 means +5%).
    """

    date: date
    tw_market_value: Decimal
    tw_cost: Decimal
    tw_pl_rate: Decimal
    us_market_value_usd: Decimal
    us_cost_usd: Decimal
    us_pl_rate: Decimal
    total_pl_rate: Decimal
    total_market_value_twd: Optional[Decimal] = None
    total_cost_twd: Optional[Decimal] = None


__all__ = [
    "Broker",
    "Currency",
    "HistoryEntry",
    "Holding",
    "IssueKind",
    "LedgerIssue",
    "LedgerResult",
    "PortfolioStats",
    "PriceQuote",
    "RealizedPosition",
    "Transaction",
    "TransactionType",
]
