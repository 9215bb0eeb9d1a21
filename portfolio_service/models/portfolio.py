"""Transaction and daily history tables."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, Enum, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_service.db.base import Base

TRANSACTION_TYPES = ("Buy", "Sell")
BROKERS = ("FubonTW", "FubonSub", "Firstrade")
CURRENCIES = ("TWD", "USD")


class TransactionRecord(Base):
    __tablename__ = "transaction"
    __table_args__ = (
        Index("ix_transaction_symbol_broker", "symbol", "broker"),
        Index("ix_transaction_date", "date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date)
    broker: Mapped[str] = mapped_column(Enum(*BROKERS, name="broker"))
    symbol: Mapped[str] = mapped_column(String(20))
    type: Mapped[str] = mapped_column(Enum(*TRANSACTION_TYPES, name="transaction_type"))
    shares: Mapped[Decimal] = mapped_column(Numeric(24, 8))
    price: Mapped[Decimal] = mapped_column(Numeric(24, 8))
    fee: Mapped[Decimal] = mapped_column(Numeric(24, 8), default=0)
    currency: Mapped[str] = mapped_column(Enum(*CURRENCIES, name="currency"), default="USD")
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Preserves input order for same-date rows
    seq: Mapped[int] = mapped_column(default=0)


class HistoryRecord(Base):
    __tablename__ = "portfolio_history"

    date: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    tw_market_value: Mapped[Decimal] = mapped_column(Numeric(24, 8))
    tw_cost: Mapped[Decimal] = mapped_column(Numeric(24, 8))
    tw_pl_rate: Mapped[Decimal] = mapped_column(Numeric(18, 10))
    us_market_value_usd: Mapped[Decimal] = mapped_column(Numeric(24, 8))
    us_cost_usd: Mapped[Decimal] = mapped_column(Numeric(24, 8))
    us_pl_rate: Mapped[Decimal] = mapped_column(Numeric(18, 10))
    total_pl_rate: Mapped[Decimal] = mapped_column(Numeric(18, 10))
    total_market_value_twd: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    total_cost_twd: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)


__all__ = ["BROKERS", "CURRENCIES", "HistoryRecord", "TRANSACTION_TYPES", "TransactionRecord"]
