"""Transaction and history stores.

The ledger engine never touches a repository: the service loads the full
transaction list, hands it to the engine and writes the list back on change.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from portfolio_service.db.init import init_database
from portfolio_service.db.session import create_session_factory
from portfolio_service.models import HistoryRecord, TransactionRecord
from stock_ledger.models import HistoryEntry, LedgerIssue, Transaction
from stock_ledger.normalize import (
    coerce_decimal,
    normalize_records,
    parse_trade_date,
    transaction_from_record,
    transaction_to_record,
)

logger = logging.getLogger(__name__)

_HISTORY_DECIMALS = (
    "tw_market_value",
    "tw_cost",
    "tw_pl_rate",
    "us_market_value_usd",
    "us_cost_usd",
    "us_pl_rate",
    "total_pl_rate",
)
_HISTORY_OPTIONAL = ("total_market_value_twd", "total_cost_twd")


class TransactionRepository(Protocol):
    issues: list[LedgerIssue]

    async def load(self) -> list[Transaction]: ...

    async def save(self, transactions: Sequence[Transaction]) -> None: ...


class HistoryRepository(Protocol):
    async def list_history(self) -> list[HistoryEntry]: ...

    async def upsert_history(self, entry: HistoryEntry) -> None: ...


def history_to_record(entry: HistoryEntry) -> dict[str, Any]:
    record = asdict(entry)
    record["date"] = entry.date.isoformat()
    return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in record.items()}


def history_from_record(record: dict[str, Any]) -> HistoryEntry:
    values: dict[str, Any] = {name: coerce_decimal(record.get(name)) for name in _HISTORY_DECIMALS}
    for name in _HISTORY_OPTIONAL:
        raw = record.get(name)
        values[name] = coerce_decimal(raw) if raw is not None else None
    return HistoryEntry(date=parse_trade_date(record.get("date")), **values)


def _upsert(entries: list[HistoryEntry], entry: HistoryEntry) -> list[HistoryEntry]:
    kept = [e for e in entries if e.date != entry.date]
    kept.append(entry)
    return sorted(kept, key=lambda e: e.date)


class InMemoryRepository:
    """Process-local store used by tests and ephemeral runs."""

    def __init__(self, transactions: Sequence[Transaction] = ()) -> None:
        self._transactions = list(transactions)
        self._history: list[HistoryEntry] = []
        self.issues: list[LedgerIssue] = []

    async def load(self) -> list[Transaction]:
        return list(self._transactions)

    async def save(self, transactions: Sequence[Transaction]) -> None:
        self._transactions = list(transactions)

    async def list_history(self) -> list[HistoryEntry]:
        return list(self._history)

    async def upsert_history(self, entry: HistoryEntry) -> None:
        self._history = _upsert(self._history, entry)


class JsonFileRepository:
    """``{"transactions": [...], "history": [...]}`` document on disk."""

    def __init__(self, path: str | os.PathLike[str], *, strict: bool = False) -> None:
        self.path = Path(path)
        self.strict = strict
        self.issues: list[LedgerIssue] = []
        # Guards each read-modify-write of the shared document
        self._file_lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"transactions": [], "history": []}
        with self.path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        data.setdefault("transactions", [])
        data.setdefault("history", [])
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    async def load(self) -> list[Transaction]:
        data = await asyncio.to_thread(self._read)
        transactions, issues = normalize_records(data["transactions"], strict=self.strict)
        for issue in issues:
            logger.warning("Skipping stored transaction %s: %s", issue.transaction_id, issue.message)
        self.issues = issues
        return transactions

    async def save(self, transactions: Sequence[Transaction]) -> None:
        def _replace() -> None:
            with self._file_lock:
                data = self._read()
                data["transactions"] = [transaction_to_record(tx) for tx in transactions]
                self._write(data)

        await asyncio.to_thread(_replace)

    async def list_history(self) -> list[HistoryEntry]:
        data = await asyncio.to_thread(self._read)
        return sorted((history_from_record(r) for r in data["history"]), key=lambda e: e.date)

    async def upsert_history(self, entry: HistoryEntry) -> None:
        def _replace() -> None:
            with self._file_lock:
                data = self._read()
                entries = _upsert([history_from_record(r) for r in data["history"]], entry)
                data["history"] = [history_to_record(e) for e in entries]
                self._write(data)

        await asyncio.to_thread(_replace)


class SqlRepository:
    """Async SQLAlchemy store (SQLite via aiosqlite, or Postgres via asyncpg)."""

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self.engine = engine
        self._session_factory = session_factory or create_session_factory(engine)
        self.issues: list[LedgerIssue] = []

    async def init(self) -> None:
        await init_database(self.engine)

    async def load(self) -> list[Transaction]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(select(TransactionRecord).order_by(TransactionRecord.date, TransactionRecord.seq))
            ).scalars().all()
        return [
            transaction_from_record(
                {
                    "id": row.id,
                    "date": row.date,
                    "broker": row.broker,
                    "symbol": row.symbol,
                    "type": row.type,
                    "shares": Decimal(str(row.shares)),
                    "price": Decimal(str(row.price)),
                    "fee": Decimal(str(row.fee or 0)),
                    "currency": row.currency,
                    "notes": row.notes,
                }
            )
            for row in rows
        ]

    async def save(self, transactions: Sequence[Transaction]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(TransactionRecord))
                session.add_all(
                    TransactionRecord(
                        id=tx.id,
                        date=tx.date,
                        broker=tx.broker.value,
                        symbol=tx.symbol,
                        type=tx.type.value,
                        shares=tx.shares,
                        price=tx.price,
                        fee=tx.fee,
                        currency=tx.currency.value,
                        notes=tx.notes,
                        seq=index,
                    )
                    for index, tx in enumerate(transactions)
                )

    async def list_history(self) -> list[HistoryEntry]:
        async with self._session_factory() as session:
            rows = (await session.execute(select(HistoryRecord).order_by(HistoryRecord.date))).scalars().all()
        return [
            history_from_record({column: getattr(row, column) for column in ("date", *_HISTORY_DECIMALS, *_HISTORY_OPTIONAL)})
            for row in rows
        ]

    async def upsert_history(self, entry: HistoryEntry) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.merge(HistoryRecord(**asdict(entry)))


__all__ = [
    "HistoryRepository",
    "InMemoryRepository",
    "JsonFileRepository",
    "SqlRepository",
    "TransactionRepository",
    "history_from_record",
    "history_to_record",
]
