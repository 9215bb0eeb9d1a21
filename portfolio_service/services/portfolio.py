"""Portfolio orchestration: storage, quotes and the FIFO ledger engine."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from opentelemetry import trace

from portfolio_service.core.telemetry import LedgerMetrics
from stock_ledger.analytics import AllocationKey, RealizedSummary, allocation, summarize_realized
from stock_ledger.engine import OversellPolicy, compute_ledger
from stock_ledger.errors import OversellError, TransactionValidationError
from stock_ledger.fees import calculate_fee
from stock_ledger.fx import build_history_entry, consolidate_stats, usd_twd_provider
from stock_ledger.importers import parse_broker_csv, parse_history_csv
from stock_ledger.models import (
    Currency,
    HistoryEntry,
    LedgerIssue,
    LedgerResult,
    PortfolioStats,
    Transaction,
)
from stock_ledger.normalize import transaction_from_record

from .prices import PriceBook
from .repository import HistoryRepository, TransactionRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class PortfolioSnapshot:
    result: LedgerResult
    issues: list[LedgerIssue]
    consolidated_twd: PortfolioStats
    usd_twd_rate: Decimal


class PortfolioService:
    """Coordinates writes to the store and recomputation of the ledger.

    Every read replays the full transaction history; nothing derived is
    cached. Writes are serialised by a per-instance lock so concurrent
    requests cannot interleave load-modify-save cycles.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        prices: PriceBook,
        *,
        history: HistoryRepository | None = None,
        oversell: OversellPolicy = OversellPolicy.REPORT,
        strict: bool = False,
        id_factory: Callable[[], str] = _new_id,
        today: Callable[[], date] = date.today,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self.repository = repository
        self.history = history if history is not None else repository  # type: ignore[assignment]
        self.prices = prices
        self.oversell = OversellPolicy(oversell)
        self.strict = strict
        self._id_factory = id_factory
        self._today = today
        self._lock = asyncio.Lock()
        self.metrics = metrics or LedgerMetrics()

    # Transactions

    def _prepare(self, record: Mapping[str, Any]) -> Transaction:
        data = dict(record)
        if not data.get("id"):
            data["id"] = self._id_factory()
        fee_missing = data.get("fee") in (None, "")
        tx = transaction_from_record(data, strict=self.strict)
        if tx.shares <= 0:
            raise TransactionValidationError("shares must be > 0", field="shares", transaction_id=tx.id)
        if tx.price < 0 or tx.fee < 0:
            raise TransactionValidationError("price and fee must not be negative", transaction_id=tx.id)
        if fee_missing:
            tx = replace(tx, fee=calculate_fee(tx.broker, tx.type, tx.shares, tx.price))
        return tx

    async def list_transactions(self) -> list[Transaction]:
        return await self.repository.load()

    async def add_transactions(self, records: Iterable[Mapping[str, Any]]) -> list[Transaction]:
        """Validate ``records`` and append them; all or nothing."""

        new = [self._prepare(record) for record in records]
        if not new:
            return []
        async with self._lock:
            existing = await self.repository.load()
            taken = {tx.id for tx in existing}
            for tx in new:
                if tx.id in taken:
                    raise TransactionValidationError(f"Duplicate transaction id: {tx.id}", field="id", transaction_id=tx.id)
                taken.add(tx.id)
            await self.repository.save(existing + new)
        logger.info("Stored %d transaction(s)", len(new))
        return new

    async def add_transaction(self, record: Mapping[str, Any]) -> Transaction:
        (tx,) = await self.add_transactions([record])
        return tx

    async def import_csv(self, text: str) -> list[Transaction]:
        """Parse a broker export and store its trades."""

        parsed = parse_broker_csv(text, id_factory=self._id_factory)
        async with self._lock:
            existing = await self.repository.load()
            await self.repository.save(existing + parsed)
        logger.info("Imported %d transaction(s) from CSV", len(parsed))
        return parsed

    async def delete_transaction(self, transaction_id: str) -> bool:
        async with self._lock:
            existing = await self.repository.load()
            kept = [tx for tx in existing if tx.id != transaction_id]
            if len(kept) == len(existing):
                return False
            await self.repository.save(kept)
        logger.info("Deleted transaction %s", transaction_id)
        return True

    async def clear_transactions(self) -> None:
        async with self._lock:
            await self.repository.save([])
        logger.info("All transactions cleared")

    # Ledger

    async def compute(self) -> LedgerResult:
        transactions = await self.repository.load()
        with tracer.start_as_current_span("ledger.compute") as span:
            span.set_attribute("ledger.transactions", len(transactions))
            started = time.perf_counter()
            try:
                result = compute_ledger(transactions, self.prices.snapshot(), oversell=self.oversell)
            except OversellError as exc:
                self.metrics.record_issue(exc.issue.kind)
                raise
            elapsed_ms = (time.perf_counter() - started) * 1000
            span.set_attribute("ledger.holdings", len(result.holdings))
            span.set_attribute("ledger.issues", len(result.issues))
        self.metrics.record_compute(result, len(transactions), elapsed_ms, self.oversell.value)
        return result

    async def snapshot(self) -> PortfolioSnapshot:
        result = await self.compute()
        rate = self.prices.usd_twd_rate
        realized_by_currency: dict[Currency, Decimal] = {}
        for position in result.realized_positions:
            realized_by_currency[position.currency] = (
                realized_by_currency.get(position.currency, Decimal("0")) + position.net_gain_loss
            )
        consolidated = consolidate_stats(result.holdings, realized_by_currency, usd_twd_provider(rate))
        return PortfolioSnapshot(
            result=result,
            issues=list(self.repository.issues) + list(result.issues),
            consolidated_twd=consolidated,
            usd_twd_rate=rate,
        )

    async def realized_summary(self, currency: Currency | None = None) -> RealizedSummary:
        result = await self.compute()
        return summarize_realized(result.realized_positions, currency=currency)

    async def allocation(self, by: AllocationKey = "symbol") -> list[tuple[str, Decimal]]:
        result = await self.compute()
        return allocation(result.holdings, by=by)

    async def held_symbols(self) -> list[str]:
        result = await self.compute()
        return sorted({holding.symbol for holding in result.holdings})

    # History

    async def list_history(self) -> list[HistoryEntry]:
        return await self.history.list_history()

    async def record_history(self, day: date | None = None, *, force: bool = False) -> HistoryEntry | None:
        """Store today's split TW/US snapshot; weekends are skipped unless forced."""

        day = day or self._today()
        if day.weekday() >= 5 and not force:
            logger.info("Skipping history snapshot for weekend day %s", day.isoformat())
            return None
        async with self._lock:
            result = await self.compute()
            entry = build_history_entry(day, result.holdings, self.prices.usd_twd_rate)
            await self.history.upsert_history(entry)
        logger.info("Recorded history snapshot for %s", day.isoformat())
        return entry

    async def import_history(self, text: str) -> int:
        entries = parse_history_csv(text)
        async with self._lock:
            for entry in entries:
                await self.history.upsert_history(entry)
        logger.info("Imported %d history row(s)", len(entries))
        return len(entries)


__all__ = ["PortfolioService", "PortfolioSnapshot"]
