"""In-memory quote book and the background refresher that feeds it."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol

from portfolio_service.core.telemetry import LedgerMetrics
from stock_ledger.models import PriceQuote

logger = logging.getLogger(__name__)


class QuoteSource(Protocol):
    async def fetch_quote(self, symbol: str) -> PriceQuote: ...

    async def fetch_usd_twd_rate(self) -> Decimal: ...


class PriceBook:
    """Latest quote per symbol; last write wins."""

    def __init__(self, usd_twd_rate: Decimal = Decimal("31.5")) -> None:
        self._quotes: dict[str, PriceQuote] = {}
        self.usd_twd_rate = Decimal(usd_twd_rate)

    def set(self, symbol: str, quote: PriceQuote) -> None:
        self._quotes[symbol.upper()] = quote

    def get(self, symbol: str) -> PriceQuote | None:
        return self._quotes.get(symbol.upper())

    def snapshot(self) -> Mapping[str, PriceQuote]:
        """Return a read-only copy safe to hand to the ledger engine."""

        return MappingProxyType(dict(self._quotes))

    def __len__(self) -> int:
        return len(self._quotes)


class PriceRefresher:
    """Fetch quotes for held symbols into a ``PriceBook``."""

    def __init__(self, book: PriceBook, source: QuoteSource, *, metrics: LedgerMetrics | None = None) -> None:
        self.book = book
        self.source = source
        self.metrics = metrics or LedgerMetrics()

    async def _fetch(self, symbol: str) -> bool:
        try:
            quote = await self.source.fetch_quote(symbol)
        except Exception as exc:  # noqa: BLE001 - one bad symbol must not stop the cycle
            logger.warning("Quote fetch failed for %s: %s", symbol, exc)
            self.metrics.record_quote_failure(symbol)
            return False
        self.book.set(symbol, quote)
        return True

    async def refresh(self, symbols: Iterable[str], *, include_fx: bool = True) -> int:
        """Fetch all ``symbols`` concurrently and return how many were updated."""

        unique = sorted({s.upper() for s in symbols})
        results = await asyncio.gather(*(self._fetch(symbol) for symbol in unique))
        if include_fx:
            try:
                self.book.usd_twd_rate = await self.source.fetch_usd_twd_rate()
            except Exception as exc:  # noqa: BLE001
                logger.warning("USD/TWD rate fetch failed, keeping %s: %s", self.book.usd_twd_rate, exc)
        updated = sum(1 for ok in results if ok)
        logger.info("Refreshed %d/%d quotes", updated, len(unique))
        return updated

    async def run_forever(self, symbols_provider, interval: float) -> None:
        """Poll until cancelled. ``symbols_provider`` is an async callable."""

        while True:
            try:
                await self.refresh(await symbols_provider())
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("Price refresh cycle failed")
            await asyncio.sleep(interval)


__all__ = ["PriceBook", "PriceRefresher", "QuoteSource"]
