from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from portfolio_service.services.prices import PriceBook, PriceRefresher
from stock_ledger.models import PriceQuote


class FakeSource:
    def __init__(self, prices: dict[str, str], rate: str | None = "32") -> None:
        self.prices = prices
        self.rate = rate
        self.requested: list[str] = []

    async def fetch_quote(self, symbol: str) -> PriceQuote:
        self.requested.append(symbol)
        await asyncio.sleep(0)
        if symbol not in self.prices:
            raise RuntimeError("unknown symbol")
        return PriceQuote(Decimal(self.prices[symbol]))

    async def fetch_usd_twd_rate(self) -> Decimal:
        if self.rate is None:
            raise RuntimeError("fx down")
        return Decimal(self.rate)


def test_price_book_last_write_wins_and_snapshot_is_frozen():
    book = PriceBook()
    book.set("aapl", PriceQuote(Decimal("1")))
    book.set("AAPL", PriceQuote(Decimal("2")))
    snapshot = book.snapshot()
    book.set("AAPL", PriceQuote(Decimal("3")))

    assert snapshot["AAPL"].current == Decimal("2")
    assert book.get("aapl").current == Decimal("3")
    with pytest.raises(TypeError):
        snapshot["MSFT"] = PriceQuote(Decimal("1"))  # type: ignore[index]


@pytest.mark.asyncio
async def test_refresh_skips_failures_and_updates_rate():
    book = PriceBook(Decimal("31.5"))
    refresher = PriceRefresher(book, FakeSource({"AAPL": "190", "2330": "600"}))
    updated = await refresher.refresh(["AAPL", "2330", "MISSING", "aapl"])

    assert updated == 2
    assert book.get("2330").current == Decimal("600")
    assert book.get("MISSING") is None
    assert book.usd_twd_rate == Decimal("32")


@pytest.mark.asyncio
async def test_rate_failure_keeps_previous_rate():
    book = PriceBook(Decimal("31.5"))
    await PriceRefresher(book, FakeSource({}, rate=None)).refresh([])
    assert book.usd_twd_rate == Decimal("31.5")


@pytest.mark.asyncio
async def test_overlapping_refreshes_leave_a_consistent_book():
    book = PriceBook()
    refresher = PriceRefresher(book, FakeSource({"AAPL": "190", "MSFT": "410"}))
    await asyncio.gather(refresher.refresh(["AAPL", "MSFT"]), refresher.refresh(["MSFT"]))
    assert book.snapshot() == {"AAPL": PriceQuote(Decimal("190")), "MSFT": PriceQuote(Decimal("410"))}


@pytest.mark.asyncio
async def test_run_forever_polls_until_cancelled():
    book = PriceBook()
    source = FakeSource({"AAPL": "190"})
    refresher = PriceRefresher(book, source)

    async def symbols() -> list[str]:
        return ["AAPL"]

    task = asyncio.create_task(refresher.run_forever(symbols, 0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(source.requested) >= 2
    assert book.get("AAPL").current == Decimal("190")
