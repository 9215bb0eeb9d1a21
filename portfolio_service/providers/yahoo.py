"""Yahoo Finance chart client used for live quotes and the USD/TWD rate."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

import httpx

from portfolio_service.config import get_settings
from stock_ledger.models import PriceQuote

USD_TWD_SYMBOL = "TWD=X"
_TW_NUMERIC = re.compile(r"^\d+$")
_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
}


class PriceProviderError(RuntimeError):
    """Raised when Yahoo returns an error or a payload without market data."""


def yahoo_symbol(symbol: str) -> str:
    """Map a ledger symbol to Yahoo's ticker (``50`` -> ``0050.TW``)."""

    if _TW_NUMERIC.match(symbol):
        return symbol.rjust(4, "0") + ".TW"
    return symbol


def _price(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    return Decimal(str(value))


class YahooChartClient:
    """Thin wrapper over the v8 chart endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.price_provider_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.price_request_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _http(self) -> Any:
        # Opened on first request; closed by aclose
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _meta(self, ticker: str) -> dict[str, Any]:
        response = await self._http().get(
            f"{self.base_url}/{ticker}",
            headers=_HEADERS,
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise PriceProviderError(f"Yahoo API error {response.status_code} for {ticker}")
        payload = response.json()
        results = (payload.get("chart") or {}).get("result") or []
        meta = results[0].get("meta") if results else None
        if not meta or meta.get("regularMarketPrice") is None:
            raise PriceProviderError(f"No market data found for {ticker}")
        return meta

    async def fetch_quote(self, symbol: str) -> PriceQuote:
        """Return the current price and previous close for ``symbol``."""

        meta = await self._meta(yahoo_symbol(symbol))
        previous = meta.get("previousClose")
        if previous is None:
            previous = meta.get("chartPreviousClose")
        return PriceQuote(current=_price(meta["regularMarketPrice"]), previous_close=_price(previous))

    async def fetch_usd_twd_rate(self) -> Decimal:
        meta = await self._meta(USD_TWD_SYMBOL)
        return _price(meta["regularMarketPrice"])


__all__ = ["PriceProviderError", "USD_TWD_SYMBOL", "YahooChartClient", "yahoo_symbol"]
