"""Yahoo chart client tests."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from portfolio_service.providers.yahoo import PriceProviderError, YahooChartClient, yahoo_symbol


class StubResponse:
    def __init__(self, payload: dict[str, object], status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self) -> dict[str, object]:
        return self._payload


class StubClient:
    def __init__(self, meta: dict[str, object] | None = None, status_code: int = 200) -> None:
        self.meta = meta
        self.status_code = status_code
        self.calls: list[str] = []

    async def get(self, url: str, headers: dict[str, str], timeout: float) -> StubResponse:
        self.calls.append(url)
        result = [{"meta": self.meta}] if self.meta is not None else []
        return StubResponse({"chart": {"result": result}}, self.status_code)

    async def aclose(self) -> None:  # pragma: no cover - included for interface completeness
        return None


def test_taiwan_symbols_are_padded():
    assert yahoo_symbol("50") == "0050.TW"
    assert yahoo_symbol("2330") == "2330.TW"
    assert yahoo_symbol("AAPL") == "AAPL"


@pytest.mark.asyncio
async def test_fetch_quote_reads_meta():
    stub = StubClient({"regularMarketPrice": 101.25, "previousClose": 100})
    client = YahooChartClient("https://chart.test/v8/finance/chart", client=stub)
    quote = await client.fetch_quote("50")
    assert stub.calls == ["https://chart.test/v8/finance/chart/0050.TW"]
    assert quote.current == Decimal("101.25")
    assert quote.previous_close == Decimal("100")


@pytest.mark.asyncio
async def test_previous_close_falls_back_to_chart_previous_close():
    stub = StubClient({"regularMarketPrice": 10, "chartPreviousClose": 9.5})
    quote = await YahooChartClient("https://chart.test", client=stub).fetch_quote("AAPL")
    assert quote.previous_close == Decimal("9.5")


@pytest.mark.asyncio
async def test_exchange_rate_uses_twd_pair():
    stub = StubClient({"regularMarketPrice": 32.1})
    rate = await YahooChartClient("https://chart.test", client=stub).fetch_usd_twd_rate()
    assert rate == Decimal("32.1")
    assert stub.calls == ["https://chart.test/TWD=X"]


@pytest.mark.asyncio
async def test_errors_raise_provider_error():
    with pytest.raises(PriceProviderError):
        await YahooChartClient("https://chart.test", client=StubClient(None)).fetch_quote("AAPL")
    with pytest.raises(PriceProviderError):
        await YahooChartClient("https://chart.test", client=StubClient({}, status_code=404)).fetch_quote("AAPL")


@pytest.mark.asyncio
async def test_owned_http_client_opens_on_first_request():
    client = YahooChartClient("https://chart.test")
    assert client._client is None
    await client.aclose()

    http = client._http()
    assert isinstance(http, httpx.AsyncClient)
    assert client._http() is http
    await client.aclose()
    assert http.is_closed
    assert client._client is None
