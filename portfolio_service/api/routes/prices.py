"""Quote book endpoints."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status

from stock_ledger.models import PriceQuote

from ...schemas import PriceBookSchema, PriceQuoteSchema, PriceUpdateRequest, RefreshResultSchema
from ...services.portfolio import PortfolioService
from ...services.prices import PriceRefresher
from ..dependencies import InternalAuth, get_portfolio_service, get_price_refresher

router = APIRouter(dependencies=[InternalAuth])


def _serialize_quote(symbol: str, quote: PriceQuote) -> PriceQuoteSchema:
    return PriceQuoteSchema(
        symbol=symbol,
        current=float(quote.current),
        previous_close=float(quote.previous_close) if quote.previous_close is not None else None,
    )


@router.get("", response_model=PriceBookSchema)
async def get_prices(service: PortfolioService = Depends(get_portfolio_service)) -> PriceBookSchema:
    book = service.prices
    return PriceBookSchema(
        usd_twd_rate=float(book.usd_twd_rate),
        quotes=[_serialize_quote(symbol, quote) for symbol, quote in sorted(book.snapshot().items())],
    )


@router.put("/{symbol}", response_model=PriceQuoteSchema)
async def put_price(
    symbol: str,
    payload: PriceUpdateRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> PriceQuoteSchema:
    quote = PriceQuote(
        current=Decimal(str(payload.current)),
        previous_close=Decimal(str(payload.previous_close)) if payload.previous_close is not None else None,
    )
    service.prices.set(symbol, quote)
    return _serialize_quote(symbol.upper(), quote)


@router.post("/refresh", response_model=RefreshResultSchema)
async def refresh_prices(
    service: PortfolioService = Depends(get_portfolio_service),
    refresher: PriceRefresher | None = Depends(get_price_refresher),
) -> RefreshResultSchema:
    if refresher is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No price provider configured")
    symbols = await service.held_symbols()
    updated = await refresher.refresh(symbols)
    if symbols and updated == 0:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Unable to fetch market data")
    return RefreshResultSchema(requested=len(symbols), updated=updated)
