"""Daily portfolio history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from stock_ledger.errors import CsvImportError, OversellError
from stock_ledger.models import HistoryEntry

from ...schemas import CsvImportRequest, HistoryEntrySchema, HistoryRecordRequest
from ...services.portfolio import PortfolioService
from ..dependencies import InternalAuth, get_portfolio_service

router = APIRouter(dependencies=[InternalAuth])


def _serialize_entry(entry: HistoryEntry) -> HistoryEntrySchema:
    return HistoryEntrySchema(
        date=entry.date,
        tw_market_value=float(entry.tw_market_value),
        tw_cost=float(entry.tw_cost),
        tw_pl_rate=float(entry.tw_pl_rate),
        us_market_value_usd=float(entry.us_market_value_usd),
        us_cost_usd=float(entry.us_cost_usd),
        us_pl_rate=float(entry.us_pl_rate),
        total_pl_rate=float(entry.total_pl_rate),
        total_market_value_twd=float(entry.total_market_value_twd) if entry.total_market_value_twd is not None else None,
        total_cost_twd=float(entry.total_cost_twd) if entry.total_cost_twd is not None else None,
    )


@router.get("", response_model=list[HistoryEntrySchema])
async def get_history(service: PortfolioService = Depends(get_portfolio_service)) -> list[HistoryEntrySchema]:
    return [_serialize_entry(entry) for entry in await service.list_history()]


@router.post("/record", response_model=HistoryEntrySchema | None)
async def record_history(
    payload: HistoryRecordRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> HistoryEntrySchema | None:
    try:
        entry = await service.record_history(payload.date, force=payload.force)
    except OversellError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _serialize_entry(entry) if entry is not None else None


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_history(
    payload: CsvImportRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> dict[str, int]:
    try:
        count = await service.import_history(payload.content)
    except CsvImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"imported": count}
