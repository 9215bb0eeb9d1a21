"""Transaction log endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from stock_ledger.errors import CsvImportError, TransactionValidationError
from stock_ledger.models import Transaction

from ...schemas import CsvImportRequest, ImportResultSchema, TransactionCreateRequest, TransactionSchema
from ...services.portfolio import PortfolioService
from ..dependencies import InternalAuth, get_portfolio_service

router = APIRouter(dependencies=[InternalAuth])


def _serialize_transaction(tx: Transaction) -> TransactionSchema:
    return TransactionSchema(
        id=tx.id,
        date=tx.date,
        broker=tx.broker.value,
        symbol=tx.symbol,
        type=tx.type.value,
        shares=float(tx.shares),
        price=float(tx.price),
        fee=float(tx.fee),
        currency=tx.currency.value,
        notes=tx.notes,
    )


@router.get("", response_model=list[TransactionSchema])
async def get_transactions(service: PortfolioService = Depends(get_portfolio_service)) -> list[TransactionSchema]:
    return [_serialize_transaction(tx) for tx in await service.list_transactions()]


@router.post("", response_model=TransactionSchema, status_code=status.HTTP_201_CREATED)
async def post_transaction(
    payload: TransactionCreateRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> TransactionSchema:
    try:
        tx = await service.add_transaction(payload.model_dump())
    except TransactionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _serialize_transaction(tx)


@router.post("/bulk", response_model=list[TransactionSchema], status_code=status.HTTP_201_CREATED)
async def post_transactions_bulk(
    payload: list[TransactionCreateRequest],
    service: PortfolioService = Depends(get_portfolio_service),
) -> list[TransactionSchema]:
    try:
        created = await service.add_transactions(item.model_dump() for item in payload)
    except TransactionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return [_serialize_transaction(tx) for tx in created]


@router.post("/import", response_model=ImportResultSchema, status_code=status.HTTP_201_CREATED)
async def import_transactions(
    payload: CsvImportRequest,
    service: PortfolioService = Depends(get_portfolio_service),
) -> ImportResultSchema:
    try:
        created = await service.import_csv(payload.content)
    except CsvImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ImportResultSchema(imported=len(created), transactions=[_serialize_transaction(tx) for tx in created])


@router.delete("")
async def clear_transactions(service: PortfolioService = Depends(get_portfolio_service)) -> dict[str, bool]:
    await service.clear_transactions()
    return {"success": True}


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    service: PortfolioService = Depends(get_portfolio_service),
) -> dict[str, bool]:
    if not await service.delete_transaction(transaction_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return {"success": True}
