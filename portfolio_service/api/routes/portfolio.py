"""Holdings, realized gains and allocation endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from stock_ledger.analytics import RealizedBucket
from stock_ledger.errors import OversellError
from stock_ledger.models import Currency, Holding, LedgerIssue, PortfolioStats, RealizedPosition

from ...schemas import (
    AllocationSliceSchema,
    HoldingSchema,
    LedgerIssueSchema,
    PortfolioSnapshotSchema,
    PortfolioStatsSchema,
    RealizedBucketSchema,
    RealizedPositionSchema,
    RealizedSummarySchema,
)
from ...services.portfolio import PortfolioService
from ..dependencies import InternalAuth, get_portfolio_service

router = APIRouter(dependencies=[InternalAuth])


def _optional(value) -> float | None:
    return float(value) if value is not None else None


def _serialize_holding(holding: Holding) -> HoldingSchema:
    return HoldingSchema(
        symbol=holding.symbol,
        broker=holding.broker.value,
        currency=holding.currency.value,
        shares=float(holding.shares),
        avg_cost=float(holding.avg_cost),
        total_cost=float(holding.total_cost),
        current_price=_optional(holding.current_price),
        market_value=float(holding.market_value),
        unrealized_pl=float(holding.unrealized_pl),
        unrealized_pl_percent=float(holding.unrealized_pl_percent),
        day_change=_optional(holding.day_change),
        day_change_percent=_optional(holding.day_change_percent),
    )


def _serialize_position(position: RealizedPosition) -> RealizedPositionSchema:
    return RealizedPositionSchema(
        symbol=position.symbol,
        broker=position.broker.value,
        currency=position.currency.value,
        quantity=float(position.quantity),
        date_acquired=position.date_acquired,
        date_sold=position.date_sold,
        days_held=position.days_held,
        acquisition_price=float(position.acquisition_price),
        acquisition_fee=float(position.acquisition_fee),
        sale_price=float(position.sale_price),
        sale_fee=float(position.sale_fee),
        adjusted_cost=float(position.adjusted_cost),
        sales_proceeds=float(position.sales_proceeds),
        net_gain_loss=float(position.net_gain_loss),
        gain_loss_percent=float(position.gain_loss_percent),
        is_short_term=position.is_short_term,
    )


def _serialize_stats(stats: PortfolioStats) -> PortfolioStatsSchema:
    return PortfolioStatsSchema(
        total_value=float(stats.total_value),
        total_cost=float(stats.total_cost),
        total_unrealized_pl=float(stats.total_unrealized_pl),
        total_unrealized_pl_percent=float(stats.total_unrealized_pl_percent),
        total_realized_pl=float(stats.total_realized_pl),
    )


def _serialize_issue(issue: LedgerIssue) -> LedgerIssueSchema:
    return LedgerIssueSchema(
        kind=issue.kind.value,
        transaction_id=issue.transaction_id,
        message=issue.message,
        symbol=issue.symbol,
        broker=issue.broker.value if issue.broker else None,
        unmatched_shares=_optional(issue.unmatched_shares),
    )


def _serialize_bucket(bucket: RealizedBucket) -> RealizedBucketSchema:
    return RealizedBucketSchema(
        sales_proceeds=float(bucket.sales_proceeds),
        adjusted_cost=float(bucket.adjusted_cost),
        net_gain=float(bucket.net_gain),
        net_gain_percent=float(bucket.net_gain_percent),
    )


def _oversell(exc: OversellError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("", response_model=PortfolioSnapshotSchema)
async def get_portfolio(service: PortfolioService = Depends(get_portfolio_service)) -> PortfolioSnapshotSchema:
    try:
        snapshot = await service.snapshot()
    except OversellError as exc:
        raise _oversell(exc) from exc
    result = snapshot.result
    return PortfolioSnapshotSchema(
        holdings=[_serialize_holding(h) for h in result.holdings],
        realized_positions=[_serialize_position(p) for p in result.realized_positions],
        total_realized_pl=float(result.total_realized_pl),
        stats=_serialize_stats(result.stats),
        consolidated_twd=_serialize_stats(snapshot.consolidated_twd),
        usd_twd_rate=float(snapshot.usd_twd_rate),
        issues=[_serialize_issue(issue) for issue in snapshot.issues],
    )


@router.get("/realized", response_model=RealizedSummarySchema)
async def get_realized_summary(
    currency: Currency | None = Query(default=None),
    service: PortfolioService = Depends(get_portfolio_service),
) -> RealizedSummarySchema:
    try:
        summary = await service.realized_summary(currency)
    except OversellError as exc:
        raise _oversell(exc) from exc
    return RealizedSummarySchema(
        currency=currency.value if currency else None,
        short_term=_serialize_bucket(summary.short_term),
        long_term=_serialize_bucket(summary.long_term),
        total=_serialize_bucket(summary.total),
    )


@router.get("/allocation", response_model=list[AllocationSliceSchema])
async def get_allocation(
    by: Literal["symbol", "broker"] = Query(default="symbol"),
    service: PortfolioService = Depends(get_portfolio_service),
) -> list[AllocationSliceSchema]:
    try:
        slices = await service.allocation(by)
    except OversellError as exc:
        raise _oversell(exc) from exc
    return [AllocationSliceSchema(name=name, value=float(value)) for name, value in slices]
