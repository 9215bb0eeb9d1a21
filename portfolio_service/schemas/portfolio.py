"""Pydantic schemas for the Stockfolio API."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class TransactionCreateRequest(BaseModel):
    id: str | None = Field(default=None, description="Client-supplied id; generated when omitted")
    date: dt.date
    broker: str = Field(..., examples=["Firstrade"])
    symbol: str = Field(..., min_length=1, examples=["AAPL"])
    type: str = Field(..., examples=["Buy"])
    shares: float
    price: float
    fee: float | None = Field(
        default=None,
        description="Total commission plus tax; filled from the broker fee schedule when omitted",
    )
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = None


class TransactionSchema(BaseModel):
    id: str
    date: dt.date
    broker: str
    symbol: str
    type: str
    shares: float
    price: float
    fee: float
    currency: str
    notes: str | None = None


class CsvImportRequest(BaseModel):
    content: str = Field(..., description="Raw CSV text exported by the broker")


class ImportResultSchema(BaseModel):
    imported: int
    transactions: list[TransactionSchema]


class LedgerIssueSchema(BaseModel):
    kind: str
    transaction_id: str
    message: str
    symbol: str | None = None
    broker: str | None = None
    unmatched_shares: float | None = None


class HoldingSchema(BaseModel):
    symbol: str
    broker: str
    currency: str
    shares: float
    avg_cost: float
    total_cost: float
    current_price: float | None = None
    market_value: float
    unrealized_pl: float
    unrealized_pl_percent: float
    day_change: float | None = None
    day_change_percent: float | None = None


class RealizedPositionSchema(BaseModel):
    symbol: str
    broker: str
    currency: str
    quantity: float
    date_acquired: dt.date
    date_sold: dt.date
    days_held: int
    acquisition_price: float
    acquisition_fee: float
    sale_price: float
    sale_fee: float
    adjusted_cost: float
    sales_proceeds: float
    net_gain_loss: float
    gain_loss_percent: float
    is_short_term: bool


class PortfolioStatsSchema(BaseModel):
    total_value: float
    total_cost: float
    total_unrealized_pl: float
    total_unrealized_pl_percent: float
    total_realized_pl: float


class PortfolioSnapshotSchema(BaseModel):
    holdings: list[HoldingSchema]
    realized_positions: list[RealizedPositionSchema]
    total_realized_pl: float
    stats: PortfolioStatsSchema
    consolidated_twd: PortfolioStatsSchema
    usd_twd_rate: float
    issues: list[LedgerIssueSchema]


class RealizedBucketSchema(BaseModel):
    sales_proceeds: float
    adjusted_cost: float
    net_gain: float
    net_gain_percent: float


class RealizedSummarySchema(BaseModel):
    currency: str | None = None
    short_term: RealizedBucketSchema
    long_term: RealizedBucketSchema
    total: RealizedBucketSchema


class AllocationSliceSchema(BaseModel):
    name: str
    value: float


class PriceQuoteSchema(BaseModel):
    symbol: str
    current: float
    previous_close: float | None = None


class PriceUpdateRequest(BaseModel):
    current: float = Field(..., ge=0)
    previous_close: float | None = Field(default=None, ge=0)


class PriceBookSchema(BaseModel):
    usd_twd_rate: float
    quotes: list[PriceQuoteSchema]


class RefreshResultSchema(BaseModel):
    requested: int
    updated: int


class HistoryEntrySchema(BaseModel):
    date: dt.date
    tw_market_value: float
    tw_cost: float
    tw_pl_rate: float
    us_market_value_usd: float
    us_cost_usd: float
    us_pl_rate: float
    total_pl_rate: float
    total_market_value_twd: float | None = None
    total_cost_twd: float | None = None


class HistoryRecordRequest(BaseModel):
    date: dt.date | None = Field(default=None, description="Defaults to today")
    force: bool = Field(default=False, description="Record even on a weekend")
