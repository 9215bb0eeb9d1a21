from .portfolio import (
    AllocationSliceSchema,
    CsvImportRequest,
    HistoryEntrySchema,
    HistoryRecordRequest,
    HoldingSchema,
    ImportResultSchema,
    LedgerIssueSchema,
    PortfolioSnapshotSchema,
    PortfolioStatsSchema,
    PriceBookSchema,
    PriceQuoteSchema,
    PriceUpdateRequest,
    RealizedBucketSchema,
    RealizedPositionSchema,
    RealizedSummarySchema,
    RefreshResultSchema,
    TransactionCreateRequest,
    TransactionSchema,
)

__all__ = [
    "AllocationSliceSchema",
    "CsvImportRequest",
    "HistoryEntrySchema",
    "HistoryRecordRequest",
    "HoldingSchema",
    "ImportResultSchema",
    "LedgerIssueSchema",
    "PortfolioSnapshotSchema",
    "PortfolioStatsSchema",
    "PriceBookSchema",
    "PriceQuoteSchema",
    "PriceUpdateRequest",
    "RealizedBucketSchema",
    "RealizedPositionSchema",
    "RealizedSummarySchema",
    "RefreshResultSchema",
    "TransactionCreateRequest",
    "TransactionSchema",
]
