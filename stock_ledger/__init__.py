"""Core package for the FIFO stock ledger."""

from .engine import OversellPolicy, compute_ledger, compute_stats
from .errors import CsvImportError, LedgerError, OversellError, TransactionValidationError
from .models import (
    Broker,
    Currency,
    HistoryEntry,
    Holding,
    IssueKind,
    LedgerIssue,
    LedgerResult,
    PortfolioStats,
    PriceQuote,
    RealizedPosition,
    Transaction,
    TransactionType,
)

__all__ = [
    "Broker",
    "CsvImportError",
    "Currency",
    "HistoryEntry",
    "Holding",
    "IssueKind",
    "LedgerError",
    "LedgerIssue",
    "LedgerResult",
    "OversellError",
    "OversellPolicy",
    "PortfolioStats",
    "PriceQuote",
    "RealizedPosition",
    "Transaction",
    "TransactionType",
    "TransactionValidationError",
    "compute_ledger",
    "compute_stats",
]
