"""SQLAlchemy models for the Stockfolio store."""

from .portfolio import HistoryRecord, TransactionRecord

__all__ = ["HistoryRecord", "TransactionRecord"]
