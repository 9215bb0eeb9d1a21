"""Exceptions raised by the ledger core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import LedgerIssue


class LedgerError(RuntimeError):
    """Base class for ledger failures."""


class TransactionValidationError(LedgerError, ValueError):
    """Raised when a transaction record cannot be normalized."""

    def __init__(self, message: str, *, field: str | None = None, transaction_id: str | None = None):
        super().__init__(message)
        self.field = field
        self.transaction_id = transaction_id


class OversellError(LedgerError):
    """Raised when a Sell exceeds the shares held and the policy forbids draining."""

    def __init__(self, issue: "LedgerIssue"):
        super().__init__(issue.message)
        self.issue = issue


class CsvImportError(LedgerError, ValueError):
    """Raised when a broker export cannot be parsed."""


__all__ = [
    "CsvImportError",
    "LedgerError",
    "OversellError",
    "TransactionValidationError",
]
