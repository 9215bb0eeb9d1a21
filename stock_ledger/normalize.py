"""Boundary helpers that turn loosely typed records into ``Transaction`` objects.

Records arrive from JSON files, spreadsheet rows and broker exports, so
numbers may be strings such as ``"1,000"`` or ``"$500"`` and dates may use
slashes or carry a time suffix. In lenient mode invalid numbers become zero,
which turns a broken record into a no-op for the engine rather than an
exception. Strict mode rejects the same records with a descriptive error.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from .errors import TransactionValidationError
from .models import Broker, Currency, IssueKind, LedgerIssue, Transaction, TransactionType

_NUMBER_NOISE = re.compile(r"[,$\s]")
_SLASH_DATE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})")

_TYPE_ALIASES = {
    "buy": TransactionType.BUY,
    "買進": TransactionType.BUY,
    "現股買進": TransactionType.BUY,
    "定期定額": TransactionType.BUY,
    "sell": TransactionType.SELL,
    "賣出": TransactionType.SELL,
    "現股賣出": TransactionType.SELL,
}

_BROKER_ALIASES = {broker.value.lower(): broker for broker in Broker}

_DEFAULT_CURRENCY = {
    Broker.FUBON_TW: Currency.TWD,
    Broker.FUBON_SUB: Currency.USD,
    Broker.FIRSTRADE: Currency.USD,
}


def parse_trade_date(value: Any) -> date:
    """Parse the date formats seen in stored and imported transactions."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise TransactionValidationError(f"Missing or invalid date: {value!r}", field="date")

    raw = value.strip()
    match = _SLASH_DATE.match(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError as exc:
            raise TransactionValidationError(f"Invalid date: {value!r}", field="date") from exc

    candidate = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(raw[:10], "%Y-%m-%d").date()
    except ValueError as exc:
        raise TransactionValidationError(f"Unrecognised date format: {value!r}", field="date") from exc


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        result = Decimal(str(value))
        return result if result.is_finite() else None
    if isinstance(value, str):
        cleaned = _NUMBER_NOISE.sub("", value)
        if not cleaned:
            return None
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            return None
        return result if result.is_finite() else None
    return None


def coerce_decimal(value: Any) -> Decimal:
    """Return ``value`` as a Decimal, or zero when it is missing or not numeric."""

    result = _to_decimal(value)
    return result if result is not None else Decimal("0")


def parse_transaction_type(value: Any) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    key = str(value or "").strip().lower()
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    raise TransactionValidationError(f"Unknown transaction type: {value!r}", field="type")


def parse_broker(value: Any) -> Broker:
    if isinstance(value, Broker):
        return value
    raw = str(value or "").strip()
    broker = _BROKER_ALIASES.get(raw.lower())
    if broker is not None:
        return broker
    if "富邦" in raw:
        return Broker.FUBON_SUB
    if "firstrade" in raw.lower():
        return Broker.FIRSTRADE
    raise TransactionValidationError(f"Unknown broker: {value!r}", field="broker")


def parse_currency(value: Any, broker: Broker) -> Currency:
    if isinstance(value, Currency):
        return value
    raw = str(value or "").strip().upper()
    if not raw:
        return _DEFAULT_CURRENCY[broker]
    try:
        return Currency(raw)
    except ValueError as exc:
        raise TransactionValidationError(f"Unsupported currency: {value!r}", field="currency") from exc


def _numeric_field(record: Mapping[str, Any], name: str, *, strict: bool, tx_id: str) -> Decimal:
    raw = record.get(name)
    if not strict:
        return coerce_decimal(raw)
    if raw is None or raw == "":
        if name == "fee":
            return Decimal("0")
        raise TransactionValidationError(f"Missing {name}", field=name, transaction_id=tx_id)
    value = _to_decimal(raw)
    if value is None:
        raise TransactionValidationError(f"{name} is not numeric: {raw!r}", field=name, transaction_id=tx_id)
    if value < 0:
        raise TransactionValidationError(f"{name} must not be negative", field=name, transaction_id=tx_id)
    return value


def transaction_from_record(record: Mapping[str, Any], *, strict: bool = False) -> Transaction:
    """Build a ``Transaction`` from a dict-like record.

    Numeric fields are coerced to zero in lenient mode. Type, broker and date
    can never be defaulted safely and raise ``TransactionValidationError`` in
    both modes.
    """

    tx_id = str(record.get("id") or "").strip()
    if strict and not tx_id:
        raise TransactionValidationError("Missing transaction id", field="id")

    tx_type = parse_transaction_type(record.get("type"))
    broker = parse_broker(record.get("broker"))
    trade_date = parse_trade_date(record.get("date"))
    symbol = str(record.get("symbol") or "").strip().upper()
    if not symbol:
        raise TransactionValidationError("Missing symbol", field="symbol", transaction_id=tx_id)

    shares = _numeric_field(record, "shares", strict=strict, tx_id=tx_id)
    if strict and shares == 0:
        raise TransactionValidationError("shares must be > 0", field="shares", transaction_id=tx_id)
    price = _numeric_field(record, "price", strict=strict, tx_id=tx_id)
    fee = _numeric_field(record, "fee", strict=strict, tx_id=tx_id)

    notes = record.get("notes", record.get("note"))
    return Transaction(
        id=tx_id,
        date=trade_date,
        broker=broker,
        symbol=symbol,
        type=tx_type,
        shares=shares,
        price=price,
        fee=fee,
        currency=parse_currency(record.get("currency"), broker),
        notes=str(notes) if notes not in (None, "") else None,
    )


def normalize_records(
    records: Iterable[Mapping[str, Any]],
    *,
    strict: bool = False,
) -> tuple[list[Transaction], list[LedgerIssue]]:
    """Normalize a batch of records.

    In lenient mode rows that cannot be normalized are skipped and reported as
    ``MALFORMED`` issues; strict mode raises on the first bad row.
    """

    transactions: list[Transaction] = []
    issues: list[LedgerIssue] = []
    for index, record in enumerate(records):
        try:
            transactions.append(transaction_from_record(record, strict=strict))
        except TransactionValidationError as exc:
            if strict:
                raise
            issues.append(
                LedgerIssue(
                    kind=IssueKind.MALFORMED,
                    transaction_id=str(record.get("id") or f"row-{index}"),
                    message=str(exc),
                    symbol=str(record.get("symbol") or "").upper() or None,
                )
            )
    return transactions, issues


def transaction_to_record(tx: Transaction) -> dict[str, Any]:
    """Serialise a transaction to the JSON-friendly record shape."""

    return {
        "id": tx.id,
        "date": tx.date.isoformat(),
        "broker": tx.broker.value,
        "symbol": tx.symbol,
        "type": tx.type.value,
        "shares": str(tx.shares),
        "price": str(tx.price),
        "fee": str(tx.fee),
        "currency": tx.currency.value,
        "notes": tx.notes,
    }


__all__ = [
    "coerce_decimal",
    "normalize_records",
    "parse_broker",
    "parse_currency",
    "parse_trade_date",
    "parse_transaction_type",
    "transaction_from_record",
    "transaction_to_record",
]
