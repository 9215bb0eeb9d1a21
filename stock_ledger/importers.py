"""Parsers for broker CSV exports and the daily history spreadsheet."""

from __future__ import annotations

import csv
import io
import uuid
from decimal import Decimal
from typing import Callable

from .errors import CsvImportError, TransactionValidationError
from .models import Broker, Currency, HistoryEntry, Transaction
from .normalize import coerce_decimal, parse_trade_date, parse_transaction_type

IMPORT_NOTE = "Imported via CSV"


def _default_id() -> str:
    return str(uuid.uuid4())


def _rows(text: str) -> list[list[str]]:
    reader = csv.reader(io.StringIO(text.strip()))
    return [[cell.strip() for cell in row] for row in reader if any(cell.strip() for cell in row)]


def _detect_format(header: str) -> str:
    if "手續費" in header and "卷商" not in header:
        return "tw"
    if "卷商" in header or "成本(USD)" in header:
        return "us"
    raise CsvImportError("Unknown CSV format. Please check the header.")


def _us_broker(raw: str) -> Broker:
    lowered = raw.lower()
    if "firstrade" in lowered:
        return Broker.FIRSTRADE
    if "富邦" in raw:
        return Broker.FUBON_SUB
    return Broker.FIRSTRADE


def parse_broker_csv(text: str, *, id_factory: Callable[[], str] = _default_id) -> list[Transaction]:
    """Parse a Fubon (TW) or US-broker trade export.

    TW columns: time, side, symbol, shares, price, market value, fee, cost.
    US columns: time, side, broker, symbol, shares, price, ...; US trades are
    imported without fees.
    """

    rows = _rows(text)
    if len(rows) < 2:
        raise CsvImportError("CSV must have a header and at least one data row.")

    layout = _detect_format(",".join(rows[0]))
    transactions: list[Transaction] = []
    for line_no, cols in enumerate(rows[1:], start=2):
        try:
            if layout == "tw":
                date_str, side, symbol, shares, price = cols[0], cols[1], cols[2], cols[3], cols[4]
                fee = coerce_decimal(cols[6]) if len(cols) > 6 else Decimal("0")
                broker = Broker.FUBON_TW
                currency = Currency.TWD
            else:
                date_str, side, broker_name, symbol, shares, price = cols[:6]
                fee = Decimal("0")
                broker = _us_broker(broker_name)
                currency = Currency.USD
            trade_date = parse_trade_date(date_str)
            side_type = parse_transaction_type(side)
            share_count = coerce_decimal(shares)
            unit_price = coerce_decimal(price)
        except (IndexError, ValueError, TransactionValidationError) as exc:
            raise CsvImportError(f"Failed to parse line {line_no}: {exc}") from exc

        transactions.append(
            Transaction(
                id=id_factory(),
                date=trade_date,
                broker=broker,
                symbol=symbol.upper(),
                type=side_type,
                shares=share_count,
                price=unit_price,
                fee=fee,
                currency=currency,
                notes=IMPORT_NOTE,
            )
        )
    return transactions


def _rate(raw: str | None) -> Decimal:
    return coerce_decimal((raw or "").replace("%", "")) / 100


def parse_history_csv(text: str) -> list[HistoryEntry]:
    """Parse the ``record.csv`` daily history export.

    Percentages in the file are converted to fractions.
    """

    rows = _rows(text)
    entries: list[HistoryEntry] = []
    for cols in rows[1:]:
        if not cols or not cols[0]:
            continue
        padded = cols + [""] * (17 - len(cols))
        try:
            day = parse_trade_date(padded[0])
        except TransactionValidationError as exc:
            raise CsvImportError(f"Invalid history date: {padded[0]!r}") from exc
        entries.append(
            HistoryEntry(
                date=day,
                tw_market_value=coerce_decimal(padded[1]),
                tw_cost=coerce_decimal(padded[2]),
                tw_pl_rate=_rate(padded[4]),
                us_market_value_usd=coerce_decimal(padded[9]),
                us_cost_usd=coerce_decimal(padded[10]),
                us_pl_rate=_rate(padded[12]),
                total_pl_rate=_rate(padded[16]),
            )
        )
    return entries


__all__ = ["IMPORT_NOTE", "parse_broker_csv", "parse_history_csv"]
