"""CSV transaction import with flexible header mapping.

Column order is free; headers are matched case-insensitively. Required columns
are `symbol`, `stockName`, `type`, `quantity` and `date`. Each row must carry
exactly one of `pricePerShare` or `totalPrice`; `fees` and `notes` are optional.
Row-level problems are collected so a caller can show all of them at once.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .errors import TransactionImportError
from .models import LedgerTransaction
from .validation import validation_build_transaction

logger = logging.getLogger(__name__)

_CSV_REQUIRED_COLUMNS = ("symbol", "stockName", "type", "quantity", "date")
_CSV_OPTIONAL_COLUMNS = ("pricePerShare", "totalPrice", "fees", "notes")

_CSV_DATETIME_12H_PATTERN = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})\s+(\d{1,2}):(\d{2})\s*(am|pm)$", re.IGNORECASE)
_CSV_DATETIME_24H_PATTERN = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})\s+(\d{1,2}):(\d{2})$")
_CSV_DATE_PATTERN = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")

_CSV_SUPPORTED_DATE_FORMATS = "dd-mm-yyyy, dd-mm-yyyy hh:mm am/pm, dd-mm-yyyy hh:mm, yyyy-mm-dd"


@dataclass(frozen=True)
class CsvImportResult:
    """Outcome of one CSV import.

    Attributes:
        transactions: Successfully parsed transactions in file order.
        errors: Row-level problems in `Row N: message` form.
    """

    transactions: tuple[LedgerTransaction, ...]
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_errors(self) -> bool:
        """Return whether any row failed to import."""

        return bool(self.errors)


def csv_parse_date(value: str | None) -> date | datetime | None:
    """Parse one CSV date cell in any of the supported layouts.

    Args:
        value: Raw cell text.

    Returns:
        date | datetime | None: `date` for day-only values, `datetime` when a time
        is present, None when the text is not a supported date.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if not value or not value.strip():
        return None
    normalized_value = value.strip()

    match = _CSV_DATETIME_12H_PATTERN.match(normalized_value)
    if match:
        day, month, year, hour, minute, meridiem = match.groups()
        hour_12 = int(hour)
        if hour_12 < 1 or hour_12 > 12:
            return None
        hour_24 = hour_12 % 12
        if meridiem.lower() == "pm":
            hour_24 += 12
        return _csv_build_datetime(int(year), int(month), int(day), hour_24, int(minute))

    match = _CSV_DATETIME_24H_PATTERN.match(normalized_value)
    if match:
        day, month, year, hour, minute = match.groups()
        return _csv_build_datetime(int(year), int(month), int(day), int(hour), int(minute))

    match = _CSV_DATE_PATTERN.match(normalized_value)
    if match:
        day, month, year = match.groups()
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            return None

    try:
        return date.fromisoformat(normalized_value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(normalized_value)
    except ValueError:
        return None


def csv_import_transactions(text: str) -> CsvImportResult:
    """Parse CSV text into ledger transactions.

    Args:
        text: Full CSV document including the header row.

    Returns:
        CsvImportResult: Parsed transactions plus collected row errors.

    Raises:
        TransactionImportError: Raised when the document is empty or a required header is missing.
    """

    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    while rows and not any(cell.strip() for cell in rows[0]):
        rows.pop(0)
    if not rows:
        raise TransactionImportError("CSV file is empty", issues=["CSV file must contain a header row"])

    column_map = _csv_build_column_map(rows[0])

    transactions: list[LedgerTransaction] = []
    errors: list[str] = []
    for row_index, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            continue
        try:
            transactions.append(_csv_build_row_transaction(row, column_map))
        except TransactionImportError as error:
            errors.extend(f"Row {row_index}: {issue}" for issue in error.issues or [str(error)])

    if errors:
        logger.warning("CSV import finished with %d row errors", len(errors))
    logger.info("CSV import parsed %d transactions", len(transactions))
    return CsvImportResult(transactions=tuple(transactions), errors=tuple(errors))


def _csv_build_column_map(header_row: list[str]) -> dict[str, int]:
    """Map canonical column names to header positions.

    Raises:
        TransactionImportError: Raised when a required column is missing.
    """

    normalized_headers = [header.strip().strip('"').lower() for header in header_row]
    column_map: dict[str, int] = {}
    missing_columns: list[str] = []

    for column_name in _CSV_REQUIRED_COLUMNS:
        if column_name.lower() not in normalized_headers:
            missing_columns.append(column_name)
            continue
        column_map[column_name] = normalized_headers.index(column_name.lower())

    if missing_columns:
        raise TransactionImportError(
            "CSV header is missing required columns",
            issues=[f"Required column '{column_name}' not found in CSV headers" for column_name in missing_columns],
        )

    for column_name in _CSV_OPTIONAL_COLUMNS:
        if column_name.lower() in normalized_headers:
            column_map[column_name] = normalized_headers.index(column_name.lower())

    if "pricePerShare" not in column_map and "totalPrice" not in column_map:
        raise TransactionImportError(
            "CSV header is missing a price column",
            issues=["Either 'pricePerShare' or 'totalPrice' column is required"],
        )
    return column_map


def _csv_build_row_transaction(row: list[str], column_map: dict[str, int]) -> LedgerTransaction:
    """Build one transaction from a data row.

    Raises:
        TransactionImportError: Raised with every problem found in the row.
    """

    def cell(column_name: str) -> str:
        index = column_map.get(column_name)
        if index is None or index >= len(row):
            return ""
        return row[index].strip().strip('"')

    issues: list[str] = []
    symbol = cell("symbol")
    stock_name = cell("stockName")
    kind_text = cell("type").lower()

    if not symbol:
        issues.append("Symbol is required")
    if not stock_name:
        issues.append("Stock name is required")
    if kind_text not in {"buy", "sell"}:
        issues.append("Type must be either 'buy' or 'sell'")

    quantity = _csv_parse_decimal(cell("quantity"))
    if quantity is None or quantity <= Decimal("0"):
        issues.append("Quantity must be a positive number")

    price_text = cell("pricePerShare")
    total_text = cell("totalPrice")
    unit_price: Decimal | None = None
    if price_text and total_text:
        issues.append("Provide either pricePerShare or totalPrice, not both")
    elif not price_text and not total_text:
        issues.append("Either pricePerShare or totalPrice is required")
    elif price_text:
        unit_price = _csv_parse_decimal(price_text)
        if unit_price is None or unit_price <= Decimal("0"):
            issues.append("Price per share must be a positive number")
    else:
        total_price = _csv_parse_decimal(total_text)
        if total_price is None or total_price <= Decimal("0"):
            issues.append("Total price must be a positive number")
        elif quantity is not None and quantity > Decimal("0"):
            unit_price = total_price / quantity

    timestamp = csv_parse_date(cell("date"))
    if timestamp is None:
        issues.append(f"Invalid date format. Supported formats: {_CSV_SUPPORTED_DATE_FORMATS}")

    fees_text = cell("fees")
    fees = _csv_parse_decimal(fees_text) if fees_text else Decimal("0")
    if fees is None or fees < Decimal("0"):
        issues.append("Fees must be a non-negative number")

    if issues:
        raise TransactionImportError("row failed validation", issues=issues)

    return validation_build_transaction(
        symbol=symbol,
        kind=kind_text,
        quantity=quantity,
        unit_price=unit_price,
        timestamp=timestamp,
        fees=fees,
        display_name=stock_name,
        notes=cell("notes") or None,
    )


def _csv_parse_decimal(value: str) -> Decimal | None:
    """Parse a numeric cell, returning None for blank or non-numeric text."""

    if not value:
        return None
    try:
        parsed_value = Decimal(value.replace(",", ""))
    except InvalidOperation:
        return None
    if not parsed_value.is_finite():
        return None
    return parsed_value


def _csv_build_datetime(year: int, month: int, day: int, hour: int, minute: int) -> datetime | None:
    """Build a naive datetime, returning None for out-of-range parts."""

    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


__all__ = ["CsvImportResult", "csv_import_transactions", "csv_parse_date"]
