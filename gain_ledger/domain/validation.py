"""Field-level validation for transaction records before they reach the ledger."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from .errors import TransactionImportError
from .models import LedgerTransaction, TransactionKind

# Letters, digits, spaces, dots and hyphens: AAPL, BRK.A, BRK-B, "BRK B".
_VALIDATION_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9\s.-]{1,20}$", re.IGNORECASE)


@dataclass(frozen=True)
class ValidationIssue:
    """One field-level validation problem.

    Attributes:
        field: Offending field name.
        message: Human-readable problem description.
    """

    field: str
    message: str


def validation_is_valid_symbol(symbol: str) -> bool:
    """Return whether a symbol matches the accepted ticker format."""

    return bool(_VALIDATION_SYMBOL_PATTERN.match(symbol.strip()))


def validation_check_transaction_fields(
    symbol: str,
    quantity: Decimal,
    unit_price: Decimal,
    timestamp: date | datetime | None,
    fees: Decimal = Decimal("0"),
    today: date | None = None,
) -> list[ValidationIssue]:
    """Collect field-level problems for one candidate transaction.

    Args:
        symbol: Candidate ticker symbol.
        quantity: Candidate share quantity.
        unit_price: Candidate per-share price.
        timestamp: Candidate transaction date or date-time.
        fees: Candidate fee amount.
        today: Reference date for the future-date check, defaults to current UTC date.

    Returns:
        list[ValidationIssue]: Problems found, empty when the fields are valid.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    issues: list[ValidationIssue] = []

    if not symbol or not symbol.strip():
        issues.append(ValidationIssue(field="symbol", message="Stock symbol is required"))
    elif not validation_is_valid_symbol(symbol):
        issues.append(ValidationIssue(field="symbol", message="Invalid stock symbol format"))

    if quantity <= Decimal("0"):
        issues.append(ValidationIssue(field="quantity", message="Quantity must be greater than 0"))

    if unit_price <= Decimal("0"):
        issues.append(ValidationIssue(field="unit_price", message="Price must be greater than 0"))

    if timestamp is None:
        issues.append(ValidationIssue(field="timestamp", message="Date is required"))
    else:
        reference_date = today or datetime.now(timezone.utc).date()
        transaction_date = timestamp.date() if isinstance(timestamp, datetime) else timestamp
        if transaction_date > reference_date:
            issues.append(ValidationIssue(field="timestamp", message="Date cannot be in the future"))

    if fees < Decimal("0"):
        issues.append(ValidationIssue(field="fees", message="Fees cannot be negative"))

    return issues


def validation_build_transaction(
    symbol: str,
    kind: TransactionKind | str,
    quantity: Decimal,
    unit_price: Decimal,
    timestamp: date | datetime,
    fees: Decimal = Decimal("0"),
    display_name: str | None = None,
    notes: str | None = None,
    transaction_id: str | None = None,
    today: date | None = None,
) -> LedgerTransaction:
    """Validate raw fields and build one immutable ledger transaction.

    Args:
        symbol: Ticker symbol, surrounding whitespace is trimmed.
        kind: Transaction direction as enum or `buy`/`sell` text.
        quantity: Share quantity.
        unit_price: Per-share price.
        timestamp: Transaction date or date-time.
        fees: Fee amount.
        display_name: Optional security name, defaults to the symbol.
        notes: Optional notes, blank text is dropped.
        transaction_id: Optional identifier, generated when omitted.
        today: Reference date for the future-date check.

    Returns:
        LedgerTransaction: Validated transaction record.

    Raises:
        TransactionImportError: Raised when any field is invalid.
    """

    try:
        resolved_kind = kind if isinstance(kind, TransactionKind) else TransactionKind(str(kind).strip().lower())
    except ValueError as error:
        raise TransactionImportError(
            f"unsupported transaction type={kind}",
            issues=["type: Type must be either 'buy' or 'sell'"],
        ) from error

    issues = validation_check_transaction_fields(
        symbol=symbol,
        quantity=quantity,
        unit_price=unit_price,
        timestamp=timestamp,
        fees=fees,
        today=today,
    )
    if issues:
        raise TransactionImportError(
            "transaction failed validation",
            issues=[f"{issue.field}: {issue.message}" for issue in issues],
        )

    normalized_symbol = symbol.strip()
    normalized_notes = notes.strip() if notes else None
    return LedgerTransaction(
        transaction_id=transaction_id or uuid4().hex,
        symbol=normalized_symbol,
        display_name=(display_name or "").strip() or normalized_symbol,
        kind=resolved_kind,
        quantity=quantity,
        unit_price=unit_price,
        timestamp=timestamp,
        fees=fees,
        notes=normalized_notes or None,
    )


__all__ = [
    "ValidationIssue",
    "validation_build_transaction",
    "validation_check_transaction_fields",
    "validation_is_valid_symbol",
]
