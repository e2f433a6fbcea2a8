"""Typed domain models shared across runtime layers.

Transaction records are immutable value objects supplied by callers. The
ledger engine reads them and never mutates or retains them between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class TransactionKind(str, Enum):
    """Supported transaction directions."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class LedgerTransaction:
    """One buy or sell transaction for a security.

    Attributes:
        transaction_id: Opaque unique identifier.
        symbol: Ticker symbol, case preserved.
        display_name: Human-readable security name carried through to aggregates.
        kind: Transaction direction.
        quantity: Positive share quantity, fractional allowed.
        unit_price: Positive price per share.
        timestamp: Transaction date or date-time used for FIFO ordering.
        fees: Non-negative transaction cost.
        notes: Optional free text with no computational effect.
    """

    transaction_id: str
    symbol: str
    display_name: str
    kind: TransactionKind
    quantity: Decimal
    unit_price: Decimal
    timestamp: date | datetime
    fees: Decimal = Decimal("0")
    notes: str | None = None

    @property
    def gross_amount(self) -> Decimal:
        """Return quantity multiplied by unit price."""

        return self.quantity * self.unit_price

