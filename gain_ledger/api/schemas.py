"""Request payload schemas for ledger API endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from gain_ledger.domain import LedgerTransaction, TransactionKind


class TransactionPayload(BaseModel):
    """One transaction as accepted by the API.

    Attributes:
        transaction_id: Optional caller identifier, generated from position when omitted.
        symbol: Ticker symbol.
        display_name: Optional security name.
        kind: `buy` or `sell`.
        quantity: Positive share quantity.
        unit_price: Positive price per share.
        timestamp: ISO-8601 date or date-time.
        fees: Non-negative fee amount.
        notes: Optional free text.
    """

    transaction_id: str | None = Field(default=None)
    symbol: str = Field(min_length=1, max_length=20)
    display_name: str | None = Field(default=None)
    kind: TransactionKind
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(gt=0)
    timestamp: datetime | date
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str | None = Field(default=None)

    @field_validator("symbol")
    @classmethod
    def _validate_symbol(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("symbol must not be blank")
        return stripped_value

    def to_transaction(self, index: int) -> LedgerTransaction:
        """Build the immutable ledger transaction for this payload.

        Args:
            index: Position of the payload in the request, used for generated ids.

        Returns:
            LedgerTransaction: Ledger transaction record.
        """

        return LedgerTransaction(
            transaction_id=self.transaction_id or f"request-{index}",
            symbol=self.symbol,
            display_name=(self.display_name or "").strip() or self.symbol,
            kind=self.kind,
            quantity=self.quantity,
            unit_price=self.unit_price,
            timestamp=self.timestamp,
            fees=self.fees,
            notes=self.notes,
        )


class PortfolioRequest(BaseModel):
    """Transaction snapshot plus optional current prices.

    Attributes:
        transactions: Transactions in any order.
        current_prices: Optional sparse `symbol -> current price` map.
    """

    transactions: list[TransactionPayload] = Field(default_factory=list)
    current_prices: dict[str, Decimal] | None = Field(default=None)

    @field_validator("current_prices")
    @classmethod
    def _validate_prices(cls, value: dict[str, Decimal] | None) -> dict[str, Decimal] | None:
        if value is None:
            return None
        for symbol, price in value.items():
            if price < 0:
                raise ValueError(f"current price for {symbol} must not be negative")
        return value

    def to_transactions(self) -> list[LedgerTransaction]:
        """Build ledger transactions in request order."""

        return [payload.to_transaction(index) for index, payload in enumerate(self.transactions)]


class CsvImportRequest(BaseModel):
    """Raw CSV document submitted for import.

    Attributes:
        content: CSV text including the header row.
    """

    content: str = Field(min_length=1)
