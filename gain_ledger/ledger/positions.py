"""Per-symbol position aggregation on top of FIFO matching."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from gain_ledger.domain import ComputationError, LedgerTransaction, TransactionKind

from .fifo_engine import (
    FifoOpenLotResult,
    RealizedSaleResult,
    fifo_match_symbol,
    fifo_resolve_kind,
    fifo_sort_transactions,
    fifo_to_decimal,
)

_ZERO = Decimal("0")

PriceMap = Mapping[str, object]


@dataclass(frozen=True)
class StockPosition:
    """Aggregated state of every transaction for one symbol.

    Attributes:
        symbol: Security symbol.
        display_name: Security name taken from the earliest transaction.
        total_shares_bought: Sum of buy quantities.
        total_shares_sold: Sum of sell quantities.
        shares_owned: Bought minus sold, negative for anomalous histories.
        average_cost: Cost per share of the remaining open lots, fees included.
        total_invested: Sum of buy cost including fees.
        total_received: Sum of sell proceeds net of fees.
        realized_profit_loss: Sum of realized-sale records.
        remaining_shares_cost_basis: Cost basis of the remaining open lots.
        current_value: Shares owned times supplied current price, else zero.
        unrealized_gain_loss: Current value minus remaining cost basis, else zero.
        total_gain_loss: Realized plus unrealized gain or loss.
        transaction_count: Number of transactions for the symbol.
        realized_sales: Realized-sale records from FIFO matching.
        open_lots: Remaining open lots, oldest first.
    """

    symbol: str
    display_name: str
    total_shares_bought: Decimal
    total_shares_sold: Decimal
    shares_owned: Decimal
    average_cost: Decimal
    total_invested: Decimal
    total_received: Decimal
    realized_profit_loss: Decimal
    remaining_shares_cost_basis: Decimal
    current_value: Decimal
    unrealized_gain_loss: Decimal
    total_gain_loss: Decimal
    transaction_count: int
    realized_sales: tuple[RealizedSaleResult, ...]
    open_lots: tuple[FifoOpenLotResult, ...]

    @property
    def has_holdings(self) -> bool:
        """Return whether shares are still owned."""

        return self.shares_owned > _ZERO


def positions_compute(
    transactions: Iterable[LedgerTransaction],
    current_prices: PriceMap | None = None,
) -> list[StockPosition]:
    """Compute one position per symbol, fully sold symbols included.

    Args:
        transactions: All transactions in any order.
        current_prices: Optional sparse `symbol -> current price` map.

    Returns:
        list[StockPosition]: Positions ordered by symbol.

    Raises:
        ComputationError: Raised when a symbol's transactions or price are unusable.
    """

    grouped_transactions = positions_group_by_symbol(transactions)
    return [
        positions_build_for_symbol(
            symbol=symbol,
            transactions=grouped_transactions[symbol],
            current_price=positions_lookup_price(current_prices, symbol),
        )
        for symbol in sorted(grouped_transactions)
    ]


def positions_group_by_symbol(transactions: Iterable[LedgerTransaction]) -> dict[str, list[LedgerTransaction]]:
    """Group transactions by symbol, preserving input order within each group.

    Args:
        transactions: Transactions in any order.

    Returns:
        dict[str, list[LedgerTransaction]]: Transactions keyed by symbol.

    Raises:
        ComputationError: Raised when a symbol is not a non-blank string.
    """

    grouped_transactions: dict[str, list[LedgerTransaction]] = {}
    for transaction in transactions:
        if not isinstance(transaction.symbol, str) or not transaction.symbol.strip():
            raise ComputationError(
                f"transaction {transaction.transaction_id} has invalid symbol={transaction.symbol!r}",
                field="symbol",
            )
        grouped_transactions.setdefault(transaction.symbol, []).append(transaction)
    return grouped_transactions


def positions_lookup_price(current_prices: PriceMap | None, symbol: str) -> Decimal | None:
    """Return the supplied current price for a symbol, None when absent.

    Raises:
        ComputationError: Raised when the supplied price is not a non-negative number.
    """

    if current_prices is None or symbol not in current_prices:
        return None
    raw_price = current_prices[symbol]
    if raw_price is None:
        return None
    current_price = fifo_to_decimal(raw_price, field="current_price", symbol=symbol)
    if current_price < _ZERO:
        raise ComputationError(f"current price must not be negative, got {raw_price}", symbol=symbol, field="current_price")
    return current_price


def positions_build_for_symbol(
    symbol: str,
    transactions: list[LedgerTransaction],
    current_price: Decimal | None = None,
) -> StockPosition:
    """Build the position for one symbol.

    Args:
        symbol: Security symbol.
        transactions: Every transaction for the symbol.
        current_price: Optional current price per share.

    Returns:
        StockPosition: Aggregated position values.

    Raises:
        ComputationError: Raised when a transaction carries unusable values.
    """

    fifo_result = fifo_match_symbol(symbol, transactions)

    total_shares_bought = _ZERO
    total_shares_sold = _ZERO
    total_invested = _ZERO
    total_received = _ZERO

    for transaction in transactions:
        quantity = fifo_to_decimal(transaction.quantity, field="quantity", symbol=symbol)
        if quantity <= _ZERO:
            continue
        unit_price = fifo_to_decimal(transaction.unit_price, field="unit_price", symbol=symbol)
        fees = fifo_to_decimal(transaction.fees, field="fees", symbol=symbol)

        if fifo_resolve_kind(transaction, symbol=symbol) is TransactionKind.BUY:
            total_shares_bought += quantity
            total_invested += quantity * unit_price + fees
        else:
            total_shares_sold += quantity
            total_received += quantity * unit_price - fees

    shares_owned = total_shares_bought - total_shares_sold
    open_quantity = fifo_result.open_quantity
    remaining_shares_cost_basis = fifo_result.open_cost_basis
    average_cost = remaining_shares_cost_basis / open_quantity if open_quantity > _ZERO else _ZERO
    realized_profit_loss = fifo_result.realized_gain_loss

    if shares_owned > _ZERO and current_price is not None:
        current_value = shares_owned * current_price
        unrealized_gain_loss = current_value - remaining_shares_cost_basis
    else:
        current_value = _ZERO
        unrealized_gain_loss = _ZERO

    return StockPosition(
        symbol=symbol,
        display_name=_positions_resolve_display_name(symbol, transactions),
        total_shares_bought=total_shares_bought,
        total_shares_sold=total_shares_sold,
        shares_owned=shares_owned,
        average_cost=average_cost,
        total_invested=total_invested,
        total_received=total_received,
        realized_profit_loss=realized_profit_loss,
        remaining_shares_cost_basis=remaining_shares_cost_basis,
        current_value=current_value,
        unrealized_gain_loss=unrealized_gain_loss,
        total_gain_loss=realized_profit_loss + unrealized_gain_loss,
        transaction_count=len(transactions),
        realized_sales=fifo_result.realized_sales,
        open_lots=fifo_result.open_lots,
    )


def _positions_resolve_display_name(symbol: str, transactions: list[LedgerTransaction]) -> str:
    for transaction in fifo_sort_transactions(transactions, symbol=symbol):
        if transaction.display_name and transaction.display_name.strip():
            return transaction.display_name
    return symbol


__all__ = [
    "PriceMap",
    "StockPosition",
    "positions_build_for_symbol",
    "positions_compute",
    "positions_group_by_symbol",
    "positions_lookup_price",
]
