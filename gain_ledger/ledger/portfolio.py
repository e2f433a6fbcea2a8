"""Portfolio-wide statistics over per-symbol positions.

Valuation policy: when a current-price map is supplied, the portfolio value is
the sum of per-position values and symbols missing from the map count as zero.
Without a price map, each held symbol is valued at its most recent buy price as
a best-effort estimate. Unrealized gain or loss always comes from the
per-position path, so it stays zero when no prices are supplied.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from gain_ledger.domain import LedgerTransaction, TransactionKind

from .fifo_engine import fifo_resolve_kind, fifo_sort_transactions, fifo_to_decimal
from .positions import PriceMap, StockPosition, positions_compute, positions_group_by_symbol

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PortfolioStats:
    """Portfolio-wide aggregate statistics.

    Attributes:
        total_invested: Sum of buy cost including fees.
        total_received: Sum of sell proceeds net of fees.
        realized_profit_loss: Sum of realized gain or loss.
        current_value: Estimated value of remaining holdings.
        unrealized_gain_loss: Unrealized gain or loss of positions still held.
        total_gain_loss: Realized plus unrealized gain or loss.
        gain_loss_percentage: Total gain or loss over total invested, in percent.
        unique_stocks: Number of distinct symbols.
        stocks_with_holdings: Number of symbols with shares still owned.
        total_transactions: Number of input transactions.
    """

    total_invested: Decimal
    total_received: Decimal
    realized_profit_loss: Decimal
    current_value: Decimal
    unrealized_gain_loss: Decimal
    total_gain_loss: Decimal
    gain_loss_percentage: Decimal
    unique_stocks: int
    stocks_with_holdings: int
    total_transactions: int


def portfolio_compute_stats(
    transactions: Iterable[LedgerTransaction],
    current_prices: PriceMap | None = None,
) -> PortfolioStats:
    """Compute portfolio statistics from raw transactions.

    Args:
        transactions: All transactions in any order.
        current_prices: Optional sparse `symbol -> current price` map.

    Returns:
        PortfolioStats: Aggregate statistics, all zero for an empty input.

    Raises:
        ComputationError: Raised when a symbol's transactions or price are unusable.
    """

    transaction_list = list(transactions)
    positions = positions_compute(transaction_list, current_prices)
    return portfolio_stats_from_positions(positions, transaction_list, current_prices)


def portfolio_stats_from_positions(
    positions: Sequence[StockPosition],
    transactions: Sequence[LedgerTransaction],
    current_prices: PriceMap | None = None,
) -> PortfolioStats:
    """Sum already computed positions into portfolio statistics.

    Args:
        positions: Positions computed from `transactions` with the same price map.
        transactions: The transactions the positions were computed from.
        current_prices: The price map used for the positions, or None.

    Returns:
        PortfolioStats: Aggregate statistics.

    Raises:
        ComputationError: Raised when a fallback price is unusable.
    """

    held_positions = [position for position in positions if position.has_holdings]

    total_invested = sum((position.total_invested for position in positions), _ZERO)
    total_received = sum((position.total_received for position in positions), _ZERO)
    realized_profit_loss = sum((position.realized_profit_loss for position in positions), _ZERO)
    unrealized_gain_loss = sum((position.unrealized_gain_loss for position in held_positions), _ZERO)

    if current_prices is None:
        current_value = portfolio_estimate_current_value(held_positions, transactions)
    else:
        current_value = sum((position.current_value for position in held_positions), _ZERO)

    total_gain_loss = realized_profit_loss + unrealized_gain_loss
    gain_loss_percentage = total_gain_loss / total_invested * _HUNDRED if total_invested > _ZERO else _ZERO

    return PortfolioStats(
        total_invested=total_invested,
        total_received=total_received,
        realized_profit_loss=realized_profit_loss,
        current_value=current_value,
        unrealized_gain_loss=unrealized_gain_loss,
        total_gain_loss=total_gain_loss,
        gain_loss_percentage=gain_loss_percentage,
        unique_stocks=len(positions),
        stocks_with_holdings=len(held_positions),
        total_transactions=len(transactions),
    )


def portfolio_estimate_current_value(
    positions: Sequence[StockPosition],
    transactions: Sequence[LedgerTransaction],
) -> Decimal:
    """Estimate holdings value from each symbol's most recent buy price.

    Raises:
        ComputationError: Raised when a transaction price is unusable.
    """

    return sum(portfolio_estimate_position_values(positions, transactions).values(), _ZERO)


def portfolio_estimate_position_values(
    positions: Sequence[StockPosition],
    transactions: Sequence[LedgerTransaction],
) -> dict[str, Decimal]:
    """Estimate each held position's value from its most recent buy price.

    Symbols without any buy fall back to their most recent transaction price.

    Args:
        positions: Positions to value, only those with shares owned count.
        transactions: Transactions the positions were computed from.

    Returns:
        dict[str, Decimal]: Estimated value keyed by symbol, zero for closed positions.

    Raises:
        ComputationError: Raised when a transaction price is unusable.
    """

    grouped_transactions = positions_group_by_symbol(transactions)
    position_values: dict[str, Decimal] = {}

    for position in positions:
        position_values[position.symbol] = _ZERO
        if not position.has_holdings:
            continue
        ordered_transactions = fifo_sort_transactions(grouped_transactions.get(position.symbol, []), symbol=position.symbol)
        if not ordered_transactions:
            continue

        buy_transactions = [
            transaction
            for transaction in ordered_transactions
            if fifo_resolve_kind(transaction, symbol=position.symbol) is TransactionKind.BUY
        ]
        reference_transaction = buy_transactions[-1] if buy_transactions else ordered_transactions[-1]
        reference_price = fifo_to_decimal(reference_transaction.unit_price, field="unit_price", symbol=position.symbol)
        if reference_price > _ZERO:
            position_values[position.symbol] = position.shares_owned * reference_price

    return position_values


__all__ = [
    "PortfolioStats",
    "portfolio_compute_stats",
    "portfolio_estimate_current_value",
    "portfolio_estimate_position_values",
    "portfolio_stats_from_positions",
]
