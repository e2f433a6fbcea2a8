"""Supplementary portfolio analytics derived from transactions and positions.

These metrics are simplified views over transaction history. Traded value is
used as the value proxy because no market data is available.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from gain_ledger.domain import LedgerTransaction, TransactionKind

from .fifo_engine import fifo_resolve_kind, fifo_sort_transactions, fifo_timestamp_key, fifo_to_decimal
from .positions import StockPosition

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PerformancePoint:
    """Cumulative traded value at the end of one calendar date.

    Attributes:
        point_date: Calendar date.
        value: Cumulative value of all buys and sells through the date.
        gain_loss: Cumulative value minus cumulative buy value.
    """

    point_date: date
    value: Decimal
    gain_loss: Decimal


@dataclass(frozen=True)
class PerformersResult:
    """Best and worst positions by total gain or loss."""

    best: tuple[StockPosition, ...]
    worst: tuple[StockPosition, ...]


@dataclass(frozen=True)
class DiversificationMetrics:
    """Concentration of portfolio value.

    Attributes:
        total_stocks: Number of positions considered.
        largest_position: Position with the highest current value, None when empty.
        concentration_risk: Share of total current value in the largest position, in percent.
    """

    total_stocks: int
    largest_position: StockPosition | None
    concentration_risk: Decimal


@dataclass(frozen=True)
class PeriodicReturns:
    """Gain or loss at the end of each month and year, keyed `YYYY-MM` and `YYYY`."""

    monthly: tuple[tuple[str, Decimal], ...]
    yearly: tuple[tuple[str, Decimal], ...]


@dataclass(frozen=True)
class RiskMetrics:
    """Simplified risk figures over the performance series."""

    volatility: Decimal
    max_drawdown: Decimal
    sharpe_ratio: Decimal


def analytics_total_fees(transactions: Iterable[LedgerTransaction]) -> Decimal:
    """Return the sum of fees paid across all transactions."""

    return sum(
        (fifo_to_decimal(transaction.fees, field="fees", symbol=transaction.symbol) for transaction in transactions),
        _ZERO,
    )


def analytics_performance_over_time(transactions: Iterable[LedgerTransaction]) -> list[PerformancePoint]:
    """Build the cumulative traded-value series, one point per calendar date.

    Args:
        transactions: Transactions in any order.

    Returns:
        list[PerformancePoint]: Points ordered by date.

    Raises:
        ComputationError: Raised when a transaction carries unusable values.
    """

    performance: list[PerformancePoint] = []
    cumulative_value = _ZERO
    cumulative_investment = _ZERO
    current_date: date | None = None

    for transaction in fifo_sort_transactions(transactions):
        transaction_date = fifo_timestamp_key(transaction.timestamp).date()
        if current_date is not None and transaction_date != current_date:
            performance.append(
                PerformancePoint(
                    point_date=current_date,
                    value=cumulative_value,
                    gain_loss=cumulative_value - cumulative_investment,
                )
            )
        current_date = transaction_date

        quantity = fifo_to_decimal(transaction.quantity, field="quantity", symbol=transaction.symbol)
        unit_price = fifo_to_decimal(transaction.unit_price, field="unit_price", symbol=transaction.symbol)
        traded_value = quantity * unit_price
        if fifo_resolve_kind(transaction, symbol=transaction.symbol) is TransactionKind.BUY:
            cumulative_investment += traded_value
        cumulative_value += traded_value

    if current_date is not None:
        performance.append(
            PerformancePoint(
                point_date=current_date,
                value=cumulative_value,
                gain_loss=cumulative_value - cumulative_investment,
            )
        )
    return performance


def analytics_best_worst_performers(positions: Sequence[StockPosition], count: int = 3) -> PerformersResult:
    """Return the top and bottom positions by total gain or loss.

    Args:
        positions: Positions to rank.
        count: Number of positions in each list.

    Returns:
        PerformersResult: Best positions descending, worst positions ascending.

    Raises:
        ValueError: Raised when count is negative.
    """

    if count < 0:
        raise ValueError("count must not be negative")
    if count == 0:
        return PerformersResult(best=(), worst=())

    ranked_positions = sorted(positions, key=lambda position: position.total_gain_loss, reverse=True)
    return PerformersResult(
        best=tuple(ranked_positions[:count]),
        worst=tuple(reversed(ranked_positions[-count:])),
    )


def analytics_diversification(
    positions: Sequence[StockPosition],
    position_values: Mapping[str, Decimal] | None = None,
) -> DiversificationMetrics:
    """Measure how much of the portfolio value sits in the largest position.

    Args:
        positions: Positions to compare.
        position_values: Optional `symbol -> value` estimates used instead of each
            position's priced current value, for ledgers without current prices.

    Returns:
        DiversificationMetrics: Largest position and its share of total value.
    """

    if not positions:
        return DiversificationMetrics(total_stocks=0, largest_position=None, concentration_risk=_ZERO)

    def position_value(position: StockPosition) -> Decimal:
        if position_values is None:
            return position.current_value
        return position_values.get(position.symbol, _ZERO)

    largest_position = positions[0]
    for position in positions[1:]:
        if position_value(position) > position_value(largest_position):
            largest_position = position

    total_value = sum((position_value(position) for position in positions), _ZERO)
    concentration_risk = position_value(largest_position) / total_value * _HUNDRED if total_value > _ZERO else _ZERO

    return DiversificationMetrics(
        total_stocks=len(positions),
        largest_position=largest_position,
        concentration_risk=concentration_risk,
    )


def analytics_periodic_returns(transactions: Iterable[LedgerTransaction]) -> PeriodicReturns:
    """Return the last gain or loss value of each month and year."""

    monthly: dict[str, Decimal] = {}
    yearly: dict[str, Decimal] = {}
    for point in analytics_performance_over_time(transactions):
        monthly[f"{point.point_date.year:04d}-{point.point_date.month:02d}"] = point.gain_loss
        yearly[f"{point.point_date.year:04d}"] = point.gain_loss
    return PeriodicReturns(monthly=tuple(monthly.items()), yearly=tuple(yearly.items()))


def analytics_risk_metrics(transactions: Iterable[LedgerTransaction]) -> RiskMetrics:
    """Compute volatility, maximum drawdown and a simplified Sharpe ratio.

    Step returns compare consecutive points of the performance series. The
    Sharpe ratio assumes a zero risk-free rate and is zero unless both the mean
    return and the volatility are positive.

    Args:
        transactions: Transactions in any order.

    Returns:
        RiskMetrics: All zero when fewer than two performance points exist.

    Raises:
        ComputationError: Raised when a transaction carries unusable values.
    """

    performance = analytics_performance_over_time(transactions)
    if len(performance) < 2:
        return RiskMetrics(volatility=_ZERO, max_drawdown=_ZERO, sharpe_ratio=_ZERO)

    returns = [
        (point.value - previous.value) / previous.value if previous.value > _ZERO else _ZERO
        for previous, point in zip(performance, performance[1:])
    ]
    mean_return = sum(returns, _ZERO) / len(returns)
    variance = sum(((value - mean_return) ** 2 for value in returns), _ZERO) / len(returns)
    volatility = variance.sqrt()

    max_drawdown = _ZERO
    peak = performance[0].value
    for point in performance:
        if point.value > peak:
            peak = point.value
        drawdown = (peak - point.value) / peak if peak > _ZERO else _ZERO
        max_drawdown = max(max_drawdown, drawdown)

    sharpe_ratio = mean_return / volatility if mean_return > _ZERO and volatility > _ZERO else _ZERO
    return RiskMetrics(volatility=volatility, max_drawdown=max_drawdown, sharpe_ratio=sharpe_ratio)


__all__ = [
    "DiversificationMetrics",
    "PerformancePoint",
    "PerformersResult",
    "PeriodicReturns",
    "RiskMetrics",
    "analytics_best_worst_performers",
    "analytics_diversification",
    "analytics_performance_over_time",
    "analytics_periodic_returns",
    "analytics_risk_metrics",
    "analytics_total_fees",
]
