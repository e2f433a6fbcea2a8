"""Ledger service assembling positions, statistics and analytics."""
# pylint: disable=too-few-public-methods

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Sequence

from gain_ledger.domain import ComputationError, LedgerTransaction

from .analytics import (
    analytics_best_worst_performers,
    analytics_diversification,
    analytics_performance_over_time,
    analytics_periodic_returns,
    analytics_risk_metrics,
    analytics_total_fees,
)
from .interfaces import PortfolioAnalyticsReport, PortfolioReport
from .portfolio import PortfolioStats, portfolio_estimate_position_values, portfolio_stats_from_positions
from .positions import (
    PriceMap,
    StockPosition,
    positions_build_for_symbol,
    positions_group_by_symbol,
    positions_lookup_price,
)

logger = logging.getLogger(__name__)

_LEDGER_POLICY_NAME = "fifo"


class PortfolioLedgerService:
    """Compute FIFO positions and portfolio statistics from transaction snapshots.

    The service holds no state between calls; every method works on the list it
    receives and never mutates it.
    """

    def __init__(self, top_performers_count: int = 3):
        """Initialize service options.

        Args:
            top_performers_count: Number of positions in best and worst performer lists.

        Raises:
            ValueError: Raised when top_performers_count is negative.
        """

        if top_performers_count < 0:
            raise ValueError("top_performers_count must not be negative")
        self._top_performers_count = top_performers_count

    def ledger_policy_name(self) -> str:
        """Return the lot-matching policy label."""

        return _LEDGER_POLICY_NAME

    def ledger_build_report(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> PortfolioReport:
        """Compute positions, portfolio statistics and realized sales.

        Args:
            transactions: Transaction snapshot owned by the caller.
            current_prices: Optional sparse `symbol -> current price` map.

        Returns:
            PortfolioReport: Deterministic computation output.

        Raises:
            ComputationError: Raised when the input or one symbol cannot be computed.
        """

        transaction_list = self._ledger_validate_inputs(transactions, current_prices)
        positions = self._ledger_compute_positions(transaction_list, current_prices)
        stats = self._ledger_compute_stats(positions, transaction_list, current_prices)

        realized_sales = tuple(sale for position in positions for sale in position.realized_sales)
        logger.info(
            "Ledger report computed transactions=%d symbols=%d realized_sales=%d priced=%s",
            stats.total_transactions,
            stats.unique_stocks,
            len(realized_sales),
            current_prices is not None,
        )
        return PortfolioReport(positions=tuple(positions), stats=stats, realized_sales=realized_sales)

    def ledger_compute_positions(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> list[StockPosition]:
        """Compute one position per symbol.

        Raises:
            ComputationError: Raised when the input or one symbol cannot be computed.
        """

        transaction_list = self._ledger_validate_inputs(transactions, current_prices)
        return self._ledger_compute_positions(transaction_list, current_prices)

    def ledger_compute_stats(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> PortfolioStats:
        """Compute portfolio statistics.

        Raises:
            ComputationError: Raised when the input or one symbol cannot be computed.
        """

        transaction_list = self._ledger_validate_inputs(transactions, current_prices)
        positions = self._ledger_compute_positions(transaction_list, current_prices)
        return self._ledger_compute_stats(positions, transaction_list, current_prices)

    def ledger_build_analytics(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> PortfolioAnalyticsReport:
        """Compute supplementary analytics over the transaction history.

        Args:
            transactions: Transaction snapshot owned by the caller.
            current_prices: Optional sparse `symbol -> current price` map.

        Returns:
            PortfolioAnalyticsReport: Deterministic analytics output.

        Raises:
            ComputationError: Raised when the input or one symbol cannot be computed.
        """

        transaction_list = self._ledger_validate_inputs(transactions, current_prices)
        positions = self._ledger_compute_positions(transaction_list, current_prices)

        try:
            position_values = (
                None if current_prices is not None else portfolio_estimate_position_values(positions, transaction_list)
            )
            return PortfolioAnalyticsReport(
                total_fees=analytics_total_fees(transaction_list),
                performance=tuple(analytics_performance_over_time(transaction_list)),
                performers=analytics_best_worst_performers(positions, count=self._top_performers_count),
                diversification=analytics_diversification(positions, position_values),
                periodic_returns=analytics_periodic_returns(transaction_list),
                risk_metrics=analytics_risk_metrics(transaction_list),
            )
        except ComputationError:
            raise
        except (ArithmeticError, TypeError, ValueError) as error:
            raise ComputationError(f"analytics computation failed: {error}") from error

    def _ledger_validate_inputs(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None,
    ) -> list[LedgerTransaction]:
        """Check input container types and return a private copy of the list.

        Raises:
            ComputationError: Raised when inputs are not the expected containers.
        """

        if not isinstance(transactions, (list, tuple)):
            raise ComputationError(
                f"transactions must be a list, got {type(transactions).__name__}",
                field="transactions",
            )
        if current_prices is not None and not isinstance(current_prices, Mapping):
            raise ComputationError(
                f"current_prices must be a mapping, got {type(current_prices).__name__}",
                field="current_prices",
            )

        for index, transaction in enumerate(transactions):
            if not isinstance(transaction, LedgerTransaction):
                raise ComputationError(
                    f"transactions[{index}] must be a LedgerTransaction, got {type(transaction).__name__}",
                    field=f"transactions[{index}]",
                )
            if not isinstance(transaction.symbol, str) or not transaction.symbol.strip():
                raise ComputationError(
                    f"transactions[{index}].symbol must be a non-blank string, got {transaction.symbol!r}",
                    field=f"transactions[{index}].symbol",
                )
        return list(transactions)

    def _ledger_compute_positions(
        self,
        transactions: list[LedgerTransaction],
        current_prices: PriceMap | None,
    ) -> list[StockPosition]:
        """Compute positions symbol by symbol, attaching symbol context to failures."""

        grouped_transactions = positions_group_by_symbol(transactions)
        positions: list[StockPosition] = []

        for symbol in sorted(grouped_transactions):
            try:
                positions.append(
                    positions_build_for_symbol(
                        symbol=symbol,
                        transactions=grouped_transactions[symbol],
                        current_price=positions_lookup_price(current_prices, symbol),
                    )
                )
            except ComputationError as error:
                logger.warning("Position computation failed symbol=%s field=%s: %s", symbol, error.field, error)
                if error.symbol is None:
                    raise ComputationError(str(error), symbol=symbol, field=error.field) from error
                raise
            except (ArithmeticError, TypeError, ValueError) as error:
                logger.warning("Position computation failed symbol=%s: %s", symbol, error)
                raise ComputationError(f"position computation failed: {error}", symbol=symbol) from error

        return positions

    def _ledger_compute_stats(
        self,
        positions: list[StockPosition],
        transactions: list[LedgerTransaction],
        current_prices: PriceMap | None,
    ) -> PortfolioStats:
        try:
            return portfolio_stats_from_positions(positions, transactions, current_prices)
        except ComputationError:
            raise
        except (ArithmeticError, TypeError, ValueError) as error:
            raise ComputationError(f"portfolio statistics computation failed: {error}") from error


__all__ = ["PortfolioLedgerService"]
