"""Typed interfaces for ledger-layer computations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, Sequence

from gain_ledger.domain import LedgerTransaction

from .analytics import DiversificationMetrics, PerformancePoint, PerformersResult, PeriodicReturns, RiskMetrics
from .fifo_engine import RealizedSaleResult
from .portfolio import PortfolioStats
from .positions import PriceMap, StockPosition


@dataclass(frozen=True)
class PortfolioReport:
    """Ledger computation output contract.

    Attributes:
        positions: One position per symbol, ordered by symbol.
        stats: Portfolio-wide statistics.
        realized_sales: Realized-sale records across all symbols.
    """

    positions: tuple[StockPosition, ...]
    stats: PortfolioStats
    realized_sales: tuple[RealizedSaleResult, ...]


@dataclass(frozen=True)
class PortfolioAnalyticsReport:
    """Supplementary analytics output contract.

    Attributes:
        total_fees: Fees paid across all transactions.
        performance: Cumulative traded-value series.
        performers: Best and worst positions.
        diversification: Largest-position concentration.
        periodic_returns: Month-end and year-end gain or loss.
        risk_metrics: Simplified risk figures.
    """

    total_fees: Decimal
    performance: tuple[PerformancePoint, ...]
    performers: PerformersResult
    diversification: DiversificationMetrics
    periodic_returns: PeriodicReturns
    risk_metrics: RiskMetrics


class LedgerPort(Protocol):
    """Port definition for position and PnL computations."""

    def ledger_policy_name(self) -> str:
        """Return policy label for the active ledger computation strategy.

        Returns:
            str: Ledger policy identifier.
        """

    def ledger_build_report(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> PortfolioReport:
        """Compute positions and portfolio statistics.

        Args:
            transactions: Transaction snapshot owned by the caller.
            current_prices: Optional sparse `symbol -> current price` map.

        Returns:
            PortfolioReport: Deterministic computation output.

        Raises:
            ComputationError: Raised when the input cannot be computed.
        """

    def ledger_compute_positions(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> list[StockPosition]:
        """Compute one position per symbol.

        Raises:
            ComputationError: Raised when the input cannot be computed.
        """

    def ledger_compute_stats(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> PortfolioStats:
        """Compute portfolio statistics.

        Raises:
            ComputationError: Raised when the input cannot be computed.
        """

    def ledger_build_analytics(
        self,
        transactions: Sequence[LedgerTransaction],
        current_prices: PriceMap | None = None,
    ) -> PortfolioAnalyticsReport:
        """Compute supplementary analytics.

        Args:
            transactions: Transaction snapshot owned by the caller.
            current_prices: Optional sparse `symbol -> current price` map.

        Returns:
            PortfolioAnalyticsReport: Deterministic analytics output.

        Raises:
            ComputationError: Raised when the input cannot be computed.
        """
