"""Ledger layer package for FIFO matching, positions and portfolio statistics."""

from .analytics import (
	DiversificationMetrics,
	PerformancePoint,
	PerformersResult,
	PeriodicReturns,
	RiskMetrics,
	analytics_best_worst_performers,
	analytics_diversification,
	analytics_performance_over_time,
	analytics_periodic_returns,
	analytics_risk_metrics,
	analytics_total_fees,
)
from .fifo_engine import (
	FifoMatchResult,
	FifoOpenLotResult,
	RealizedSaleResult,
	fifo_match_symbol,
	fifo_sort_transactions,
)
from .interfaces import LedgerPort, PortfolioAnalyticsReport, PortfolioReport
from .portfolio import PortfolioStats, portfolio_compute_stats, portfolio_stats_from_positions
from .positions import StockPosition, positions_compute
from .service import PortfolioLedgerService

__all__ = [
	"DiversificationMetrics",
	"FifoMatchResult",
	"FifoOpenLotResult",
	"LedgerPort",
	"PerformancePoint",
	"PerformersResult",
	"PeriodicReturns",
	"PortfolioAnalyticsReport",
	"PortfolioLedgerService",
	"PortfolioReport",
	"PortfolioStats",
	"RealizedSaleResult",
	"RiskMetrics",
	"StockPosition",
	"analytics_best_worst_performers",
	"analytics_diversification",
	"analytics_performance_over_time",
	"analytics_periodic_returns",
	"analytics_risk_metrics",
	"analytics_total_fees",
	"fifo_match_symbol",
	"fifo_sort_transactions",
	"portfolio_compute_stats",
	"portfolio_stats_from_positions",
	"positions_compute",
]
