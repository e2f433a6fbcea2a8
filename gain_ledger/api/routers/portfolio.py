"""Portfolio API router composition for ledger computations and CSV import."""
# pylint: disable=duplicate-code

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from gain_ledger.config import AppSettings
from gain_ledger.domain import ComputationError, LedgerTransaction, TransactionImportError, csv_import_transactions
from gain_ledger.ledger import (
    FifoOpenLotResult,
    LedgerPort,
    PortfolioAnalyticsReport,
    PortfolioStats,
    RealizedSaleResult,
    StockPosition,
)

from ..schemas import CsvImportRequest, PortfolioRequest

logger = logging.getLogger(__name__)


def api_create_portfolio_router(settings: AppSettings, ledger_service: LedgerPort) -> APIRouter:
    """Create portfolio router exposing ledger computation endpoints.

    Args:
        settings: Runtime settings used for request limits.
        ledger_service: Ledger computation service.

    Returns:
        APIRouter: Router exposing `/portfolio` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if ledger_service is None:
        raise ValueError("ledger_service must not be None")

    router = APIRouter(prefix="/portfolio", tags=["portfolio"])

    def _request_too_large(request: PortfolioRequest) -> JSONResponse | None:
        if len(request.transactions) <= settings.api_max_transactions:
            return None
        payload = {
            "status": "error",
            "code": "TOO_MANY_TRANSACTIONS",
            "message": f"request carries {len(request.transactions)} transactions, "
            f"limit is {settings.api_max_transactions}",
        }
        return JSONResponse(content=payload, status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

    @router.post("/report")
    def api_portfolio_report(request: PortfolioRequest) -> JSONResponse:
        """Compute positions, portfolio statistics and realized sales.

        Args:
            request: Transaction snapshot and optional prices.

        Returns:
            JSONResponse: Report payload or error envelope.
        """

        rejection = _request_too_large(request)
        if rejection is not None:
            return rejection
        try:
            report = ledger_service.ledger_build_report(request.to_transactions(), request.current_prices)
        except ComputationError as error:
            return api_computation_error_response(error)

        payload = {
            "policy": ledger_service.ledger_policy_name(),
            "positions": [api_serialize_position(position) for position in report.positions],
            "stats": api_serialize_portfolio_stats(report.stats),
            "realized_sales": [api_serialize_realized_sale(sale) for sale in report.realized_sales],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/positions")
    def api_portfolio_positions(request: PortfolioRequest) -> JSONResponse:
        """Compute one position per symbol.

        Args:
            request: Transaction snapshot and optional prices.

        Returns:
            JSONResponse: Position list envelope or error envelope.
        """

        rejection = _request_too_large(request)
        if rejection is not None:
            return rejection
        try:
            positions = ledger_service.ledger_compute_positions(request.to_transactions(), request.current_prices)
        except ComputationError as error:
            return api_computation_error_response(error)

        payload = {
            "items": [api_serialize_position(position) for position in positions],
            "returned": len(positions),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/stats")
    def api_portfolio_stats(request: PortfolioRequest) -> JSONResponse:
        """Compute portfolio statistics.

        Args:
            request: Transaction snapshot and optional prices.

        Returns:
            JSONResponse: Statistics payload or error envelope.
        """

        rejection = _request_too_large(request)
        if rejection is not None:
            return rejection
        try:
            stats = ledger_service.ledger_compute_stats(request.to_transactions(), request.current_prices)
        except ComputationError as error:
            return api_computation_error_response(error)
        return JSONResponse(content=api_serialize_portfolio_stats(stats), status_code=status.HTTP_200_OK)

    @router.post("/analytics")
    def api_portfolio_analytics(request: PortfolioRequest) -> JSONResponse:
        """Compute supplementary analytics.

        Args:
            request: Transaction snapshot and optional prices.

        Returns:
            JSONResponse: Analytics payload or error envelope.
        """

        rejection = _request_too_large(request)
        if rejection is not None:
            return rejection
        try:
            analytics = ledger_service.ledger_build_analytics(request.to_transactions(), request.current_prices)
        except ComputationError as error:
            return api_computation_error_response(error)
        return JSONResponse(content=api_serialize_analytics(analytics), status_code=status.HTTP_200_OK)

    @router.post("/import/csv")
    def api_portfolio_import_csv(request: CsvImportRequest) -> JSONResponse:
        """Parse a CSV document into transactions without computing anything.

        Args:
            request: CSV document payload.

        Returns:
            JSONResponse: Parsed transactions with row errors, or error envelope.
        """

        try:
            import_result = csv_import_transactions(request.content)
        except TransactionImportError as error:
            logger.warning("CSV import rejected: %s", error)
            return JSONResponse(content=error.to_payload(), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)

        payload = {
            "transactions": [api_serialize_transaction(transaction) for transaction in import_result.transactions],
            "errors": list(import_result.errors),
            "imported": len(import_result.transactions),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router


def api_computation_error_response(error: ComputationError) -> JSONResponse:
    """Map a computation error to a 422 error envelope.

    Args:
        error: Computation error raised by the ledger service.

    Returns:
        JSONResponse: Error envelope with symbol and field context.
    """

    logger.warning("Ledger computation rejected symbol=%s field=%s: %s", error.symbol, error.field, error)
    return JSONResponse(content=error.to_payload(), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


def api_serialize_decimal(value: Decimal) -> str:
    """Serialize a decimal without exponent notation."""

    return format(value.normalize(), "f")


def api_serialize_timestamp(value: date | datetime) -> str:
    """Serialize a date or datetime as ISO-8601 text."""

    return value.isoformat()


def api_serialize_transaction(transaction: LedgerTransaction) -> dict[str, object]:
    """Serialize one ledger transaction to JSON payload."""

    return {
        "transaction_id": transaction.transaction_id,
        "symbol": transaction.symbol,
        "display_name": transaction.display_name,
        "kind": transaction.kind.value,
        "quantity": api_serialize_decimal(transaction.quantity),
        "unit_price": api_serialize_decimal(transaction.unit_price),
        "timestamp": api_serialize_timestamp(transaction.timestamp),
        "fees": api_serialize_decimal(transaction.fees),
        "notes": transaction.notes,
    }


def api_serialize_open_lot(open_lot: FifoOpenLotResult) -> dict[str, object]:
    """Serialize one open lot to JSON payload."""

    return {
        "transaction_id": open_lot.transaction_id,
        "opened_at": api_serialize_timestamp(open_lot.opened_at),
        "original_quantity": api_serialize_decimal(open_lot.original_quantity),
        "remaining_quantity": api_serialize_decimal(open_lot.remaining_quantity),
        "unit_price": api_serialize_decimal(open_lot.unit_price),
        "total_fees": api_serialize_decimal(open_lot.total_fees),
        "remaining_cost_basis": api_serialize_decimal(open_lot.remaining_cost_basis),
    }


def api_serialize_realized_sale(sale: RealizedSaleResult) -> dict[str, object]:
    """Serialize one realized-sale record to JSON payload."""

    return {
        "symbol": sale.symbol,
        "transaction_id": sale.transaction_id,
        "timestamp": api_serialize_timestamp(sale.timestamp),
        "quantity": api_serialize_decimal(sale.quantity),
        "proceeds": api_serialize_decimal(sale.proceeds),
        "cost_basis": api_serialize_decimal(sale.cost_basis),
        "realized_gain_loss": api_serialize_decimal(sale.realized_gain_loss),
        "resolution": sale.resolution,
    }


def api_serialize_position(position: StockPosition) -> dict[str, object]:
    """Serialize one position to JSON payload."""

    return {
        "symbol": position.symbol,
        "display_name": position.display_name,
        "total_shares_bought": api_serialize_decimal(position.total_shares_bought),
        "total_shares_sold": api_serialize_decimal(position.total_shares_sold),
        "shares_owned": api_serialize_decimal(position.shares_owned),
        "average_cost": api_serialize_decimal(position.average_cost),
        "total_invested": api_serialize_decimal(position.total_invested),
        "total_received": api_serialize_decimal(position.total_received),
        "realized_profit_loss": api_serialize_decimal(position.realized_profit_loss),
        "remaining_shares_cost_basis": api_serialize_decimal(position.remaining_shares_cost_basis),
        "current_value": api_serialize_decimal(position.current_value),
        "unrealized_gain_loss": api_serialize_decimal(position.unrealized_gain_loss),
        "total_gain_loss": api_serialize_decimal(position.total_gain_loss),
        "transaction_count": position.transaction_count,
        "open_lots": [api_serialize_open_lot(open_lot) for open_lot in position.open_lots],
    }


def api_serialize_portfolio_stats(stats: PortfolioStats) -> dict[str, object]:
    """Serialize portfolio statistics to JSON payload."""

    return {
        "total_invested": api_serialize_decimal(stats.total_invested),
        "total_received": api_serialize_decimal(stats.total_received),
        "realized_profit_loss": api_serialize_decimal(stats.realized_profit_loss),
        "current_value": api_serialize_decimal(stats.current_value),
        "unrealized_gain_loss": api_serialize_decimal(stats.unrealized_gain_loss),
        "total_gain_loss": api_serialize_decimal(stats.total_gain_loss),
        "gain_loss_percentage": api_serialize_decimal(stats.gain_loss_percentage),
        "unique_stocks": stats.unique_stocks,
        "stocks_with_holdings": stats.stocks_with_holdings,
        "total_transactions": stats.total_transactions,
    }


def api_serialize_analytics(analytics: PortfolioAnalyticsReport) -> dict[str, object]:
    """Serialize supplementary analytics to JSON payload."""

    largest_position = analytics.diversification.largest_position
    return {
        "total_fees": api_serialize_decimal(analytics.total_fees),
        "performance": [
            {
                "date": point.point_date.isoformat(),
                "value": api_serialize_decimal(point.value),
                "gain_loss": api_serialize_decimal(point.gain_loss),
            }
            for point in analytics.performance
        ],
        "best_performers": [position.symbol for position in analytics.performers.best],
        "worst_performers": [position.symbol for position in analytics.performers.worst],
        "diversification": {
            "total_stocks": analytics.diversification.total_stocks,
            "largest_position": None if largest_position is None else largest_position.symbol,
            "concentration_risk": api_serialize_decimal(analytics.diversification.concentration_risk),
        },
        "periodic_returns": {
            "monthly": [
                {"month": month, "return": api_serialize_decimal(value)}
                for month, value in analytics.periodic_returns.monthly
            ],
            "yearly": [
                {"year": year, "return": api_serialize_decimal(value)}
                for year, value in analytics.periodic_returns.yearly
            ],
        },
        "risk_metrics": {
            "volatility": api_serialize_decimal(analytics.risk_metrics.volatility),
            "max_drawdown": api_serialize_decimal(analytics.risk_metrics.max_drawdown),
            "sharpe_ratio": api_serialize_decimal(analytics.risk_metrics.sharpe_ratio),
        },
    }


__all__ = [
    "api_computation_error_response",
    "api_create_portfolio_router",
    "api_serialize_analytics",
    "api_serialize_decimal",
    "api_serialize_portfolio_stats",
    "api_serialize_position",
    "api_serialize_realized_sale",
    "api_serialize_transaction",
]
