"""Main module entrypoint for local runtime execution.

`api` launches the FastAPI service; `report` computes a portfolio report from a
CSV file and prints it as JSON.
"""

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import uvicorn

from gain_ledger.api.routers.portfolio import (
    api_serialize_analytics,
    api_serialize_portfolio_stats,
    api_serialize_position,
    api_serialize_realized_sale,
)
from gain_ledger.bootstrap import bootstrap_create_application, bootstrap_create_ledger_service
from gain_ledger.config import config_load_settings
from gain_ledger.domain import ComputationError, TransactionImportError, csv_import_transactions
from gain_ledger.ledger import LedgerPort
from gain_ledger.logging_setup import logging_configure

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Run selected runtime command with validated startup configuration.

    Args:
        argv: Optional argument list, defaults to process arguments.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with status 1 when a report cannot be produced.
    """

    argument_parser = argparse.ArgumentParser(description="Stock gain ledger runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "report"),
        help="Runtime command: `api` starts server, `report` prints a FIFO report for a CSV file",
        type=str,
    )
    argument_parser.add_argument("--csv", dest="csv_path", type=Path, help="CSV transaction file for `report`")
    argument_parser.add_argument(
        "--price",
        dest="prices",
        action="append",
        default=[],
        metavar="SYMBOL=PRICE",
        help="Current price for one symbol, repeatable",
    )
    argument_parser.add_argument("--analytics", action="store_true", help="Include supplementary analytics")
    parsed_arguments = argument_parser.parse_args(argv)

    settings = config_load_settings()
    logging_configure(settings.log_level)

    if parsed_arguments.command == "report":
        if parsed_arguments.csv_path is None:
            argument_parser.error("`report` requires --csv")
        try:
            current_prices = main_parse_price_arguments(parsed_arguments.prices)
        except ValueError as error:
            argument_parser.error(str(error))
        exit_code = main_run_report(
            csv_path=parsed_arguments.csv_path,
            current_prices=current_prices,
            ledger_service=bootstrap_create_ledger_service(settings),
            include_analytics=parsed_arguments.analytics,
        )
        if exit_code != 0:
            raise SystemExit(exit_code)
        return

    application = bootstrap_create_application(settings)
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


def main_parse_price_arguments(price_arguments: list[str]) -> dict[str, Decimal] | None:
    """Parse repeated `SYMBOL=PRICE` arguments into a price map.

    Args:
        price_arguments: Raw argument values.

    Returns:
        dict[str, Decimal] | None: Price map, None when no prices were given.

    Raises:
        ValueError: Raised for malformed or negative prices.
    """

    if not price_arguments:
        return None

    current_prices: dict[str, Decimal] = {}
    for price_argument in price_arguments:
        symbol, separator, price_text = price_argument.partition("=")
        if not separator or not symbol.strip():
            raise ValueError(f"invalid --price value={price_argument}, expected SYMBOL=PRICE")
        try:
            price = Decimal(price_text.strip())
        except InvalidOperation as error:
            raise ValueError(f"invalid price for {symbol.strip()}: {price_text}") from error
        if not price.is_finite() or price < Decimal("0"):
            raise ValueError(f"price for {symbol.strip()} must be a non-negative number")
        current_prices[symbol.strip()] = price
    return current_prices


def main_run_report(
    csv_path: Path,
    current_prices: dict[str, Decimal] | None,
    ledger_service: LedgerPort,
    include_analytics: bool = False,
) -> int:
    """Import a CSV file, compute the report and print it as JSON.

    Args:
        csv_path: CSV transaction file.
        current_prices: Optional price map.
        ledger_service: Ledger computation service.
        include_analytics: Whether to append supplementary analytics.

    Returns:
        int: Process exit code, 0 on success.
    """

    try:
        import_result = csv_import_transactions(csv_path.read_text(encoding="utf-8"))
    except (OSError, TransactionImportError) as error:
        logger.error("Cannot import %s: %s", csv_path, error)
        return 1

    for row_error in import_result.errors:
        logger.warning("Skipped %s", row_error)

    transactions = list(import_result.transactions)
    try:
        report = ledger_service.ledger_build_report(transactions, current_prices)
        analytics = ledger_service.ledger_build_analytics(transactions, current_prices) if include_analytics else None
    except ComputationError as error:
        logger.error("Ledger computation failed symbol=%s field=%s: %s", error.symbol, error.field, error)
        return 1

    payload: dict[str, object] = {
        "positions": [api_serialize_position(position) for position in report.positions],
        "stats": api_serialize_portfolio_stats(report.stats),
        "realized_sales": [api_serialize_realized_sale(sale) for sale in report.realized_sales],
        "import_errors": list(import_result.errors),
    }
    if analytics is not None:
        payload["analytics"] = api_serialize_analytics(analytics)

    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    return 0


if __name__ == "__main__":
    main()
