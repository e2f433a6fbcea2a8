"""Tests for the ledger service input checks and report assembly."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from gain_ledger.domain import ComputationError, LedgerTransaction, TransactionKind
from gain_ledger.ledger import PortfolioLedgerService
from gain_ledger.ledger.fifo_engine import RESOLUTION_DEFERRED_FIFO, RESOLUTION_FIFO


def _transaction(
    transaction_id: str,
    symbol: object,
    kind: object,
    quantity: str,
    unit_price: str,
    day: int,
) -> LedgerTransaction:
    return LedgerTransaction(
        transaction_id=transaction_id,
        symbol=symbol,
        display_name=symbol,
        kind=kind,  # type: ignore[arg-type]
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        timestamp=date(2024, 3, day),
    )


def test_ledger_service_rejects_invalid_input_containers() -> None:
    """Raise computation errors for malformed top-level inputs.

    Returns:
        None: Assertions validate input checks.

    Raises:
        AssertionError: Raised when malformed inputs are accepted.
    """

    service = PortfolioLedgerService()
    valid_transaction = _transaction("b1", "AAPL", TransactionKind.BUY, "1", "10", 1)

    with pytest.raises(ComputationError) as container_error:
        service.ledger_build_report("not a list")  # type: ignore[arg-type]
    with pytest.raises(ComputationError) as element_error:
        service.ledger_build_report([valid_transaction, {"symbol": "AAPL"}])  # type: ignore[list-item]
    with pytest.raises(ComputationError) as prices_error:
        service.ledger_build_report([valid_transaction], ["AAPL", 10])  # type: ignore[arg-type]

    assert container_error.value.field == "transactions"
    assert element_error.value.field == "transactions[1]"
    assert prices_error.value.field == "current_prices"


def test_ledger_service_attaches_symbol_to_unsupported_kind() -> None:
    """Report the failing symbol when a transaction kind is unknown.

    Returns:
        None: Assertions validate error context.

    Raises:
        AssertionError: Raised when symbol context is missing.
    """

    service = PortfolioLedgerService()

    with pytest.raises(ComputationError) as error_info:
        service.ledger_build_report(
            [
                _transaction("b1", "AAPL", TransactionKind.BUY, "1", "10", 1),
                _transaction("x1", "MSFT", "hold", "1", "10", 2),
            ]
        )

    assert error_info.value.symbol == "MSFT"
    assert error_info.value.field == "kind"


def test_ledger_service_attaches_symbol_to_negative_price() -> None:
    """Report the failing symbol when its current price is negative.

    Returns:
        None: Assertions validate error context.

    Raises:
        AssertionError: Raised when symbol context is missing.
    """

    service = PortfolioLedgerService()

    with pytest.raises(ComputationError) as error_info:
        service.ledger_compute_stats(
            [_transaction("b1", "AAPL", TransactionKind.BUY, "1", "10", 1)],
            {"AAPL": Decimal("-5")},
        )

    assert error_info.value.symbol == "AAPL"
    assert error_info.value.to_payload()["code"] == "COMPUTATION_ERROR"


def test_ledger_service_report_collects_realized_sales_across_symbols() -> None:
    """Assemble positions, stats and realized sales in one report.

    Returns:
        None: Assertions validate report contents.

    Raises:
        AssertionError: Raised when report parts disagree.
    """

    service = PortfolioLedgerService()
    transactions = [
        _transaction("s1", "MSFT", TransactionKind.SELL, "1", "120", 1),
        _transaction("b1", "MSFT", TransactionKind.BUY, "1", "100", 2),
        _transaction("b2", "AAPL", TransactionKind.BUY, "2", "10", 1),
        _transaction("s2", "AAPL", TransactionKind.SELL, "1", "15", 3),
    ]

    report = service.ledger_build_report(transactions)

    assert service.ledger_policy_name() == "fifo"
    assert [position.symbol for position in report.positions] == ["AAPL", "MSFT"]
    assert {sale.transaction_id: sale.resolution for sale in report.realized_sales} == {
        "s2": RESOLUTION_FIFO,
        "s1": RESOLUTION_DEFERRED_FIFO,
    }
    assert report.stats.realized_profit_loss == Decimal("25")
    assert report.stats.realized_profit_loss == sum(
        (sale.realized_gain_loss for sale in report.realized_sales),
        Decimal("0"),
    )


def test_ledger_service_builds_analytics_with_configured_performer_count() -> None:
    """Limit performer lists to the configured count.

    Returns:
        None: Assertions validate analytics assembly.

    Raises:
        AssertionError: Raised when analytics output is wrong.
    """

    service = PortfolioLedgerService(top_performers_count=1)
    transactions = [
        _transaction("b1", "AAPL", TransactionKind.BUY, "2", "10", 1),
        _transaction("b2", "MSFT", TransactionKind.BUY, "1", "100", 1),
        _transaction("s1", "MSFT", TransactionKind.SELL, "1", "90", 2),
    ]

    analytics = service.ledger_build_analytics(transactions, {"AAPL": Decimal("12")})

    assert analytics.total_fees == Decimal("0")
    assert [position.symbol for position in analytics.performers.best] == ["AAPL"]
    assert [position.symbol for position in analytics.performers.worst] == ["MSFT"]
    assert analytics.diversification.largest_position is not None
    assert analytics.diversification.largest_position.symbol == "AAPL"
    assert len(analytics.performance) == 2


def test_ledger_service_rejects_negative_performer_count() -> None:
    """Reject negative performer counts at construction.

    Returns:
        None: Assertions validate constructor checks.

    Raises:
        AssertionError: Raised when a negative count is accepted.
    """

    with pytest.raises(ValueError):
        PortfolioLedgerService(top_performers_count=-1)


@pytest.mark.parametrize("bad_symbol", [None, 42, "   ", ["AAPL"]])
def test_ledger_service_rejects_transactions_without_string_symbol(bad_symbol: object) -> None:
    """Raise a computation error naming the transaction with a malformed symbol.

    Args:
        bad_symbol: Symbol value that is not a non-blank string.

    Returns:
        None: Assertions validate symbol checks.

    Raises:
        AssertionError: Raised when a malformed symbol escapes as another error type.
    """

    service = PortfolioLedgerService()
    transactions = [
        _transaction("b1", "AAPL", TransactionKind.BUY, "1", "10", 1),
        _transaction("b2", bad_symbol, TransactionKind.BUY, "1", "10", 2),  # type: ignore[arg-type]
    ]

    with pytest.raises(ComputationError) as error_info:
        service.ledger_build_report(transactions)

    assert error_info.value.field == "transactions[1].symbol"


def test_ledger_service_analytics_estimate_concentration_without_prices() -> None:
    """Value positions at their latest buy price for concentration when no prices exist.

    Returns:
        None: Assertions validate unpriced diversification.

    Raises:
        AssertionError: Raised when concentration ignores holdings.
    """

    service = PortfolioLedgerService()
    transactions = [
        _transaction("a1", "AAA", TransactionKind.BUY, "1", "10", 1),
        _transaction("z1", "ZZZ", TransactionKind.BUY, "1", "10", 1),
        _transaction("z2", "ZZZ", TransactionKind.BUY, "2", "15", 2),
    ]

    analytics = service.ledger_build_analytics(transactions)

    assert analytics.diversification.largest_position is not None
    assert analytics.diversification.largest_position.symbol == "ZZZ"
    assert analytics.diversification.concentration_risk == Decimal("45") / Decimal("55") * Decimal("100")
