"""Regression tests for FIFO lot-queue matching."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from gain_ledger.domain import ComputationError, LedgerTransaction, TransactionKind
from gain_ledger.ledger.fifo_engine import (
    RESOLUTION_AVERAGE_COST_FALLBACK,
    RESOLUTION_DEFERRED_FIFO,
    RESOLUTION_FIFO,
    RESOLUTION_UNPRICED,
    fifo_match_symbol,
    fifo_sort_transactions,
    fifo_timestamp_key,
)


def _transaction(
    transaction_id: str,
    kind: TransactionKind,
    quantity: str,
    unit_price: str,
    timestamp: date | datetime,
    fees: str = "0",
    symbol: str = "AAPL",
) -> LedgerTransaction:
    return LedgerTransaction(
        transaction_id=transaction_id,
        symbol=symbol,
        display_name="Apple Inc",
        kind=kind,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        timestamp=timestamp,
        fees=Decimal(fees),
    )


def test_ledger_fifo_sell_consumes_oldest_lot_first() -> None:
    """Match a sell against the earliest buy and leave later lots untouched.

    Returns:
        None: Assertions validate FIFO lot ordering.

    Raises:
        AssertionError: Raised when a later lot is consumed first.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1)),
            _transaction("b2", TransactionKind.BUY, "10", "20", date(2024, 1, 2)),
            _transaction("s1", TransactionKind.SELL, "10", "15", date(2024, 1, 3)),
        ],
    )

    assert result.realized_gain_loss == Decimal("50")
    assert len(result.realized_sales) == 1
    assert result.realized_sales[0].resolution == RESOLUTION_FIFO
    assert len(result.open_lots) == 1
    assert result.open_lots[0].transaction_id == "b2"
    assert result.open_lots[0].remaining_quantity == Decimal("10")
    assert result.open_lots[0].unit_price == Decimal("20")


def test_ledger_fifo_partial_lot_consumption_keeps_remainder_open() -> None:
    """Shrink a lot when a sell takes only part of it.

    Returns:
        None: Assertions validate partial-lot handling.

    Raises:
        AssertionError: Raised when the remainder or realized value is wrong.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1)),
            _transaction("s1", TransactionKind.SELL, "4", "12", date(2024, 1, 2)),
        ],
    )

    assert result.realized_gain_loss == Decimal("8")
    assert result.open_lots[0].remaining_quantity == Decimal("6")
    assert result.open_lots[0].original_quantity == Decimal("10")
    assert result.open_cost_basis == Decimal("60")


def test_ledger_fifo_sell_before_buy_resolves_against_later_buy() -> None:
    """Hold a sell without lots until a later buy supplies them.

    Returns:
        None: Assertions validate deferred sell resolution.

    Raises:
        AssertionError: Raised when the deferred sell is priced incorrectly.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("s1", TransactionKind.SELL, "5", "20", date(2024, 1, 1)),
            _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 2)),
        ],
    )

    assert len(result.realized_sales) == 1
    sale = result.realized_sales[0]
    assert sale.resolution == RESOLUTION_DEFERRED_FIFO
    assert sale.quantity == Decimal("5")
    assert sale.realized_gain_loss == Decimal("50")
    assert result.open_lots[0].remaining_quantity == Decimal("5")
    assert result.open_lots[0].unit_price == Decimal("10")


def test_ledger_fifo_splits_buy_fee_proportionally_across_sells() -> None:
    """Allocate the buy fee per share so two half sells carry half each.

    Returns:
        None: Assertions validate proportional fee allocation.

    Raises:
        AssertionError: Raised when the full fee is charged to both sells.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1), fees="10"),
            _transaction("s1", TransactionKind.SELL, "5", "12", date(2024, 1, 2)),
            _transaction("s2", TransactionKind.SELL, "5", "12", date(2024, 1, 3)),
        ],
    )

    assert [sale.cost_basis for sale in result.realized_sales] == [Decimal("55"), Decimal("55")]
    assert [sale.realized_gain_loss for sale in result.realized_sales] == [Decimal("5"), Decimal("5")]
    assert result.open_lots == ()


def test_ledger_fifo_partially_matched_sell_prorates_fees_between_parts() -> None:
    """Emit the matched part immediately and defer the rest with its share of fees.

    Returns:
        None: Assertions validate split sell records.

    Raises:
        AssertionError: Raised when proceeds or fees are not prorated.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "5", "10", date(2024, 1, 1)),
            _transaction("s1", TransactionKind.SELL, "8", "20", date(2024, 1, 2), fees="8"),
            _transaction("b2", TransactionKind.BUY, "10", "12", date(2024, 1, 3)),
        ],
    )

    matched_sale, deferred_sale = result.realized_sales
    assert matched_sale.resolution == RESOLUTION_FIFO
    assert matched_sale.quantity == Decimal("5")
    assert matched_sale.proceeds == Decimal("95")
    assert matched_sale.realized_gain_loss == Decimal("45")
    assert deferred_sale.resolution == RESOLUTION_DEFERRED_FIFO
    assert deferred_sale.quantity == Decimal("3")
    assert deferred_sale.proceeds == Decimal("57")
    assert deferred_sale.cost_basis == Decimal("36")
    assert deferred_sale.realized_gain_loss == Decimal("21")
    assert matched_sale.proceeds + deferred_sale.proceeds == Decimal("152")
    assert result.open_lots[0].remaining_quantity == Decimal("7")


def test_ledger_fifo_prices_oversold_shares_at_average_buy_cost() -> None:
    """Resolve shares sold beyond all buys at the all-buys average cost.

    Returns:
        None: Assertions validate the average-cost fallback.

    Raises:
        AssertionError: Raised when unmatched shares are dropped or mispriced.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1), fees="10"),
            _transaction("s1", TransactionKind.SELL, "15", "20", date(2024, 1, 2)),
        ],
    )

    matched_sale, fallback_sale = result.realized_sales
    assert matched_sale.realized_gain_loss == Decimal("90")
    assert fallback_sale.resolution == RESOLUTION_AVERAGE_COST_FALLBACK
    assert fallback_sale.quantity == Decimal("5")
    assert fallback_sale.cost_basis == Decimal("55")
    assert fallback_sale.realized_gain_loss == Decimal("45")
    assert result.open_lots == ()


def test_ledger_fifo_reports_unpriced_sells_when_symbol_has_no_buys() -> None:
    """Report sells without any buy as unpriced with zero realized value.

    Returns:
        None: Assertions validate the unpriced record.

    Raises:
        AssertionError: Raised when the sell is dropped or priced.
    """

    result = fifo_match_symbol(
        "AAPL",
        [_transaction("s1", TransactionKind.SELL, "5", "20", date(2024, 1, 1), fees="1")],
    )

    assert len(result.realized_sales) == 1
    assert result.realized_sales[0].resolution == RESOLUTION_UNPRICED
    assert result.realized_sales[0].proceeds == Decimal("99")
    assert result.realized_gain_loss == Decimal("0")


def test_ledger_fifo_same_timestamp_ties_keep_input_order() -> None:
    """Use input order to decide which of two same-time buys is first.

    Returns:
        None: Assertions validate stable tie ordering.

    Raises:
        AssertionError: Raised when tie ordering is not stable.
    """

    cheap_lot = _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1))
    expensive_lot = _transaction("b2", TransactionKind.BUY, "10", "20", date(2024, 1, 1))
    sell = _transaction("s1", TransactionKind.SELL, "10", "15", date(2024, 1, 2))

    forward_result = fifo_match_symbol("AAPL", [cheap_lot, expensive_lot, sell])
    reverse_result = fifo_match_symbol("AAPL", [sell, expensive_lot, cheap_lot])

    assert forward_result.realized_gain_loss == Decimal("50")
    assert reverse_result.realized_gain_loss == Decimal("-50")


def test_ledger_fifo_does_not_reorder_caller_list() -> None:
    """Sort a copy so the caller's list keeps its original order.

    Returns:
        None: Assertions validate input immutability.

    Raises:
        AssertionError: Raised when the input list is sorted in place.
    """

    transactions = [
        _transaction("s1", TransactionKind.SELL, "4", "12", date(2024, 1, 3)),
        _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1)),
    ]
    original_order = list(transactions)

    first_result = fifo_match_symbol("AAPL", transactions)
    second_result = fifo_match_symbol("AAPL", transactions)

    assert transactions == original_order
    assert first_result == second_result


def test_ledger_fifo_skips_zero_quantity_rows() -> None:
    """Skip zero-quantity rows instead of failing on per-share division.

    Returns:
        None: Assertions validate zero-quantity handling.

    Raises:
        AssertionError: Raised when a zero-quantity row changes results.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "10", "10", date(2024, 1, 1)),
            _transaction("b0", TransactionKind.BUY, "0", "999", date(2024, 1, 2), fees="5"),
            _transaction("s1", TransactionKind.SELL, "10", "11", date(2024, 1, 3)),
        ],
    )

    assert result.realized_gain_loss == Decimal("10")
    assert result.open_lots == ()


def test_ledger_fifo_orders_mixed_dates_and_aware_datetimes() -> None:
    """Order plain dates, naive and offset-aware datetimes on one timeline.

    Returns:
        None: Assertions validate timestamp normalization.

    Raises:
        AssertionError: Raised when mixed timestamps are misordered.
    """

    transactions = [
        _transaction("late", TransactionKind.BUY, "1", "1", date(2024, 1, 2)),
        _transaction("early", TransactionKind.BUY, "1", "1", datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc)),
        _transaction("middle", TransactionKind.BUY, "1", "1", datetime(2024, 1, 1, 18, 0)),
    ]

    ordered_ids = [transaction.transaction_id for transaction in fifo_sort_transactions(transactions)]

    assert ordered_ids == ["early", "middle", "late"]
    assert fifo_timestamp_key(date(2024, 1, 2)) == datetime(2024, 1, 2)


def test_ledger_fifo_rejects_transaction_of_another_symbol() -> None:
    """Raise a computation error with symbol context for foreign transactions.

    Returns:
        None: Assertions validate error context.

    Raises:
        AssertionError: Raised when the foreign row is accepted.
    """

    with pytest.raises(ComputationError) as error_info:
        fifo_match_symbol(
            "AAPL",
            [_transaction("m1", TransactionKind.BUY, "1", "1", date(2024, 1, 1), symbol="MSFT")],
        )

    assert error_info.value.symbol == "AAPL"
    assert error_info.value.field == "symbol"


def test_ledger_fifo_conserves_total_buy_cost_across_sales_and_open_lots() -> None:
    """Keep consumed cost basis plus open-lot cost equal to total buy cost.

    Returns:
        None: Assertions validate cost conservation.

    Raises:
        AssertionError: Raised when fee allocation leaks or duplicates cost.
    """

    result = fifo_match_symbol(
        "AAPL",
        [
            _transaction("b1", TransactionKind.BUY, "7", "10", date(2024, 1, 1), fees="3"),
            _transaction("b2", TransactionKind.BUY, "5", "11.5", date(2024, 1, 2), fees="2"),
            _transaction("s1", TransactionKind.SELL, "3", "12", date(2024, 1, 3), fees="1"),
            _transaction("s2", TransactionKind.SELL, "6", "13", date(2024, 1, 4), fees="1.5"),
        ],
    )

    consumed_cost = sum((sale.cost_basis for sale in result.realized_sales), Decimal("0"))
    total_buy_cost = Decimal("7") * Decimal("10") + Decimal("3") + Decimal("5") * Decimal("11.5") + Decimal("2")

    assert abs(consumed_cost + result.open_cost_basis - total_buy_cost) < Decimal("1e-18")
    assert result.open_quantity == Decimal("3")
