"""FIFO lot-queue matching primitives for one symbol.

Buys open lots at the back of the queue; sells consume lots from the front.
A sell that finds no open lot waits in a pending queue until a later buy
arrives. Sells still pending after the whole stream are priced at the average
cost of every buy for the symbol, or left unpriced when the symbol has no buys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, Sequence

from gain_ledger.domain import ComputationError, LedgerTransaction, TransactionKind

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

RESOLUTION_FIFO = "fifo"
RESOLUTION_DEFERRED_FIFO = "deferred_fifo"
RESOLUTION_AVERAGE_COST_FALLBACK = "average_cost_fallback"
RESOLUTION_UNPRICED = "unpriced"


@dataclass(frozen=True)
class FifoOpenLotResult:
    """Open-lot state left after FIFO matching.

    Attributes:
        transaction_id: Identifier of the buy that opened the lot.
        opened_at: Timestamp of the opening buy.
        original_quantity: Quantity bought.
        remaining_quantity: Quantity not yet matched against sells.
        unit_price: Purchase price per share.
        total_fees: Full fee paid on the opening buy.
    """

    transaction_id: str
    opened_at: date | datetime
    original_quantity: Decimal
    remaining_quantity: Decimal
    unit_price: Decimal
    total_fees: Decimal

    @property
    def cost_per_share(self) -> Decimal:
        """Return purchase price plus the per-share share of the buy fee."""

        return self.unit_price + fifo_fee_per_share(self.total_fees, self.original_quantity)

    @property
    def remaining_cost_basis(self) -> Decimal:
        """Return cost basis, fees included, of the unmatched quantity."""

        return self.remaining_quantity * self.cost_per_share


@dataclass(frozen=True)
class RealizedSaleResult:
    """Realized gain or loss locked in by one sell or one matched part of it.

    Attributes:
        symbol: Security symbol.
        transaction_id: Identifier of the sell transaction.
        timestamp: Timestamp of the sell transaction.
        quantity: Quantity covered by this record.
        proceeds: Sale value net of the prorated sell fee.
        cost_basis: Matched purchase cost including prorated buy fees.
        realized_gain_loss: Proceeds minus cost basis.
        resolution: How the cost basis was determined.
    """

    symbol: str
    transaction_id: str
    timestamp: date | datetime
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    realized_gain_loss: Decimal
    resolution: str


@dataclass(frozen=True)
class FifoMatchResult:
    """Output payload of FIFO matching for one symbol.

    Attributes:
        symbol: Security symbol.
        realized_sales: Realized-sale records in emission order.
        open_lots: Remaining open lots, oldest first.
    """

    symbol: str
    realized_sales: tuple[RealizedSaleResult, ...]
    open_lots: tuple[FifoOpenLotResult, ...]

    @property
    def realized_gain_loss(self) -> Decimal:
        """Return the sum of realized gain or loss across sale records."""

        return sum((sale.realized_gain_loss for sale in self.realized_sales), _ZERO)

    @property
    def open_quantity(self) -> Decimal:
        """Return the quantity still held in open lots."""

        return sum((lot.remaining_quantity for lot in self.open_lots), _ZERO)

    @property
    def open_cost_basis(self) -> Decimal:
        """Return the cost basis, fees included, of all open lots."""

        return sum((lot.remaining_cost_basis for lot in self.open_lots), _ZERO)


@dataclass
class _OpenFifoLot:
    """Mutable internal lot state used during FIFO processing."""

    transaction_id: str
    opened_at: date | datetime
    original_quantity: Decimal
    remaining_quantity: Decimal
    unit_price: Decimal
    total_fees: Decimal

    def cost_per_share(self) -> Decimal:
        return self.unit_price + fifo_fee_per_share(self.total_fees, self.original_quantity)


@dataclass
class _PendingFifoSell:
    """Mutable internal state of a sell waiting for lots to match against."""

    transaction_id: str
    timestamp: date | datetime
    quantity: Decimal
    remaining_quantity: Decimal
    unit_price: Decimal
    fees: Decimal
    cost_basis: Decimal

    def proceeds(self) -> Decimal:
        return self.quantity * self.unit_price - self.fees


def fifo_match_symbol(symbol: str, transactions: Iterable[LedgerTransaction]) -> FifoMatchResult:
    """Match sells against buy lots in FIFO order for one symbol.

    Args:
        symbol: Symbol every transaction must belong to.
        transactions: Buy and sell transactions in any order.

    Returns:
        FifoMatchResult: Realized-sale records and remaining open lots.

    Raises:
        ComputationError: Raised when a transaction belongs to another symbol or
            carries an unusable kind, timestamp or numeric field.
    """

    sorted_transactions = fifo_sort_transactions(transactions, symbol=symbol)

    buy_queue: list[_OpenFifoLot] = []
    pending_sells: list[_PendingFifoSell] = []
    realized_sales: list[RealizedSaleResult] = []
    total_buy_cost = _ZERO
    total_buy_quantity = _ZERO

    for transaction in sorted_transactions:
        if transaction.symbol != symbol:
            raise ComputationError(
                f"transaction {transaction.transaction_id} belongs to symbol={transaction.symbol}",
                symbol=symbol,
                field="symbol",
            )

        kind = fifo_resolve_kind(transaction, symbol=symbol)
        quantity = fifo_to_decimal(transaction.quantity, field="quantity", symbol=symbol)
        unit_price = fifo_to_decimal(transaction.unit_price, field="unit_price", symbol=symbol)
        fees = fifo_to_decimal(transaction.fees, field="fees", symbol=symbol)

        if quantity <= _ZERO:
            logger.debug(
                "Skipping non-positive quantity transaction id=%s symbol=%s",
                transaction.transaction_id,
                symbol,
            )
            continue

        if kind is TransactionKind.BUY:
            total_buy_cost += quantity * unit_price + fees
            total_buy_quantity += quantity
            buy_queue.append(
                _OpenFifoLot(
                    transaction_id=transaction.transaction_id,
                    opened_at=transaction.timestamp,
                    original_quantity=quantity,
                    remaining_quantity=quantity,
                    unit_price=unit_price,
                    total_fees=fees,
                )
            )
            realized_sales.extend(_fifo_resolve_pending_sells(symbol, buy_queue, pending_sells))
            continue

        matched_quantity, cost_basis = _fifo_consume_lots(buy_queue, quantity)
        unmatched_quantity = quantity - matched_quantity

        if unmatched_quantity == _ZERO:
            proceeds = quantity * unit_price - fees
            realized_sales.append(
                RealizedSaleResult(
                    symbol=symbol,
                    transaction_id=transaction.transaction_id,
                    timestamp=transaction.timestamp,
                    quantity=quantity,
                    proceeds=proceeds,
                    cost_basis=cost_basis,
                    realized_gain_loss=proceeds - cost_basis,
                    resolution=RESOLUTION_FIFO,
                )
            )
            continue

        unmatched_fees = fees * (unmatched_quantity / quantity)
        pending_sells.append(
            _PendingFifoSell(
                transaction_id=transaction.transaction_id,
                timestamp=transaction.timestamp,
                quantity=unmatched_quantity,
                remaining_quantity=unmatched_quantity,
                unit_price=unit_price,
                fees=unmatched_fees,
                cost_basis=_ZERO,
            )
        )
        logger.debug(
            "Deferring %s unmatched shares of sell id=%s symbol=%s",
            unmatched_quantity,
            transaction.transaction_id,
            symbol,
        )

        if matched_quantity > _ZERO:
            matched_proceeds = matched_quantity * unit_price - (fees - unmatched_fees)
            realized_sales.append(
                RealizedSaleResult(
                    symbol=symbol,
                    transaction_id=transaction.transaction_id,
                    timestamp=transaction.timestamp,
                    quantity=matched_quantity,
                    proceeds=matched_proceeds,
                    cost_basis=cost_basis,
                    realized_gain_loss=matched_proceeds - cost_basis,
                    resolution=RESOLUTION_FIFO,
                )
            )

    if pending_sells:
        realized_sales.extend(
            _fifo_resolve_unmatched_sells(
                symbol=symbol,
                pending_sells=pending_sells,
                total_buy_cost=total_buy_cost,
                total_buy_quantity=total_buy_quantity,
            )
        )

    return FifoMatchResult(
        symbol=symbol,
        realized_sales=tuple(realized_sales),
        open_lots=tuple(
            FifoOpenLotResult(
                transaction_id=lot.transaction_id,
                opened_at=lot.opened_at,
                original_quantity=lot.original_quantity,
                remaining_quantity=lot.remaining_quantity,
                unit_price=lot.unit_price,
                total_fees=lot.total_fees,
            )
            for lot in buy_queue
        ),
    )


def fifo_sort_transactions(
    transactions: Iterable[LedgerTransaction],
    symbol: str | None = None,
) -> list[LedgerTransaction]:
    """Return a new list ordered by timestamp, keeping input order on ties.

    Args:
        transactions: Transactions in any order. The source is not modified.
        symbol: Optional symbol used for error context.

    Returns:
        list[LedgerTransaction]: Stable-sorted copy of the transactions.

    Raises:
        ComputationError: Raised when a timestamp cannot be ordered.
    """

    try:
        return sorted(transactions, key=lambda transaction: fifo_timestamp_key(transaction.timestamp))
    except ComputationError as error:
        raise ComputationError(str(error), symbol=symbol, field="timestamp") from error


def fifo_timestamp_key(timestamp: date | datetime) -> datetime:
    """Normalize a transaction timestamp into a comparable naive UTC datetime.

    Args:
        timestamp: Date, naive datetime or offset-aware datetime.

    Returns:
        datetime: Dates map to midnight, aware values are converted to naive UTC.

    Raises:
        ComputationError: Raised when the value is not a date or datetime.
    """

    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is not None and timestamp.utcoffset() is not None:
            return timestamp.astimezone(timezone.utc).replace(tzinfo=None)
        return timestamp.replace(tzinfo=None)
    if isinstance(timestamp, date):
        return datetime.combine(timestamp, time.min)
    raise ComputationError(f"unsupported timestamp type={type(timestamp).__name__}", field="timestamp")


def fifo_resolve_kind(transaction: LedgerTransaction, symbol: str | None = None) -> TransactionKind:
    """Resolve a transaction kind given as enum member or `buy`/`sell` text.

    Raises:
        ComputationError: Raised for unsupported kinds.
    """

    if isinstance(transaction.kind, TransactionKind):
        return transaction.kind
    try:
        return TransactionKind(str(transaction.kind).strip().lower())
    except ValueError as error:
        raise ComputationError(
            f"unsupported transaction kind={transaction.kind}",
            symbol=symbol,
            field="kind",
        ) from error


def fifo_to_decimal(value: object, field: str, symbol: str | None = None) -> Decimal:
    """Coerce a numeric field into a finite Decimal.

    Args:
        value: Decimal, int, float or numeric text.
        field: Field name used for error context.
        symbol: Optional symbol used for error context.

    Returns:
        Decimal: Finite decimal value, zero for None.

    Raises:
        ComputationError: Raised for non-numeric or non-finite values.
    """

    if value is None:
        return _ZERO
    if isinstance(value, bool):
        raise ComputationError(f"{field} must be numeric", symbol=symbol, field=field)
    try:
        decimal_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as error:
        raise ComputationError(f"{field} must be numeric, got {value!r}", symbol=symbol, field=field) from error
    if not decimal_value.is_finite():
        raise ComputationError(f"{field} must be finite, got {value!r}", symbol=symbol, field=field)
    return decimal_value


def fifo_fee_per_share(total_fees: Decimal, original_quantity: Decimal) -> Decimal:
    """Return fee per share, zero when the lot has no quantity."""

    if original_quantity <= _ZERO:
        return _ZERO
    return total_fees / original_quantity


def _fifo_consume_lots(buy_queue: list[_OpenFifoLot], quantity: Decimal) -> tuple[Decimal, Decimal]:
    """Consume up to `quantity` shares from the queue front.

    Returns:
        tuple[Decimal, Decimal]: Matched quantity and its cost basis.
    """

    quantity_to_match = quantity
    matched_quantity = _ZERO
    cost_basis = _ZERO

    while quantity_to_match > _ZERO and buy_queue:
        current_lot = buy_queue[0]
        take_quantity = min(quantity_to_match, current_lot.remaining_quantity)
        cost_basis += take_quantity * current_lot.cost_per_share()
        current_lot.remaining_quantity -= take_quantity
        quantity_to_match -= take_quantity
        matched_quantity += take_quantity

        if current_lot.remaining_quantity <= _ZERO:
            buy_queue.pop(0)

    return matched_quantity, cost_basis


def _fifo_resolve_pending_sells(
    symbol: str,
    buy_queue: list[_OpenFifoLot],
    pending_sells: list[_PendingFifoSell],
) -> list[RealizedSaleResult]:
    """Match waiting sells, oldest first, against newly available lots."""

    resolved_sales: list[RealizedSaleResult] = []

    while pending_sells and buy_queue:
        pending_sell = pending_sells[0]
        matched_quantity, cost_basis = _fifo_consume_lots(buy_queue, pending_sell.remaining_quantity)
        pending_sell.remaining_quantity -= matched_quantity
        pending_sell.cost_basis += cost_basis

        if pending_sell.remaining_quantity > _ZERO:
            break

        pending_sells.pop(0)
        proceeds = pending_sell.proceeds()
        resolved_sales.append(
            RealizedSaleResult(
                symbol=symbol,
                transaction_id=pending_sell.transaction_id,
                timestamp=pending_sell.timestamp,
                quantity=pending_sell.quantity,
                proceeds=proceeds,
                cost_basis=pending_sell.cost_basis,
                realized_gain_loss=proceeds - pending_sell.cost_basis,
                resolution=RESOLUTION_DEFERRED_FIFO,
            )
        )

    return resolved_sales


def _fifo_resolve_unmatched_sells(
    symbol: str,
    pending_sells: Sequence[_PendingFifoSell],
    total_buy_cost: Decimal,
    total_buy_quantity: Decimal,
) -> list[RealizedSaleResult]:
    """Price sells that never found lots at the symbol's all-buys average cost.

    Without any buy the sells cannot be priced; they are reported with zero
    realized gain or loss.
    """

    resolved_sales: list[RealizedSaleResult] = []
    unmatched_quantity = sum((pending_sell.remaining_quantity for pending_sell in pending_sells), _ZERO)

    if total_buy_quantity > _ZERO:
        average_cost = total_buy_cost / total_buy_quantity
        logger.warning(
            "Symbol %s sold %s shares more than bought; pricing them at average cost %s",
            symbol,
            unmatched_quantity,
            average_cost,
        )
    else:
        average_cost = None
        logger.warning(
            "Symbol %s sold %s shares with no recorded buys; realized gain/loss left at zero",
            symbol,
            unmatched_quantity,
        )

    for pending_sell in pending_sells:
        proceeds = pending_sell.proceeds()
        if average_cost is None:
            resolved_sales.append(
                RealizedSaleResult(
                    symbol=symbol,
                    transaction_id=pending_sell.transaction_id,
                    timestamp=pending_sell.timestamp,
                    quantity=pending_sell.quantity,
                    proceeds=proceeds,
                    cost_basis=pending_sell.cost_basis,
                    realized_gain_loss=_ZERO,
                    resolution=RESOLUTION_UNPRICED,
                )
            )
            continue

        cost_basis = pending_sell.cost_basis + pending_sell.remaining_quantity * average_cost
        resolved_sales.append(
            RealizedSaleResult(
                symbol=symbol,
                transaction_id=pending_sell.transaction_id,
                timestamp=pending_sell.timestamp,
                quantity=pending_sell.quantity,
                proceeds=proceeds,
                cost_basis=cost_basis,
                realized_gain_loss=proceeds - cost_basis,
                resolution=RESOLUTION_AVERAGE_COST_FALLBACK,
            )
        )

    return resolved_sales


__all__ = [
    "FifoMatchResult",
    "FifoOpenLotResult",
    "RESOLUTION_AVERAGE_COST_FALLBACK",
    "RESOLUTION_DEFERRED_FIFO",
    "RESOLUTION_FIFO",
    "RESOLUTION_UNPRICED",
    "RealizedSaleResult",
    "fifo_fee_per_share",
    "fifo_match_symbol",
    "fifo_resolve_kind",
    "fifo_sort_transactions",
    "fifo_timestamp_key",
    "fifo_to_decimal",
]
