"""Domain models, errors and transaction intake helpers."""

from .csv_import import CsvImportResult, csv_import_transactions, csv_parse_date
from .errors import ComputationError, TransactionImportError
from .models import LedgerTransaction, TransactionKind
from .validation import (
    ValidationIssue,
    validation_build_transaction,
    validation_check_transaction_fields,
    validation_is_valid_symbol,
)

__all__ = [
    "ComputationError",
    "CsvImportResult",
    "LedgerTransaction",
    "TransactionImportError",
    "TransactionKind",
    "ValidationIssue",
    "csv_import_transactions",
    "csv_parse_date",
    "validation_build_transaction",
    "validation_check_transaction_fields",
    "validation_is_valid_symbol",
]
