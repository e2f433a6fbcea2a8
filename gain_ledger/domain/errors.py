"""Project-native typed exceptions for ledger computation and transaction intake."""

from __future__ import annotations


class ComputationError(ValueError):
    """Raised when ledger computation cannot proceed on the supplied data.

    Attributes:
        symbol: Optional symbol whose computation failed.
        field: Optional offending field name.
    """

    def __init__(self, message: str, symbol: str | None = None, field: str | None = None):
        super().__init__(message)
        self.symbol = symbol
        self.field = field

    def to_payload(self) -> dict[str, object]:
        """Build a JSON-serializable error payload for callers and logs.

        Returns:
            dict[str, object]: Error payload with optional symbol and field context.
        """

        return {
            "status": "error",
            "code": "COMPUTATION_ERROR",
            "message": str(self),
            "symbol": self.symbol,
            "field": self.field,
        }


class TransactionImportError(ValueError):
    """Raised when transaction data cannot be turned into ledger transactions.

    Attributes:
        issues: Human-readable problem descriptions.
    """

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])

    def to_payload(self) -> dict[str, object]:
        """Build a JSON-serializable error payload.

        Returns:
            dict[str, object]: Error payload listing all collected issues.
        """

        return {
            "status": "error",
            "code": "TRANSACTION_IMPORT_ERROR",
            "message": str(self),
            "issues": self.issues,
        }
