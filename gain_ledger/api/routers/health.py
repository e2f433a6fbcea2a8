"""Health endpoint router composition for app and ledger checks."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from gain_ledger.ledger import LedgerPort


def api_create_health_router(ledger_service: LedgerPort) -> APIRouter:
    """Create health-check router reporting application status and ledger policy.

    Args:
        ledger_service: Ledger computation service.

    Returns:
        APIRouter: Router exposing `/health` endpoint.

    Raises:
        ValueError: Raised when ledger_service is invalid.
    """

    if ledger_service is None:
        raise ValueError("ledger_service must not be None")

    router = APIRouter(tags=["health"])

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        """Return application and ledger health state.

        Returns:
            JSONResponse: Deterministic health payload for operational checks.
        """

        payload = {
            "status": "ok",
            "app": "up",
            "ledger": "up",
            "policy": ledger_service.ledger_policy_name(),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
