"""FastAPI application factory for the ledger service."""

from fastapi import FastAPI

from gain_ledger.config import AppSettings
from gain_ledger.ledger import LedgerPort

from .routers import api_create_health_router, api_create_portfolio_router


def create_api_application(settings: AppSettings, ledger_service: LedgerPort) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        ledger_service: Ledger computation service used by portfolio endpoints.

    Returns:
        FastAPI: Framework application instance.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """
    application = FastAPI(title="Stock Gain Ledger")

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return a minimal service descriptor.

        Returns:
            dict[str, str]: Service name, status and environment.
        """

        return {
            "service": "stock-gain-ledger",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(ledger_service=ledger_service))
    application.include_router(api_create_portfolio_router(settings=settings, ledger_service=ledger_service))

    return application
