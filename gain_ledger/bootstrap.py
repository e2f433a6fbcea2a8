"""Application bootstrap wiring for startup validation and dependency assembly."""

from fastapi import FastAPI

from gain_ledger.api import create_api_application
from gain_ledger.config import AppSettings, config_load_settings
from gain_ledger.ledger import PortfolioLedgerService
from gain_ledger.logging_setup import logging_configure


def bootstrap_create_ledger_service(settings: AppSettings) -> PortfolioLedgerService:
    """Build the ledger service from validated settings.

    Args:
        settings: Validated runtime settings.

    Returns:
        PortfolioLedgerService: Configured ledger service.
    """

    return PortfolioLedgerService(top_performers_count=settings.analytics_top_performers)


def bootstrap_create_application(settings: AppSettings | None = None) -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Args:
        settings: Optional pre-loaded settings, loaded from environment when omitted.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    logging_configure(resolved_settings.log_level)
    return create_api_application(
        settings=resolved_settings,
        ledger_service=bootstrap_create_ledger_service(resolved_settings),
    )
