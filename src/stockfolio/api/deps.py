"""Dependency injection for FastAPI."""

from fastapi import Depends

from stockfolio.app_context import AppContext, get_app_context
from stockfolio.services import (
    HoldingService,
    MarketDataService,
    PortfolioViewService,
)


def get_context() -> AppContext:
    """Provide the process-wide AppContext (owner of the shared quote cache)."""
    return get_app_context()


def get_holding_service(context: AppContext = Depends(get_context)) -> HoldingService:
    """Provide HoldingService instance."""
    return context.holdings


def get_view_service(context: AppContext = Depends(get_context)) -> PortfolioViewService:
    """Provide PortfolioViewService instance."""
    return context.views


def get_market_data_service(context: AppContext = Depends(get_context)) -> MarketDataService:
    """Provide MarketDataService instance."""
    return context.market_data
