"""API routers package."""

from stockfolio.api.routers.portfolios import router as portfolios_router
from stockfolio.api.routers.market import router as market_router

__all__ = [
    "portfolios_router",
    "market_router",
]
