"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockfolio.api.routers import market_router, portfolios_router
from stockfolio.app_context import get_app_context, set_app_context
from stockfolio.config.logging_config import setup_logging
from stockfolio.config.settings import get_settings
from stockfolio.core.exceptions import AppError, NotFoundError, SymbolNotFound
from stockfolio.domain.models import COMBINED_INDEX

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open holdings, warm the quote cache in the background, stop workers on exit."""
    setup_logging()
    context = get_app_context()
    portfolios = context.holdings.list_portfolios()
    logger.info(
        "Starting %s (demo=%s) with %d portfolio(s)",
        context.settings.app_name,
        context.is_demo,
        len(portfolios),
    )
    if context.settings.refresh_on_startup:
        context.views.refresh(COMBINED_INDEX, force=False)
    yield
    context.close()
    set_app_context(None)


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Taiwan and US stock portfolio tracker with cached live quotes",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(portfolios_router)
app.include_router(market_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    status_code = 404 if isinstance(exc, (NotFoundError, SymbolNotFound)) else 400
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


@app.get("/health")
def health_check() -> dict[str, object]:
    """Health check with demo flag and background refresh state."""
    context = get_app_context()
    return {
        "status": "healthy",
        "demo": context.is_demo,
        "refreshing": context.market_data.is_refreshing,
    }


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
