"""Core utilities and shared functionality."""

from stockfolio.core.timezone import (
    now_utc,
    to_utc,
    market_date,
    UTC,
    TAIPEI_TZ,
    EASTERN_TZ,
)
from stockfolio.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    FetchError,
    FetchTimeout,
    FetchUnavailable,
    SymbolNotFound,
    MalformedResponse,
)

__all__ = [
    "now_utc",
    "to_utc",
    "market_date",
    "UTC",
    "TAIPEI_TZ",
    "EASTERN_TZ",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "FetchError",
    "FetchTimeout",
    "FetchUnavailable",
    "SymbolNotFound",
    "MalformedResponse",
]
