"""Domain layer - pure business models with no external dependencies."""

from stockfolio.domain.models import (
    Currency,
    MarketSegment,
    QuoteStatus,
    SortKey,
    Trend,
    Position,
    Portfolio,
    Quote,
    HistoricalSeries,
    PricePoint,
    ExchangeRate,
)

__all__ = [
    "Currency",
    "MarketSegment",
    "QuoteStatus",
    "SortKey",
    "Trend",
    "Position",
    "Portfolio",
    "Quote",
    "HistoricalSeries",
    "PricePoint",
    "ExchangeRate",
]
