"""Domain models package."""

from stockfolio.domain.models.enums import (
    Currency,
    MarketSegment,
    QuoteStatus,
    SortKey,
    Trend,
)
from stockfolio.domain.models.position import (
    COMBINED_INDEX,
    MAX_PORTFOLIOS,
    Position,
    Portfolio,
)
from stockfolio.domain.models.market import (
    ExchangeRate,
    HistoricalSeries,
    PricePoint,
    Quote,
)

__all__ = [
    "Currency",
    "MarketSegment",
    "QuoteStatus",
    "SortKey",
    "Trend",
    "COMBINED_INDEX",
    "MAX_PORTFOLIOS",
    "Position",
    "Portfolio",
    "ExchangeRate",
    "HistoricalSeries",
    "PricePoint",
    "Quote",
]
