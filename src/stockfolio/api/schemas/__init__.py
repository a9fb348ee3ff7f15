"""Pydantic schemas for API request/response."""

from stockfolio.api.schemas.market import (
    ExchangeRateResponse,
    PricePointResponse,
)
from stockfolio.api.schemas.portfolio import (
    DetailResponse,
    LiveStatusResponse,
    PortfolioCreate,
    PortfolioListResponse,
    PortfolioResponse,
    PortfolioSummaryResponse,
    PortfolioViewResponse,
    PositionCreate,
    PositionResponse,
    PositionRowResponse,
    PositionUpdate,
    SegmentSummaryResponse,
)

__all__ = [
    "ExchangeRateResponse",
    "PricePointResponse",
    "DetailResponse",
    "LiveStatusResponse",
    "PortfolioCreate",
    "PortfolioListResponse",
    "PortfolioResponse",
    "PortfolioSummaryResponse",
    "PortfolioViewResponse",
    "PositionCreate",
    "PositionResponse",
    "PositionRowResponse",
    "PositionUpdate",
    "SegmentSummaryResponse",
]
