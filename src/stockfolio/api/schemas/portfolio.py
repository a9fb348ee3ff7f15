"""Pydantic schemas for portfolio endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from stockfolio.api.schemas.market import ExchangeRateResponse, PricePointResponse
from stockfolio.domain.models import Currency, MarketSegment, QuoteStatus, SortKey, Trend


class PortfolioCreate(BaseModel):
    """Request schema for creating a portfolio."""

    name: str = Field(..., min_length=1, max_length=64, description="Lower-case letters, digits, underscores")


class PortfolioResponse(BaseModel):
    """One entry of the portfolio tab list."""

    index: int
    name: str
    combined: bool = False
    position_count: int


class PortfolioListResponse(BaseModel):
    portfolios: list[PortfolioResponse]
    count: int


class PositionCreate(BaseModel):
    """Request schema for adding a position."""

    symbol: str = Field(..., min_length=1, max_length=32, description="e.g. 2330.TW, 2330 or AAPL")
    display_name: str = ""
    description: str = ""
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    cost_basis: Decimal = Field(default=Decimal("0"), ge=0)


class PositionUpdate(BaseModel):
    """Request schema for editing a position."""

    quantity: Decimal = Field(..., ge=0)
    cost_basis: Decimal = Field(..., ge=0)


class PositionResponse(BaseModel):
    model_config = {"from_attributes": True}

    symbol: str
    display_name: str
    description: str
    quantity: Decimal
    cost_basis: Decimal


class PositionRowResponse(BaseModel):
    """One valued row. Money fields are null when the quote is unavailable."""

    model_config = {"from_attributes": True}

    symbol: str
    display_name: str
    description: str
    quantity: Decimal
    cost_basis: Decimal
    segment: MarketSegment
    currency: Currency
    portfolio_names: list[str]
    portfolio_label: str
    status: QuoteStatus
    price: Optional[Decimal] = None
    previous_close: Optional[Decimal] = None
    change_pct: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    cost_value: Optional[Decimal] = None
    gain: Optional[Decimal] = None
    gain_pct: Optional[Decimal] = None
    gain_converted: Optional[Decimal] = None
    quote_fetched_at: Optional[datetime] = None
    error: Optional[str] = None


class SegmentSummaryResponse(BaseModel):
    model_config = {"from_attributes": True}

    segment: MarketSegment
    currency: Currency
    total_cost: Decimal
    total_value: Decimal
    total_gain: Decimal
    total_gain_pct: Decimal
    position_count: int
    holding_count: int


class PortfolioSummaryResponse(BaseModel):
    model_config = {"from_attributes": True}

    reference_currency: Currency
    total_cost: Decimal
    total_value: Decimal
    total_gain: Decimal
    total_gain_pct: Decimal
    position_count: int
    holding_count: int
    rate_is_stale: bool
    excluded_symbols: list[str]


class PortfolioViewResponse(BaseModel):
    """Response schema for a valued, sorted portfolio view."""

    index: int
    name: str
    combined: bool
    sort: SortKey
    reverse: bool
    tw_rows: list[PositionRowResponse]
    us_rows: list[PositionRowResponse]
    segments: list[SegmentSummaryResponse]
    summary: PortfolioSummaryResponse
    exchange_rate: Optional[ExchangeRateResponse] = None
    errors: dict[str, str]
    is_refreshing: bool
    last_refresh_at: Optional[datetime] = None


class DetailResponse(BaseModel):
    """Response schema for the detail view of one position."""

    row: PositionRowResponse
    points: list[PricePointResponse]
    history_is_stale: bool
    loading: bool
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    average: Optional[Decimal] = None
    period_change_pct: Optional[Decimal] = None
    trend: Trend
    error: Optional[str] = None


class LiveStatusResponse(BaseModel):
    """Live mode state: which view is refreshed periodically, if any."""

    live: bool
    index: Optional[int] = None
    interval_seconds: float
