"""View models for valuation outputs consumed by the presentation layer."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from stockfolio.domain.models import (
    Currency,
    ExchangeRate,
    HistoricalSeries,
    MarketSegment,
    QuoteStatus,
    SortKey,
    Trend,
)


@dataclass
class PositionRow:
    """
    One displayable row: a position (or merged positions) plus derived metrics.

    Monetary fields are in the position's native currency and are None when no
    usable quote exists; such rows are left out of every total.
    """

    symbol: str
    display_name: str
    description: str
    quantity: Decimal
    cost_basis: Decimal
    segment: MarketSegment
    currency: Currency
    portfolio_names: list[str] = field(default_factory=list)
    status: QuoteStatus = QuoteStatus.UNAVAILABLE
    price: Optional[Decimal] = None
    previous_close: Optional[Decimal] = None
    change_pct: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    cost_value: Optional[Decimal] = None
    gain: Optional[Decimal] = None
    gain_pct: Optional[Decimal] = None
    # Gain in the reference currency, None when not convertible
    gain_converted: Optional[Decimal] = None
    quote_fetched_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_valued(self) -> bool:
        return self.current_value is not None

    @property
    def portfolio_label(self) -> str:
        return "+".join(self.portfolio_names)


@dataclass
class SegmentSummary:
    """Totals for one market segment, in that segment's currency."""

    segment: MarketSegment
    currency: Currency
    total_cost: Decimal = field(default_factory=lambda: Decimal("0"))
    total_value: Decimal = field(default_factory=lambda: Decimal("0"))
    total_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    total_gain_pct: Decimal = field(default_factory=lambda: Decimal("0"))
    position_count: int = 0
    holding_count: int = 0


@dataclass
class PortfolioSummary:
    """Totals across segments, converted into the reference currency."""

    reference_currency: Currency
    total_cost: Decimal = field(default_factory=lambda: Decimal("0"))
    total_value: Decimal = field(default_factory=lambda: Decimal("0"))
    total_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    total_gain_pct: Decimal = field(default_factory=lambda: Decimal("0"))
    position_count: int = 0
    holding_count: int = 0
    exchange_rate: Optional[ExchangeRate] = None
    rate_is_stale: bool = False
    # Symbols left out of the totals (no usable quote or no rate to convert)
    excluded_symbols: list[str] = field(default_factory=list)


@dataclass
class PortfolioView:
    """Everything the presentation layer needs for one refresh of one tab."""

    index: int
    name: str
    combined: bool
    sort_key: SortKey
    reverse: bool
    rows: dict[MarketSegment, list[PositionRow]] = field(default_factory=dict)
    segments: dict[MarketSegment, SegmentSummary] = field(default_factory=dict)
    summary: Optional[PortfolioSummary] = None
    errors: dict[str, str] = field(default_factory=dict)
    is_refreshing: bool = False
    last_refresh_at: Optional[datetime] = None

    @property
    def all_rows(self) -> list[PositionRow]:
        return [row for segment in MarketSegment for row in self.rows.get(segment, [])]


@dataclass
class DetailView:
    """Detail view for one symbol: its row plus 30-day history statistics."""

    row: PositionRow
    history: Optional[HistoricalSeries] = None
    history_is_stale: bool = False
    loading: bool = False
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    average: Optional[Decimal] = None
    period_change_pct: Optional[Decimal] = None
    trend: Trend = Trend.FLAT
    error: Optional[str] = None
