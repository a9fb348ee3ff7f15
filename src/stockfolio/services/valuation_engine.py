"""
Valuation engine: positions + cached quotes + exchange rate -> display rows.

Reads the quote cache, never writes it. The combined view is computed here
on every call and never stored.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from stockfolio.domain.models import (
    Currency,
    ExchangeRate,
    MarketSegment,
    Portfolio,
    Position,
    Quote,
    QuoteStatus,
)
from stockfolio.domain.views import PortfolioSummary, PositionRow, SegmentSummary
from stockfolio.services.quote_cache import QuoteCache, is_fresh

ZERO = Decimal("0")
DEFAULT_STALE_GRACE_SECONDS = 900


@dataclass(frozen=True)
class PositionMetrics:
    current_value: Decimal
    cost_value: Decimal
    gain: Decimal
    gain_pct: Decimal


def gain_pct(gain: Decimal, cost_value: Decimal) -> Decimal:
    """Gain as a percentage of cost; 0 when there is no cost."""
    if cost_value == 0:
        return ZERO
    return gain / cost_value * 100


def position_metrics(quantity: Decimal, cost_basis: Decimal, price: Decimal) -> PositionMetrics:
    current_value = quantity * price
    cost_value = quantity * cost_basis
    gain = current_value - cost_value
    return PositionMetrics(
        current_value=current_value,
        cost_value=cost_value,
        gain=gain,
        gain_pct=gain_pct(gain, cost_value),
    )


def convert(
    amount: Decimal,
    from_currency: Currency,
    to_currency: Currency,
    rate: Optional[ExchangeRate],
) -> Optional[Decimal]:
    """
    Convert `amount` between currencies with `rate` (either direction).

    Returns None when a conversion is needed and no usable rate is given.
    """
    if from_currency == to_currency:
        return amount
    if rate is None or rate.rate <= 0:
        return None
    if (from_currency, to_currency) == (rate.base, rate.quote):
        return amount * rate.rate
    if (from_currency, to_currency) == (rate.quote, rate.base):
        return amount / rate.rate
    return None


@dataclass(frozen=True)
class MergedPosition:
    """One symbol's holdings across one or more portfolios."""

    position: Position
    portfolio_names: tuple[str, ...]


def merge_positions(portfolios: Iterable[Portfolio]) -> list[MergedPosition]:
    """
    Merge same-symbol positions across portfolios, in first-seen order.

    Quantity is summed; cost basis becomes sum(cost_value) / sum(quantity),
    or 0 when the merged quantity is 0.
    """
    order: list[str] = []
    grouped: dict[str, list[tuple[str, Position]]] = {}
    for portfolio in portfolios:
        for position in portfolio.positions:
            if position.symbol not in grouped:
                order.append(position.symbol)
                grouped[position.symbol] = []
            grouped[position.symbol].append((portfolio.name, position))

    merged = []
    for symbol in order:
        entries = grouped[symbol]
        first = entries[0][1]
        quantity = sum((p.quantity for _, p in entries), ZERO)
        total_cost = sum((p.quantity * p.cost_basis for _, p in entries), ZERO)
        cost_basis = total_cost / quantity if quantity != 0 else ZERO
        names = tuple(dict.fromkeys(name for name, _ in entries))
        merged.append(
            MergedPosition(
                position=Position(
                    symbol=symbol,
                    display_name=first.display_name,
                    description=first.description,
                    quantity=quantity,
                    cost_basis=cost_basis,
                ),
                portfolio_names=names,
            )
        )
    return merged


class ValuationEngine:
    """Derives rows and summaries from holdings and the shared quote cache."""

    def __init__(
        self,
        cache: QuoteCache,
        stale_grace_seconds: float = DEFAULT_STALE_GRACE_SECONDS,
        reference_currency: Currency = Currency.USD,
    ):
        self._cache = cache
        self._grace = stale_grace_seconds
        self._reference = Currency(reference_currency)

    @property
    def reference_currency(self) -> Currency:
        return self._reference

    def quote_status(self, quote: Optional[Quote], now: datetime) -> QuoteStatus:
        if quote is None:
            return QuoteStatus.UNAVAILABLE
        ttl = self._cache.quote_ttl_seconds
        if is_fresh(quote.fetched_at, now, ttl):
            return QuoteStatus.FRESH
        if is_fresh(quote.fetched_at, now, ttl + self._grace):
            return QuoteStatus.STALE
        return QuoteStatus.UNAVAILABLE

    def value_position(
        self,
        position: Position,
        portfolio_names: Iterable[str] = (),
        error: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PositionRow:
        """Build one row. Value fields stay None when the quote is unavailable."""
        now = now or self._cache.now()
        quote = self._cache.peek_quote(position.symbol)
        status = self.quote_status(quote, now)

        row = PositionRow(
            symbol=position.symbol,
            display_name=position.display_name,
            description=position.description,
            quantity=position.quantity,
            cost_basis=position.cost_basis,
            segment=position.segment,
            currency=position.currency,
            portfolio_names=list(portfolio_names),
            status=status,
            error=error,
        )
        if quote is None:
            return row

        # Last known price is shown even when too old to value
        row.price = quote.price
        row.previous_close = quote.previous_close
        row.change_pct = quote.change_pct
        row.quote_fetched_at = quote.fetched_at
        if status is QuoteStatus.UNAVAILABLE:
            return row

        metrics = position_metrics(position.quantity, position.cost_basis, quote.price)
        row.current_value = metrics.current_value
        row.cost_value = metrics.cost_value
        row.gain = metrics.gain
        row.gain_pct = metrics.gain_pct
        row.gain_converted = convert(metrics.gain, row.currency, self._reference, self._cache.peek_rate())
        return row

    def build_rows(
        self,
        merged: Iterable[MergedPosition],
        errors: Optional[Mapping[str, str]] = None,
    ) -> dict[MarketSegment, list[PositionRow]]:
        """Rows grouped by market segment, in holding order."""
        errors = errors or {}
        now = self._cache.now()
        rows: dict[MarketSegment, list[PositionRow]] = {segment: [] for segment in MarketSegment}
        for item in merged:
            row = self.value_position(
                item.position,
                item.portfolio_names,
                error=errors.get(item.position.symbol),
                now=now,
            )
            rows[row.segment].append(row)
        return rows

    def rows_for_portfolio(
        self,
        portfolio: Portfolio,
        errors: Optional[Mapping[str, str]] = None,
    ) -> dict[MarketSegment, list[PositionRow]]:
        return self.build_rows(merge_positions([portfolio]), errors)

    def rows_for_combined(
        self,
        portfolios: Iterable[Portfolio],
        errors: Optional[Mapping[str, str]] = None,
    ) -> dict[MarketSegment, list[PositionRow]]:
        return self.build_rows(merge_positions(portfolios), errors)

    def segment_summaries(
        self, rows: Mapping[MarketSegment, list[PositionRow]]
    ) -> dict[MarketSegment, SegmentSummary]:
        """Per-segment totals in native currency; unvalued rows add nothing."""
        summaries = {}
        for segment in MarketSegment:
            segment_rows = rows.get(segment, [])
            summary = SegmentSummary(segment=segment, currency=segment.currency)
            summary.position_count = len(segment_rows)
            for row in segment_rows:
                if not row.is_valued:
                    continue
                summary.total_value += row.current_value
                summary.total_cost += row.cost_value
                summary.total_gain += row.gain
                if row.quantity > 0:
                    summary.holding_count += 1
            summary.total_gain_pct = gain_pct(summary.total_gain, summary.total_cost)
            summaries[segment] = summary
        return summaries

    def summarize(self, rows: Mapping[MarketSegment, list[PositionRow]]) -> PortfolioSummary:
        """
        Totals in the reference currency.

        Uses the cached rate of any age. Rows that are unvalued, or that need
        a conversion while no rate was ever cached, are listed in
        `excluded_symbols` instead of being counted.
        """
        rate = self._cache.peek_rate()
        summary = PortfolioSummary(
            reference_currency=self._reference,
            exchange_rate=rate,
            rate_is_stale=rate is not None and self._cache.get_rate() is None,
        )
        for segment in MarketSegment:
            for row in rows.get(segment, []):
                summary.position_count += 1
                if not row.is_valued:
                    summary.excluded_symbols.append(row.symbol)
                    continue
                value = convert(row.current_value, row.currency, self._reference, rate)
                cost = convert(row.cost_value, row.currency, self._reference, rate)
                if value is None or cost is None:
                    summary.excluded_symbols.append(row.symbol)
                    continue
                summary.total_value += value
                summary.total_cost += cost
                summary.total_gain += value - cost
                if row.quantity > 0:
                    summary.holding_count += 1
        summary.total_gain_pct = gain_pct(summary.total_gain, summary.total_cost)
        return summary
