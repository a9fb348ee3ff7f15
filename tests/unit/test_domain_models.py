"""
Unit tests for domain models.

Tests cover:
- Market segment and currency inference from symbols
- Quote change figures
- Historical series statistics and trend classification
"""

from decimal import Decimal

import pytest

from stockfolio.domain.models import Currency, MarketSegment, Trend

from tests.conftest import make_quote, make_series, utc_datetime


class TestMarketSegment:
    """Tests for segment inference."""

    @pytest.mark.parametrize(
        "symbol,segment",
        [
            ("2330.TW", MarketSegment.TW),
            ("6488.TWO", MarketSegment.TW),
            ("aapl", MarketSegment.US),
            ("VOO", MarketSegment.US),
        ],
    )
    def test_for_symbol(self, symbol, segment):
        assert MarketSegment.for_symbol(symbol) is segment

    def test_currency(self):
        assert MarketSegment.TW.currency is Currency.TWD
        assert MarketSegment.US.currency is Currency.USD


class TestQuote:
    """Tests for quote change figures."""

    def test_change_and_change_pct(self):
        quote = make_quote("2330.TW", "1025", "1000", utc_datetime(2024, 6, 14))

        assert quote.change == Decimal("25")
        assert quote.change_pct == Decimal("2.5")

    def test_zero_previous_close(self):
        quote = make_quote("NEW", "10", "0", utc_datetime(2024, 6, 14))

        assert quote.change_pct == Decimal("0")


class TestHistoricalSeries:
    """Tests for series statistics."""

    def test_statistics(self):
        series = make_series("AAPL", [Decimal(c) for c in ("100", "90", "120", "110")])

        assert series.first == Decimal("100")
        assert series.last == Decimal("110")
        assert series.high == Decimal("120")
        assert series.low == Decimal("90")
        assert series.average == Decimal("105")
        assert series.period_change_pct == Decimal("10")

    def test_empty_series(self):
        series = make_series("AAPL", [])

        assert series.high is None
        assert series.average is None
        assert series.period_change_pct is None
        assert series.trend() is Trend.FLAT

    @pytest.mark.parametrize(
        "closes,trend",
        [
            ([100] * 5 + [102] * 5, Trend.UP),
            ([100] * 5 + [98] * 5, Trend.DOWN),
            ([100] * 5 + [101] * 5, Trend.FLAT),
            ([100, 200, 300], Trend.FLAT),
        ],
    )
    def test_trend(self, closes, trend):
        series = make_series("AAPL", [Decimal(c) for c in closes])

        assert series.trend() is trend

    def test_points_are_consecutive_dates_oldest_first(self):
        series = make_series("AAPL", [Decimal("1"), Decimal("2")])

        assert series.points[0].date < series.points[1].date
