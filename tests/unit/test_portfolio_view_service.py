"""
Unit tests for PortfolioViewService.

Tests cover:
- Single-portfolio and combined views after a refresh
- Per-view error filtering
- Detail view open / close and background history loading
- Live mode on a simulated clock
"""

import time
from decimal import Decimal

import pytest

from stockfolio.core.exceptions import FetchUnavailable, NotFoundError
from stockfolio.domain.models import MarketSegment, QuoteStatus, SortKey, Trend
from stockfolio.services import (
    HoldingService,
    MarketDataService,
    PortfolioViewService,
    QuoteFetcher,
)


# =============================================================================
# VIEWS
# =============================================================================


class TestGetView:
    """Tests for building valued views."""

    def test_view_before_any_refresh_is_unavailable(self, view_service: PortfolioViewService):
        view = view_service.get_view(1)

        assert view.name == "main"
        assert view.combined is False
        assert all(r.status is QuoteStatus.UNAVAILABLE for r in view.all_rows)
        assert view.summary.total_value == Decimal("0")
        assert view.summary.excluded_symbols == ["2330.TW", "AAPL", "NVDA"]

    def test_refreshed_view_is_valued_in_reference_currency(self, view_service: PortfolioViewService):
        """
        GIVEN portfolio main refreshed with a 32 TWD/USD rate
        WHEN the view is built
        THEN rows are split by market and totals convert TWD into USD
        """
        view_service.refresh(1, wait=True, timeout=5)

        view = view_service.get_view(1)

        assert [r.symbol for r in view.rows[MarketSegment.TW]] == ["2330.TW"]
        assert [r.symbol for r in view.rows[MarketSegment.US]] == ["AAPL", "NVDA"]
        assert view.segments[MarketSegment.TW].total_value == Decimal("102500")
        assert view.summary.total_value == Decimal("7484.375")
        assert view.summary.excluded_symbols == []
        assert view.is_refreshing is False
        assert view.last_refresh_at is not None

    def test_sorting_is_applied_per_segment(self, view_service: PortfolioViewService):
        view_service.refresh(1, wait=True, timeout=5)

        view = view_service.get_view(1, SortKey.PRICE, reverse=True)

        assert [r.symbol for r in view.rows[MarketSegment.US]] == ["NVDA", "AAPL"]
        assert view.sort_key is SortKey.PRICE
        assert view.reverse is True

    def test_combined_view_merges_portfolios(self, view_service: PortfolioViewService):
        view_service.refresh(0, wait=True, timeout=5)

        view = view_service.get_view(0)

        assert view.name == "combined"
        assert view.combined is True
        [tsmc] = view.rows[MarketSegment.TW]
        assert tsmc.quantity == Decimal("150")
        assert tsmc.portfolio_label == "main+growth"
        assert [r.symbol for r in view.rows[MarketSegment.US]] == ["AAPL", "NVDA", "TSLA"]

    def test_errors_are_limited_to_symbols_in_view(self, view_service, deterministic_provider):
        """
        GIVEN TSLA (only held in growth) failing during a combined refresh
        WHEN the main and combined views are built
        THEN only the combined view reports the TSLA error
        """
        deterministic_provider.failures["TSLA"] = FetchUnavailable("rate limited", symbol="TSLA")
        view_service.refresh(0, wait=True, timeout=5)

        assert view_service.get_view(1).errors == {}
        combined = view_service.get_view(0)
        assert combined.errors == {"TSLA": "rate limited"}
        assert combined.summary.excluded_symbols == ["TSLA"]

    def test_symbols_for_combined_are_distinct(self, view_service: PortfolioViewService):
        assert view_service.symbols_for(0) == ["2330.TW", "AAPL", "NVDA", "TSLA"]

    def test_unknown_portfolio(self, view_service: PortfolioViewService):
        with pytest.raises(NotFoundError):
            view_service.get_view(5)


# =============================================================================
# DETAIL VIEW
# =============================================================================


class TestDetailView:
    """Tests for the symbol detail view."""

    def test_open_detail_with_history(self, view_service: PortfolioViewService):
        view_service.refresh(1, wait=True, timeout=5)

        detail = view_service.open_detail(1, "AAPL", wait=5)

        assert detail.row.price == Decimal("185.50")
        assert len(detail.history.points) == 20
        assert detail.high == Decimal("119")
        assert detail.low == Decimal("100")
        assert detail.average == Decimal("109.5")
        assert detail.trend is Trend.UP
        assert detail.loading is False
        assert view_service.active_detail == (1, "AAPL")

    def test_symbol_not_in_view(self, view_service: PortfolioViewService):
        with pytest.raises(NotFoundError):
            view_service.open_detail(2, "AAPL")

        assert view_service.active_detail is None

    def test_history_failure_is_shown_on_detail(self, view_service, deterministic_provider):
        deterministic_provider.history_failures["NVDA"] = FetchUnavailable("down", symbol="NVDA")

        detail = view_service.open_detail(1, "NVDA", wait=5)

        assert detail.history is None
        assert detail.error == "down"

    def test_close_detail_leaves_fetch_running(self, blocking_provider, cache, clock, holding_repo, valuation):
        """
        GIVEN a detail view whose history fetch is still in flight
        WHEN the detail view is closed
        THEN the fetch still completes and fills the cache
        """
        fetcher = QuoteFetcher(provider=blocking_provider, history_timeout_seconds=5, clock=clock)
        market_data = MarketDataService(fetcher=fetcher, cache=cache)
        service = PortfolioViewService(
            holding_service=HoldingService(repository=holding_repo),
            market_data=market_data,
            valuation_engine=valuation,
        )
        try:
            detail = service.open_detail(1, "AAPL")
            assert detail.loading is True
            assert detail.history is None

            service.close_detail()
            assert service.current_detail() is None

            future = market_data.request_history("AAPL")
            blocking_provider.release()
            future.result(timeout=5)
            market_data.process_events()

            assert cache.get_history("AAPL") is not None
        finally:
            market_data.shutdown()
            fetcher.shutdown()

    def test_current_detail_picks_up_finished_history(self, view_service: PortfolioViewService):
        view_service.open_detail(1, "AAPL", wait=5)

        detail = view_service.current_detail()

        assert detail is not None
        assert detail.history is not None
        assert detail.row.symbol == "AAPL"


# =============================================================================
# LIVE MODE
# =============================================================================


class TestLiveMode:
    """Tests for periodic refresh of one view."""

    @pytest.fixture
    def live_service(self, holding_service, market_data, valuation):
        service = PortfolioViewService(
            holding_service=holding_service,
            market_data=market_data,
            valuation_engine=valuation,
            live_refresh_seconds=5,
        )
        yield service
        service.stop_live()

    def test_ticks_follow_the_interval(self, live_service, clock, deterministic_provider):
        """
        GIVEN live mode on view 1 with a 5s interval
        WHEN the simulated clock advances
        THEN a refresh starts at once and then only every 5 seconds
        """
        live_service.start_live(1, background=False)

        first = live_service.live_tick()
        assert first is not None
        first.result(timeout=5)

        assert live_service.live_tick() is None
        clock.advance(4)
        assert live_service.live_tick() is None
        clock.advance(1)
        second = live_service.live_tick()
        assert second is not None
        second.result(timeout=5)

        assert deterministic_provider.quote_calls == [
            ["2330.TW", "AAPL", "NVDA"],
            ["2330.TW", "AAPL", "NVDA"],
        ]

    def test_live_refresh_is_forced(self, live_service, clock, deterministic_provider):
        """
        GIVEN quotes still inside their 60s TTL
        WHEN a live tick fires
        THEN every symbol of the view is refetched anyway
        """
        live_service.refresh(1, wait=True, timeout=5)
        live_service.start_live(1, background=False)
        clock.advance(1)

        live_service.live_tick().result(timeout=5)

        assert len(deterministic_provider.quote_calls) == 2

    def test_tick_skipped_while_refresh_in_flight(
        self, blocking_provider, cache, clock, holding_repo, valuation
    ):
        """
        GIVEN a live refresh blocked in the provider
        WHEN the interval passes again
        THEN no second refresh is started until the first completes
        """
        fetcher = QuoteFetcher(provider=blocking_provider, fetch_timeout_seconds=5, clock=clock)
        market_data = MarketDataService(fetcher=fetcher, cache=cache)
        service = PortfolioViewService(
            holding_service=HoldingService(repository=holding_repo),
            market_data=market_data,
            valuation_engine=valuation,
            live_refresh_seconds=5,
        )
        try:
            service.start_live(1, background=False)
            first = service.live_tick()
            assert first is not None

            clock.advance(10)
            assert service.live_tick() is None
            assert market_data.is_refreshing is True

            blocking_provider.release()
            first.result(timeout=5)
            assert service.live_tick() is not None
        finally:
            service.stop_live()
            market_data.shutdown()

    def test_stop_live(self, live_service, clock):
        live_service.start_live(2, background=False)
        assert live_service.live_index == 2

        live_service.stop_live()
        clock.advance(60)

        assert live_service.live_index is None
        assert live_service.live_tick() is None

    def test_start_live_unknown_portfolio(self, live_service):
        with pytest.raises(NotFoundError):
            live_service.start_live(9, background=False)

        assert live_service.live_index is None

    def test_background_thread_refreshes(self, live_service, deterministic_provider):
        live_service.start_live(2)

        deadline = time.monotonic() + 5
        while not deterministic_provider.quote_calls and time.monotonic() < deadline:
            time.sleep(0.01)
        live_service.stop_live()

        assert deterministic_provider.quote_calls[0] == ["2330.TW", "TSLA"]
