"""Application context for in-process service management.

Provides a centralized way to access all services without HTTP. Owns the
single quote cache shared by the market data service and the valuation
engine, so every view sees the same cached data.
"""

import logging
from pathlib import Path
from typing import Optional

from stockfolio.config.settings import Settings, get_settings, set_settings
from stockfolio.domain.models import Currency
from stockfolio.providers import MarketDataProvider, StubMarketDataProvider, YahooFinanceProvider
from stockfolio.repositories import FileHoldingRepository, HoldingRepository, InMemoryHoldingRepository
from stockfolio.services import (
    HoldingService,
    MarketDataService,
    PortfolioViewService,
    QuoteCache,
    QuoteFetcher,
    ValuationEngine,
)

logger = logging.getLogger(__name__)


class AppContext:
    """
    Application context providing in-process access to all services.

    Demo mode is resolved once, from the settings given at construction:
    it selects the built-in sample portfolio and the offline stub provider.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[MarketDataProvider] = None,
        repository: Optional[HoldingRepository] = None,
    ):
        """
        Initialize application context.

        Args:
            settings: Settings to use. Falls back to the global settings.
            provider: Market data provider override (tests).
            repository: Holding repository override (tests).
        """
        self._settings = settings or get_settings()
        set_settings(self._settings)

        self._provider = provider
        self._repository = repository

        # Service instances (lazy initialized)
        self._cache: Optional[QuoteCache] = None
        self._fetcher: Optional[QuoteFetcher] = None
        self._market_data: Optional[MarketDataService] = None
        self._valuation: Optional[ValuationEngine] = None
        self._holdings: Optional[HoldingService] = None
        self._views: Optional[PortfolioViewService] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_demo(self) -> bool:
        return self._settings.demo

    @property
    def data_dir(self) -> Path:
        """Get the portfolio directory."""
        return self._settings.get_data_dir()

    # Collaborators
    @property
    def provider(self) -> MarketDataProvider:
        """Stub provider in demo mode, Yahoo Finance otherwise."""
        if self._provider is None:
            self._provider = StubMarketDataProvider() if self.is_demo else YahooFinanceProvider()
            logger.info("Using %s", type(self._provider).__name__)
        return self._provider

    @property
    def repository(self) -> HoldingRepository:
        """Built-in demo portfolio in demo mode, holding files otherwise."""
        if self._repository is None:
            if self.is_demo:
                self._repository = InMemoryHoldingRepository.demo()
            else:
                self._repository = FileHoldingRepository(self.data_dir)
        return self._repository

    # Service accessors
    @property
    def cache(self) -> QuoteCache:
        """Get the shared QuoteCache instance."""
        if self._cache is None:
            self._cache = QuoteCache(
                quote_ttl_seconds=self._settings.quote_cache_ttl_seconds,
                history_ttl_seconds=self._settings.history_cache_ttl_seconds,
            )
        return self._cache

    @property
    def fetcher(self) -> QuoteFetcher:
        """Get the QuoteFetcher instance."""
        if self._fetcher is None:
            self._fetcher = QuoteFetcher(
                provider=self.provider,
                fetch_timeout_seconds=self._settings.fetch_timeout_seconds,
                history_timeout_seconds=self._settings.history_fetch_timeout_seconds,
                max_workers=self._settings.max_fetch_workers,
                batch_size=self._settings.quote_batch_size,
                history_days=self._settings.history_days,
                clock=self.cache.now,
            )
        return self._fetcher

    @property
    def market_data(self) -> MarketDataService:
        """Get the MarketDataService instance."""
        if self._market_data is None:
            self._market_data = MarketDataService(fetcher=self.fetcher, cache=self.cache)
        return self._market_data

    @property
    def valuation(self) -> ValuationEngine:
        """Get the ValuationEngine instance."""
        if self._valuation is None:
            self._valuation = ValuationEngine(
                cache=self.cache,
                stale_grace_seconds=self._settings.stale_grace_seconds,
                reference_currency=Currency(self._settings.reference_currency),
            )
        return self._valuation

    @property
    def holdings(self) -> HoldingService:
        """Get the HoldingService instance."""
        if self._holdings is None:
            self._holdings = HoldingService(
                repository=self.repository,
                symbol_validator=self.market_data.validate_symbol,
            )
        return self._holdings

    @property
    def views(self) -> PortfolioViewService:
        """Get the PortfolioViewService instance."""
        if self._views is None:
            self._views = PortfolioViewService(
                holding_service=self.holdings,
                market_data=self.market_data,
                valuation_engine=self.valuation,
                live_refresh_seconds=self._settings.live_refresh_seconds,
            )
        return self._views

    def close(self) -> None:
        """Stop live refresh and background fetch workers."""
        if self._views is not None:
            self._views.stop_live()
        if self._market_data is not None:
            self._market_data.shutdown()
        elif self._fetcher is not None:
            self._fetcher.shutdown()
        if isinstance(self._provider, YahooFinanceProvider):
            self._provider.shutdown()


# Global application context
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Get or create the global application context."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(context: Optional[AppContext]) -> None:
    """Set (or clear, with None) the global application context."""
    global _app_context
    _app_context = context
