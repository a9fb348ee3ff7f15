"""
Pytest configuration and fixtures for portfolio tracker tests.

This module provides:
- A simulated clock for TTL tests
- Deterministic, failing and blocking market data providers
- A fake yfinance module for the Yahoo provider
- Cache, fetcher and service fixtures wired like the AppContext
- A FastAPI test client backed by an in-memory holding repository
"""

import threading
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from stockfolio.app_context import AppContext, set_app_context
from stockfolio.config.settings import Settings, reset_settings
from stockfolio.core.exceptions import FetchError, SymbolNotFound
from stockfolio.core.timezone import UTC
from stockfolio.domain.models import (
    Currency,
    HistoricalSeries,
    Portfolio,
    Position,
    PricePoint,
    Quote,
)
from stockfolio.main import app
from stockfolio.providers import yahoo_provider
from stockfolio.providers.market_data_provider import QuoteOutcome
from stockfolio.repositories import InMemoryHoldingRepository
from stockfolio.services import (
    HoldingService,
    MarketDataService,
    PortfolioViewService,
    QuoteCache,
    QuoteFetcher,
    ValuationEngine,
)


# =============================================================================
# TIME HELPERS
# =============================================================================


def utc_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 6,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create an aware UTC datetime."""
    return UTC.localize(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Manually advanced clock for simulated-time tests."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or utc_datetime(2024, 6, 14, 6, 0, 0)
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> datetime:
        with self._lock:
            self._now += timedelta(seconds=seconds)
            return self._now


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed 'now' timestamp for deterministic tests."""
    return utc_datetime(2024, 6, 14, 6, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    """Simulated clock starting at fixed_now."""
    return FakeClock(fixed_now)


# =============================================================================
# MARKET DATA PROVIDERS
# =============================================================================


class DeterministicMarketProvider:
    """
    Deterministic market data provider for testing.

    Fixed quotes, configurable per-symbol failures, call recording.
    Symbols it does not know are left out of the reply.
    """

    FIXED_QUOTES = {
        "2330.TW": (Decimal("1025.00"), Decimal("1010.00")),
        "2317.TW": (Decimal("178.50"), Decimal("180.00")),
        "AAPL": (Decimal("185.50"), Decimal("184.25")),
        "MSFT": (Decimal("378.25"), Decimal("376.80")),
        "NVDA": (Decimal("485.25"), Decimal("482.50")),
        "TSLA": (Decimal("248.75"), Decimal("250.10")),
    }

    def __init__(self, rate: Decimal = Decimal("32.00")):
        self.prices = dict(self.FIXED_QUOTES)
        self.failures: dict[str, FetchError] = {}
        self.history_failures: dict[str, FetchError] = {}
        self.rate = rate
        self.rate_error: Optional[FetchError] = None
        self.quote_calls: list[list[str]] = []
        self.history_calls: list[str] = []
        self.rate_calls = 0

    def get_quotes(self, symbols: list[str], timeout: Optional[float] = None) -> dict[str, QuoteOutcome]:
        self.quote_calls.append(list(symbols))
        result: dict[str, QuoteOutcome] = {}
        for symbol in symbols:
            if symbol in self.failures:
                result[symbol] = self.failures[symbol]
            elif symbol in self.prices:
                price, prev_close = self.prices[symbol]
                result[symbol] = Quote(
                    symbol=symbol,
                    price=price,
                    previous_close=prev_close,
                    fetched_at=utc_datetime(2000, 1, 1),
                )
        return result

    def get_history(self, symbol: str, days: int) -> HistoricalSeries:
        self.history_calls.append(symbol)
        if symbol in self.history_failures:
            raise self.history_failures[symbol]
        if symbol not in self.prices:
            raise SymbolNotFound(symbol)
        return make_series(symbol, [Decimal(100 + i) for i in range(min(days, 20))])

    def get_exchange_rate(self, base: Currency, quote: Currency) -> Decimal:
        self.rate_calls += 1
        if self.rate_error is not None:
            raise self.rate_error
        return self.rate


class FailingMarketProvider:
    """Market provider that always raises an exception."""

    def get_quotes(self, symbols: list[str], timeout: Optional[float] = None) -> dict[str, QuoteOutcome]:
        raise ConnectionError("Network unavailable")

    def get_history(self, symbol: str, days: int) -> HistoricalSeries:
        raise ConnectionError("Network unavailable")

    def get_exchange_rate(self, base: Currency, quote: Currency) -> Decimal:
        raise ConnectionError("Network unavailable")


class BlockingMarketProvider(DeterministicMarketProvider):
    """Deterministic provider whose calls block until `release()`."""

    def __init__(self):
        super().__init__()
        self._gate = threading.Event()

    def release(self) -> None:
        self._gate.set()

    def get_quotes(self, symbols: list[str], timeout: Optional[float] = None) -> dict[str, QuoteOutcome]:
        # Ignores `timeout`, like a provider with no deadline of its own
        self._gate.wait(timeout=5)
        return super().get_quotes(symbols)

    def get_history(self, symbol: str, days: int) -> HistoricalSeries:
        self._gate.wait(timeout=5)
        return super().get_history(symbol, days)


def make_series(symbol: str, closes: list[Decimal], fetched_at: Optional[datetime] = None) -> HistoricalSeries:
    """Build a daily series ending 2024-06-13, oldest first."""
    end = date(2024, 6, 13)
    points = tuple(
        PricePoint(date=end - timedelta(days=len(closes) - 1 - i), close=close)
        for i, close in enumerate(closes)
    )
    return HistoricalSeries(symbol=symbol, points=points, fetched_at=fetched_at or utc_datetime(2024, 6, 14))


def make_quote(symbol: str, price: str, previous_close: str, fetched_at: datetime) -> Quote:
    return Quote(
        symbol=symbol,
        price=Decimal(price),
        previous_close=Decimal(previous_close),
        fetched_at=fetched_at,
    )


class FakeTicker:
    """Stand-in for a yfinance Ticker; `gate` makes `info` block until set."""

    def __init__(self, info=None, frame=None, error=None, gate: Optional[threading.Event] = None):
        self._info = info
        self._frame = frame
        self._error = error
        self._gate = gate

    @property
    def info(self):
        if self._gate is not None:
            self._gate.wait(timeout=5)
        if self._error is not None:
            raise self._error
        return self._info

    def history(self, **kwargs):
        if self._error is not None:
            raise self._error
        return self._frame


def fake_yfinance(tickers: dict[str, FakeTicker]) -> SimpleNamespace:
    """Stand-in for the yfinance module exposing Tickers and Ticker."""
    return SimpleNamespace(
        Tickers=lambda symbols: SimpleNamespace(
            tickers={s: tickers[s] for s in symbols.split() if s in tickers}
        ),
        Ticker=lambda symbol: tickers.get(symbol, FakeTicker(frame=pd.DataFrame())),
    )


@pytest.fixture
def patch_yf(monkeypatch):
    """Install a fake yfinance module behind YahooFinanceProvider."""
    def install(tickers: dict[str, FakeTicker]) -> None:
        monkeypatch.setattr(yahoo_provider, "_get_yf", lambda: fake_yfinance(tickers))
    return install


@pytest.fixture
def deterministic_provider() -> DeterministicMarketProvider:
    """Provide deterministic market data provider."""
    return DeterministicMarketProvider()


@pytest.fixture
def failing_provider() -> FailingMarketProvider:
    """Provide a market provider that always fails."""
    return FailingMarketProvider()


@pytest.fixture
def blocking_provider():
    """Provide a provider that blocks until released (released on teardown)."""
    provider = BlockingMarketProvider()
    yield provider
    provider.release()


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def cache(clock) -> QuoteCache:
    """Provide a QuoteCache on the simulated clock."""
    return QuoteCache(quote_ttl_seconds=60, history_ttl_seconds=6 * 60 * 60, clock=clock)


@pytest.fixture
def fetcher(deterministic_provider, clock):
    """Provide a QuoteFetcher on the deterministic provider."""
    fetcher = QuoteFetcher(provider=deterministic_provider, fetch_timeout_seconds=2, clock=clock)
    yield fetcher
    fetcher.shutdown()


@pytest.fixture
def market_data(fetcher, cache):
    """Provide a MarketDataService sharing the test cache."""
    service = MarketDataService(fetcher=fetcher, cache=cache)
    yield service
    service.shutdown()


@pytest.fixture
def valuation(cache) -> ValuationEngine:
    """Provide a USD-reference ValuationEngine with a 900s grace window."""
    return ValuationEngine(cache=cache, stale_grace_seconds=900)


@pytest.fixture
def sample_positions() -> dict[str, list[Position]]:
    """Two portfolios sharing 2330.TW."""
    return {
        "main": [
            Position("2330.TW", "2330", "TSMC", Decimal("100"), Decimal("580.5")),
            Position("AAPL", "AAPL", "Apple", Decimal("10"), Decimal("150")),
            Position("NVDA", "NVDA", "NVIDIA", Decimal("5"), Decimal("400")),
        ],
        "growth": [
            Position("2330.TW", "2330", "TSMC", Decimal("50"), Decimal("600")),
            Position("TSLA", "TSLA", "Tesla", Decimal("4"), Decimal("200")),
        ],
    }


@pytest.fixture
def holding_repo(sample_positions) -> InMemoryHoldingRepository:
    """Provide an in-memory repository seeded with sample_positions."""
    return InMemoryHoldingRepository(sample_positions)


@pytest.fixture
def holding_service(holding_repo, market_data) -> HoldingService:
    """Provide HoldingService validating symbols through market_data."""
    return HoldingService(repository=holding_repo, symbol_validator=market_data.validate_symbol)


@pytest.fixture
def view_service(holding_service, market_data, valuation) -> PortfolioViewService:
    """Provide PortfolioViewService over the sample portfolios."""
    return PortfolioViewService(
        holding_service=holding_service,
        market_data=market_data,
        valuation_engine=valuation,
    )


def portfolio(name: str, positions: list[Position], index: int = 1) -> Portfolio:
    return Portfolio(name=name, index=index, positions=positions)


# =============================================================================
# API TEST CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def api_provider() -> DeterministicMarketProvider:
    """Provider behind the API test client."""
    return DeterministicMarketProvider()


@pytest.fixture
def app_context(tmp_path, api_provider, sample_positions):
    """AppContext with test settings, deterministic provider, in-memory holdings."""
    reset_settings()
    context = AppContext(
        settings=Settings(data_dir=tmp_path, demo=False, refresh_on_startup=False),
        provider=api_provider,
        repository=InMemoryHoldingRepository(sample_positions),
    )
    set_app_context(context)
    yield context
    context.close()
    set_app_context(None)
    reset_settings()


@pytest.fixture
def client(app_context) -> TestClient:
    """Provide FastAPI test client bound to app_context."""
    with TestClient(app) as c:
        yield c
