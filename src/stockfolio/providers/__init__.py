"""Market data providers module."""

from stockfolio.providers.market_data_provider import MarketDataProvider, QuoteOutcome
from stockfolio.providers.stub_provider import StubMarketDataProvider
from stockfolio.providers.yahoo_provider import YahooFinanceProvider

__all__ = [
    "MarketDataProvider",
    "QuoteOutcome",
    "StubMarketDataProvider",
    "YahooFinanceProvider",
]
