"""Service layer - market data, valuation and view orchestration."""

from stockfolio.services.quote_cache import QuoteCache, is_fresh
from stockfolio.services.quote_fetcher import LiveFetchResult, QuoteFetcher
from stockfolio.services.market_data_service import MarketDataService
from stockfolio.services.valuation_engine import ValuationEngine, merge_positions
from stockfolio.services.view_sorter import SortState, sort_rows
from stockfolio.services.holding_service import HoldingService
from stockfolio.services.portfolio_view_service import PortfolioViewService

__all__ = [
    "QuoteCache",
    "is_fresh",
    "LiveFetchResult",
    "QuoteFetcher",
    "MarketDataService",
    "ValuationEngine",
    "merge_positions",
    "SortState",
    "sort_rows",
    "HoldingService",
    "PortfolioViewService",
]
