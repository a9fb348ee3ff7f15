"""Market data provider protocol."""

from decimal import Decimal
from typing import Optional, Protocol, Union

from stockfolio.core.exceptions import FetchError
from stockfolio.domain.models import Currency, HistoricalSeries, Quote

QuoteOutcome = Union[Quote, FetchError]


class MarketDataProvider(Protocol):
    """
    Protocol for market data providers.

    The engine is agnostic to the wire protocol; it relies only on these
    three calls and on FetchError subclasses for failures.
    """

    def get_quotes(
        self,
        symbols: list[str],
        timeout: Optional[float] = None,
    ) -> dict[str, QuoteOutcome]:
        """
        Fetch live quotes for a batch of symbols.

        Returns a dict mapping each symbol to a Quote or to the FetchError that
        prevented it. May raise FetchError when the whole batch failed.
        `timeout` bounds each symbol: one not answered in time gets a
        FetchTimeout while the rest of the batch is still returned.
        """
        ...

    def get_history(self, symbol: str, days: int) -> HistoricalSeries:
        """Fetch daily closes for the trailing `days` calendar days. Raises FetchError."""
        ...

    def get_exchange_rate(self, base: Currency, quote: Currency) -> Decimal:
        """Return units of `quote` per one `base`. Raises FetchError."""
        ...
