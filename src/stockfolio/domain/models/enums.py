"""Enumerations for domain models."""

from enum import Enum


class Currency(str, Enum):
    """Currencies a position can be denominated in."""

    TWD = "TWD"
    USD = "USD"


class MarketSegment(str, Enum):
    """Market a symbol trades on, inferred from its suffix."""

    TW = "TW"  # Taiwan Stock Exchange / TPEx (.TW, .TWO)
    US = "US"

    @classmethod
    def for_symbol(cls, symbol: str) -> "MarketSegment":
        return cls.TW if ".TW" in symbol.upper() else cls.US

    @property
    def currency(self) -> Currency:
        return Currency.TWD if self is MarketSegment.TW else Currency.USD


class QuoteStatus(str, Enum):
    """Freshness of the quote behind a position row."""

    FRESH = "FRESH"  # within TTL
    STALE = "STALE"  # past TTL but within the grace window
    UNAVAILABLE = "UNAVAILABLE"  # never fetched, or past the grace window


class Trend(str, Enum):
    """Direction of a historical series."""

    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class SortKey(str, Enum):
    """Columns a position table can be ordered by."""

    SYMBOL = "symbol"
    PRICE = "price"
    CHANGE_PCT = "change_pct"
    QUANTITY = "quantity"
    GAIN = "gain"
    GAIN_PCT = "gain_pct"
