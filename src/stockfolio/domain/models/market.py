"""Market data models: quotes, historical series and exchange rates."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from stockfolio.domain.models.enums import Currency, Trend

# Trend compares the mean of the first and last N closes
TREND_WINDOW = 5
TREND_THRESHOLD_PCT = Decimal("1")


@dataclass(frozen=True)
class Quote:
    """Live market snapshot for a symbol."""

    symbol: str
    price: Decimal
    previous_close: Decimal
    fetched_at: datetime

    @property
    def change(self) -> Decimal:
        return self.price - self.previous_close

    @property
    def change_pct(self) -> Decimal:
        if self.previous_close == 0:
            return Decimal("0")
        return self.change / self.previous_close * 100


@dataclass(frozen=True)
class PricePoint:
    """Daily close for one trading date."""

    date: date
    close: Decimal


@dataclass(frozen=True)
class HistoricalSeries:
    """Trailing daily closes for one symbol, oldest first."""

    symbol: str
    points: tuple[PricePoint, ...]
    fetched_at: datetime

    @property
    def closes(self) -> list[Decimal]:
        return [p.close for p in self.points]

    @property
    def first(self) -> Optional[Decimal]:
        return self.points[0].close if self.points else None

    @property
    def last(self) -> Optional[Decimal]:
        return self.points[-1].close if self.points else None

    @property
    def high(self) -> Optional[Decimal]:
        return max(self.closes) if self.points else None

    @property
    def low(self) -> Optional[Decimal]:
        return min(self.closes) if self.points else None

    @property
    def average(self) -> Optional[Decimal]:
        if not self.points:
            return None
        return sum(self.closes, Decimal("0")) / len(self.points)

    @property
    def period_change_pct(self) -> Optional[Decimal]:
        if len(self.points) < 2 or self.first == 0:
            return None
        return (self.last - self.first) / self.first * 100

    def trend(self) -> Trend:
        """
        Compare the average of the first five closes with the last five.

        More than +1% is UP, less than -1% is DOWN. Short series are FLAT.
        """
        closes = self.closes
        if len(closes) < TREND_WINDOW * 2:
            return Trend.FLAT
        first_avg = sum(closes[:TREND_WINDOW], Decimal("0")) / TREND_WINDOW
        last_avg = sum(closes[-TREND_WINDOW:], Decimal("0")) / TREND_WINDOW
        if first_avg == 0:
            return Trend.FLAT
        change_pct = (last_avg - first_avg) / first_avg * 100
        if change_pct > TREND_THRESHOLD_PCT:
            return Trend.UP
        if change_pct < -TREND_THRESHOLD_PCT:
            return Trend.DOWN
        return Trend.FLAT


@dataclass(frozen=True)
class ExchangeRate:
    """Units of `quote` currency per one unit of `base` currency."""

    rate: Decimal
    fetched_at: datetime
    base: Currency = field(default=Currency.USD)
    quote: Currency = field(default=Currency.TWD)
