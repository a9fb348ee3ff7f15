"""Holding models: positions and the portfolios that own them."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from stockfolio.domain.models.enums import Currency, MarketSegment

# Index of the synthetic, read-only combined view
COMBINED_INDEX = 0
MAX_PORTFOLIOS = 9


@dataclass(frozen=True)
class Position:
    """
    One holding of a symbol.

    Immutable: edits go through the holding service, which stores a replaced copy.
    """

    symbol: str
    display_name: str
    description: str
    quantity: Decimal = field(default_factory=lambda: Decimal("0"))
    cost_basis: Decimal = field(default_factory=lambda: Decimal("0"))

    @property
    def segment(self) -> MarketSegment:
        return MarketSegment.for_symbol(self.symbol)

    @property
    def currency(self) -> Currency:
        return self.segment.currency


@dataclass
class Portfolio:
    """Named, ordered collection of positions persisted as one holding file."""

    name: str
    index: int
    positions: list[Position] = field(default_factory=list)

    @property
    def symbols(self) -> list[str]:
        return [p.symbol for p in self.positions]

    def find(self, symbol: str) -> Optional[Position]:
        for position in self.positions:
            if position.symbol == symbol:
                return position
        return None
