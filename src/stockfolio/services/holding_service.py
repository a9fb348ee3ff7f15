"""Holding service for portfolio and position management."""

import logging
import re
from decimal import Decimal
from typing import Callable, Optional, Union

from stockfolio.core.exceptions import FetchError, NotFoundError, SymbolNotFound, ValidationError
from stockfolio.domain.models import (
    COMBINED_INDEX,
    MAX_PORTFOLIOS,
    MarketSegment,
    Portfolio,
    Position,
    Quote,
)
from stockfolio.repositories.protocols import HoldingRepository

logger = logging.getLogger(__name__)

_TW_CODE = re.compile(r"^\d{4,6}$")
_PORTFOLIO_NAME = re.compile(r"^[a-z0-9_]+$")

Amount = Union[Decimal, int, float, str]


def normalize_symbol(symbol: str) -> str:
    """Trim and upper-case; bare 4-6 digit codes become Taiwan listings."""
    symbol = symbol.strip().upper()
    if _TW_CODE.match(symbol):
        symbol = f"{symbol}.TW"
    return symbol


def default_display_name(symbol: str) -> str:
    """Taiwan listings show their bare code (2330.TW, 6488.TWO); others the symbol."""
    if MarketSegment.for_symbol(symbol) is MarketSegment.TW:
        return symbol.rsplit(".", 1)[0]
    return symbol


def _to_amount(value: Amount, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{field_name} must be a number") from None
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return amount


class HoldingService:
    """
    Service for managing portfolios and their positions.

    Portfolios are numbered 1..n in repository order; index 0 is the
    read-only combined view and cannot be mutated.
    """

    def __init__(
        self,
        repository: HoldingRepository,
        symbol_validator: Optional[Callable[[str], Quote]] = None,
    ):
        self._repository = repository
        self._validate_symbol = symbol_validator

    def list_portfolios(self) -> list[Portfolio]:
        """All stored portfolios with their positions, indexed from 1."""
        names = self._repository.list_names()[:MAX_PORTFOLIOS]
        return [
            Portfolio(name=name, index=i, positions=self._repository.load(name))
            for i, name in enumerate(names, start=1)
        ]

    def get_portfolio(self, index: int) -> Portfolio:
        """Get one stored portfolio by its 1-based index."""
        if index == COMBINED_INDEX:
            raise ValidationError("The combined view is not a stored portfolio")
        names = self._repository.list_names()[:MAX_PORTFOLIOS]
        if index < 1 or index > len(names):
            raise NotFoundError("Portfolio", str(index))
        name = names[index - 1]
        return Portfolio(name=name, index=index, positions=self._repository.load(name))

    def _mutable_portfolio(self, index: int) -> Portfolio:
        if index == COMBINED_INDEX:
            raise ValidationError("The combined view is read-only")
        return self.get_portfolio(index)

    def add_position(
        self,
        index: int,
        symbol: str,
        display_name: str = "",
        description: str = "",
        quantity: Amount = 0,
        cost_basis: Amount = 0,
    ) -> Position:
        """
        Add a position to a portfolio.

        The symbol is checked against the market data provider right away:
        an unknown symbol is rejected, while transient fetch failures let the
        add through so it can be valued on the next refresh.
        """
        portfolio = self._mutable_portfolio(index)

        symbol = normalize_symbol(symbol)
        if not symbol:
            raise ValidationError("Symbol is required")
        if portfolio.find(symbol) is not None:
            raise ValidationError(f"{symbol} is already in portfolio '{portfolio.name}'")

        position = Position(
            symbol=symbol,
            display_name=display_name.strip() or default_display_name(symbol),
            description=description.strip() or symbol,
            quantity=_to_amount(quantity, "Quantity"),
            cost_basis=_to_amount(cost_basis, "Cost basis"),
        )

        if self._validate_symbol is not None:
            try:
                self._validate_symbol(symbol)
            except SymbolNotFound:
                raise ValidationError(f"Symbol not found: {symbol}") from None
            except FetchError as exc:
                logger.warning("Could not validate %s (%s), adding anyway", symbol, exc.message)

        self._repository.save(portfolio.name, portfolio.positions + [position])
        logger.info("Added %s to portfolio '%s'", symbol, portfolio.name)
        return position

    def edit_position(
        self,
        index: int,
        symbol: str,
        quantity: Amount,
        cost_basis: Amount,
    ) -> Position:
        """Replace quantity and cost basis of an existing position."""
        portfolio = self._mutable_portfolio(index)
        existing = portfolio.find(symbol)
        if existing is None:
            raise NotFoundError("Position", symbol)

        updated = Position(
            symbol=existing.symbol,
            display_name=existing.display_name,
            description=existing.description,
            quantity=_to_amount(quantity, "Quantity"),
            cost_basis=_to_amount(cost_basis, "Cost basis"),
        )
        positions = [updated if p.symbol == symbol else p for p in portfolio.positions]
        self._repository.save(portfolio.name, positions)
        return updated

    def delete_position(self, index: int, symbol: str) -> None:
        """Remove a position from a portfolio."""
        portfolio = self._mutable_portfolio(index)
        if portfolio.find(symbol) is None:
            raise NotFoundError("Position", symbol)
        self._repository.save(portfolio.name, [p for p in portfolio.positions if p.symbol != symbol])
        logger.info("Deleted %s from portfolio '%s'", symbol, portfolio.name)

    def create_portfolio(self, name: str) -> Portfolio:
        """Create an empty portfolio and return it with its assigned index."""
        name = name.strip().lower()
        if not _PORTFOLIO_NAME.match(name):
            raise ValidationError("Portfolio name may only contain letters, digits and underscores")
        if self._repository.exists(name):
            raise ValidationError(f"Portfolio '{name}' already exists")
        if len(self._repository.list_names()) >= MAX_PORTFOLIOS:
            raise ValidationError(f"At most {MAX_PORTFOLIOS} portfolios are supported")

        self._repository.create(name)
        logger.info("Created portfolio '%s'", name)
        index = self._repository.list_names().index(name) + 1
        return Portfolio(name=name, index=index, positions=[])
