"""In-memory implementation of HoldingRepository."""

from decimal import Decimal
from typing import Optional

from stockfolio.domain.models import Position
from stockfolio.repositories.file.holding_repo import portfolio_sort_key

DEMO_PORTFOLIO = "demo"


def demo_positions() -> list[Position]:
    """Fixed built-in portfolio shown in demo mode."""
    return [
        Position("2330.TW", "2330", "Taiwan Semiconductor", Decimal("100"), Decimal("580.5")),
        Position("2317.TW", "2317", "Hon Hai Precision", Decimal("200"), Decimal("105")),
        Position("0050.TW", "0050", "Yuanta Taiwan Top 50 ETF", Decimal("500"), Decimal("130.2")),
        Position("AAPL", "AAPL", "Apple Inc.", Decimal("50"), Decimal("150.25")),
        Position("NVDA", "NVDA", "NVIDIA Corporation", Decimal("20"), Decimal("420")),
        Position("MSFT", "MSFT", "Microsoft Corporation", Decimal("15"), Decimal("310.8")),
        Position("VOO", "VOO", "Vanguard S&P 500 ETF", Decimal("10"), Decimal("380")),
    ]


class InMemoryHoldingRepository:
    """Dict-backed store; nothing survives the process."""

    def __init__(self, portfolios: Optional[dict[str, list[Position]]] = None):
        self._portfolios: dict[str, list[Position]] = {
            name: list(positions) for name, positions in (portfolios or {}).items()
        }

    @classmethod
    def demo(cls) -> "InMemoryHoldingRepository":
        return cls({DEMO_PORTFOLIO: demo_positions()})

    def list_names(self) -> list[str]:
        return sorted(self._portfolios, key=portfolio_sort_key)

    def exists(self, name: str) -> bool:
        return name in self._portfolios

    def load(self, name: str) -> list[Position]:
        return list(self._portfolios.get(name, []))

    def save(self, name: str, positions: list[Position]) -> None:
        self._portfolios[name] = list(positions)

    def create(self, name: str) -> None:
        self._portfolios.setdefault(name, [])
