"""Holding repository protocol."""

from typing import Protocol

from stockfolio.domain.models import Position


class HoldingRepository(Protocol):
    """Interface for per-portfolio holding lists."""

    def list_names(self) -> list[str]:
        """Portfolio names, 'main' first then alphabetical."""
        ...

    def exists(self, name: str) -> bool:
        """Whether a portfolio with this name is stored."""
        ...

    def load(self, name: str) -> list[Position]:
        """Positions of one portfolio, in stored order."""
        ...

    def save(self, name: str, positions: list[Position]) -> None:
        """Replace the stored positions of one portfolio."""
        ...

    def create(self, name: str) -> None:
        """Create an empty portfolio."""
        ...
