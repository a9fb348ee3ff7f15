"""Repository protocol definitions (interfaces)."""

from stockfolio.repositories.protocols.holding_repo import HoldingRepository

__all__ = [
    "HoldingRepository",
]
