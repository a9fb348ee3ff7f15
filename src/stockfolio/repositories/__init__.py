"""Repository layer - holding storage abstractions and implementations."""

from stockfolio.repositories.protocols import HoldingRepository
from stockfolio.repositories.file import FileHoldingRepository
from stockfolio.repositories.memory import InMemoryHoldingRepository, demo_positions

__all__ = [
    "HoldingRepository",
    "FileHoldingRepository",
    "InMemoryHoldingRepository",
    "demo_positions",
]
