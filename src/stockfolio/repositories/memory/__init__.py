"""In-memory holding storage for demo mode and tests."""

from stockfolio.repositories.memory.holding_repo import InMemoryHoldingRepository, demo_positions

__all__ = [
    "InMemoryHoldingRepository",
    "demo_positions",
]
