"""View models for service outputs."""

from stockfolio.domain.views.portfolio import (
    DetailView,
    PortfolioSummary,
    PortfolioView,
    PositionRow,
    SegmentSummary,
)

__all__ = [
    "DetailView",
    "PortfolioSummary",
    "PortfolioView",
    "PositionRow",
    "SegmentSummary",
]
