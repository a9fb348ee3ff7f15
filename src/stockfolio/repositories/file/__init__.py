"""Flat-file holding storage."""

from stockfolio.repositories.file.holding_repo import FileHoldingRepository

__all__ = [
    "FileHoldingRepository",
]
