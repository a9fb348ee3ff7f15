"""Flat-file implementation of HoldingRepository."""

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from stockfolio.domain.models import MarketSegment, Position

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".conf"
DEFAULT_PORTFOLIO = "main"
FILE_HEADER = (
    "# Stock Portfolio Configuration\n"
    "# Format: SYMBOL|Display Name|Description|Quantity|Cost Basis\n"
)


def portfolio_sort_key(name: str) -> tuple[int, str]:
    """'main' first, then alphabetical."""
    return (0 if name == DEFAULT_PORTFOLIO else 1, name)


def _parse_amount(raw: Optional[str], field_name: str, path: Path, line_no: int) -> Decimal:
    if raw is None or not raw.strip():
        return Decimal("0")
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite() or value < 0:
        logger.warning("%s:%d: invalid %s %r, using 0", path.name, line_no, field_name, raw)
        return Decimal("0")
    return value


def _format_amount(value: Decimal) -> str:
    return format(value.normalize(), "f")


def parse_line(line: str, path: Path, line_no: int) -> Optional[Position]:
    """
    Parse `SYMBOL|DisplayName|Description|Quantity|CostBasis`.

    Returns None for blank lines, comments and lines with fewer than three fields.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    parts = [part.strip() for part in line.split("|")]
    if len(parts) < 3:
        logger.warning("%s:%d: skipping malformed line %r", path.name, line_no, line)
        return None
    return Position(
        symbol=parts[0],
        display_name=parts[1],
        description=parts[2],
        quantity=_parse_amount(parts[3] if len(parts) > 3 else None, "quantity", path, line_no),
        cost_basis=_parse_amount(parts[4] if len(parts) > 4 else None, "cost basis", path, line_no),
    )


def format_positions(positions: list[Position]) -> str:
    """Render a holding file: header, then Taiwan and US sections."""
    lines = [FILE_HEADER]
    sections = [
        ("# Taiwan Stocks", MarketSegment.TW),
        ("# US Stocks", MarketSegment.US),
    ]
    for title, segment in sections:
        rows = [p for p in positions if p.segment is segment]
        if not rows:
            continue
        lines.append(title + "\n")
        for p in rows:
            lines.append(
                f"{p.symbol}|{p.display_name}|{p.description}|"
                f"{_format_amount(p.quantity)}|{_format_amount(p.cost_basis)}\n"
            )
        lines.append("\n")
    return "".join(lines)


class FileHoldingRepository:
    """One `<name>.conf` file per portfolio inside `directory`."""

    def __init__(self, directory: Path):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        if not any(self._directory.glob(f"*{FILE_SUFFIX}")):
            logger.info("No portfolios in %s, creating %s", self._directory, DEFAULT_PORTFOLIO)
            self.create(DEFAULT_PORTFOLIO)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, name: str) -> Path:
        return self._directory / f"{name}{FILE_SUFFIX}"

    def list_names(self) -> list[str]:
        names = [path.stem for path in self._directory.glob(f"*{FILE_SUFFIX}") if path.is_file()]
        return sorted(names, key=portfolio_sort_key)

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def load(self, name: str) -> list[Position]:
        path = self._path(name)
        if not path.exists():
            return []
        positions = []
        with path.open(encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                position = parse_line(line, path, line_no)
                if position is not None:
                    positions.append(position)
        return positions

    def save(self, name: str, positions: list[Position]) -> None:
        path = self._path(name)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(format_positions(positions), encoding="utf-8")
        tmp_path.replace(path)
        logger.debug("Saved %d positions to %s", len(positions), path)

    def create(self, name: str) -> None:
        self._path(name).write_text(FILE_HEADER, encoding="utf-8")
