#!/usr/bin/env python3
"""
Generate sample portfolio files for local testing.
Writes main.conf plus a second portfolio sharing some symbols, so the
combined view has merged rows to show.
"""

import argparse
import random
from decimal import Decimal
from pathlib import Path

from stockfolio.config.settings import Settings
from stockfolio.domain.models import Position
from stockfolio.repositories import FileHoldingRepository

# Symbol, display, description, approximate price
STOCKS = [
    ("2330.TW", "2330", "Taiwan Semiconductor", 1000.0),
    ("2317.TW", "2317", "Hon Hai Precision", 180.0),
    ("2454.TW", "2454", "MediaTek", 1250.0),
    ("0050.TW", "0050", "Yuanta Taiwan Top 50 ETF", 185.0),
    ("AAPL", "AAPL", "Apple Inc.", 185.0),
    ("MSFT", "MSFT", "Microsoft Corporation", 380.0),
    ("NVDA", "NVDA", "NVIDIA Corporation", 480.0),
    ("GOOGL", "GOOGL", "Alphabet Inc.", 140.0),
    ("VOO", "VOO", "Vanguard S&P 500 ETF", 445.0),
]


def _positions(rng: random.Random, count: int) -> list[Position]:
    positions = []
    for symbol, display, description, price in rng.sample(STOCKS, count):
        lot = 1000 if symbol.endswith(".TW") else 1
        quantity = Decimal(rng.randint(1, 10) * lot if lot > 1 else rng.randint(5, 100))
        cost = Decimal(str(round(price * rng.uniform(0.7, 1.1), 2)))
        positions.append(Position(symbol, display, description, quantity, cost))
    return positions


def generate(data_dir: Path, seed: int) -> None:
    rng = random.Random(seed)
    repo = FileHoldingRepository(data_dir)

    for name, count in (("main", 6), ("retirement", 4)):
        positions = _positions(rng, count)
        repo.save(name, positions)
        print(f"✓ {name}: {len(positions)} positions")

    print(f"\nPortfolio files written to {repo.directory}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--data-dir", type=Path, default=None, help="Portfolio directory (default from settings)")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()
    generate(args.data_dir or Settings().get_data_dir(), args.seed)


if __name__ == "__main__":
    main()
