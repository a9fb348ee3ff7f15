"""Ordering of position rows for display."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Sequence

from stockfolio.domain.models import SortKey
from stockfolio.domain.views import PositionRow


def _gain(row: PositionRow) -> Optional[Decimal]:
    return row.gain_converted if row.gain_converted is not None else row.gain


_NUMERIC_KEYS: dict[SortKey, Callable[[PositionRow], Optional[Decimal]]] = {
    SortKey.PRICE: lambda row: row.price,
    SortKey.CHANGE_PCT: lambda row: row.change_pct,
    SortKey.QUANTITY: lambda row: row.quantity,
    SortKey.GAIN: _gain,
    SortKey.GAIN_PCT: lambda row: row.gain_pct,
}


def sort_rows(
    rows: Sequence[PositionRow],
    key: SortKey = SortKey.SYMBOL,
    reverse: bool = False,
) -> list[PositionRow]:
    """
    Return a new list of `rows` ordered by `key`.

    The sort is stable and the input is left untouched. Rows without a value
    for `key` rank lowest: first when ascending, last when reversed.
    """
    key = SortKey(key)
    if key is SortKey.SYMBOL:
        return sorted(rows, key=lambda row: row.symbol, reverse=reverse)

    extract = _NUMERIC_KEYS[key]

    def sort_key(row: PositionRow) -> tuple[int, Decimal]:
        value = extract(row)
        if value is None:
            return (0, Decimal("0"))
        return (1, value)

    return sorted(rows, key=sort_key, reverse=reverse)


@dataclass
class SortState:
    """
    Current sort column and direction for a view.

    Selecting the active key flips the direction; selecting another key
    starts ascending for symbol and descending for numeric columns.
    """

    key: SortKey = SortKey.SYMBOL
    reverse: bool = False

    def select(self, key: SortKey) -> "SortState":
        key = SortKey(key)
        if key is self.key:
            self.reverse = not self.reverse
        else:
            self.key = key
            self.reverse = key is not SortKey.SYMBOL
        return self

    def apply(self, rows: Sequence[PositionRow]) -> list[PositionRow]:
        return sort_rows(rows, self.key, self.reverse)
