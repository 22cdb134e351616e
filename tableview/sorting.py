"""
Single-column, stable, type-adaptive sorting.

Numbers are only ever parsed here, transiently; table cells stay strings.
"""

from __future__ import annotations

import locale
import math
import re
from typing import Callable, Optional, Sequence, Tuple

from .models import Row, SortDirection, SortState

_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def try_parse_number(text: str) -> Optional[float]:
    stripped = text.strip()
    if not _DECIMAL_RE.match(stripped):
        return None
    value = float(stripped)
    if not math.isfinite(value):
        return None
    return value


def _cell(row: Row, column_index: int) -> str:
    if column_index < len(row):
        return row[column_index] or ""
    return ""


def _collate(text: str) -> str:
    # strxfrm rejects embedded NULs
    return locale.strxfrm(text.replace("\x00", ""))


def _string_key(text: str) -> Tuple[str, str, str]:
    # casefold first so "apple" < "Banana" regardless of the active locale;
    # the raw text breaks ties between strings that differ only by NULs
    return _collate(text.casefold()), _collate(text), text


def sort_key_for(rows: Sequence[Row], column_index: int) -> Callable[[Row], object]:
    """Numeric key when every value in the column parses, string key otherwise."""
    numbers = [try_parse_number(_cell(row, column_index)) for row in rows]
    if rows and all(n is not None for n in numbers):
        return lambda row: try_parse_number(_cell(row, column_index))
    return lambda row: _string_key(_cell(row, column_index))


def sort_rows(
    rows: Sequence[Row],
    column_index: int,
    direction: SortDirection = SortDirection.asc,
) -> Tuple[Row, ...]:
    # sorted() stays stable with reverse=True: ties keep their input order
    key = sort_key_for(rows, column_index)
    return tuple(sorted(rows, key=key, reverse=direction == SortDirection.desc))


def toggle_sort(state: Optional[SortState], column_index: int) -> SortState:
    if state is not None and state.column_index == column_index:
        flipped = SortDirection.desc if state.direction == SortDirection.asc else SortDirection.asc
        return SortState(column_index=column_index, direction=flipped)
    return SortState(column_index=column_index, direction=SortDirection.asc)


def apply_sort(rows: Sequence[Row], state: Optional[SortState]) -> Tuple[Row, ...]:
    if state is None:
        return tuple(rows)
    return sort_rows(rows, state.column_index, state.direction)
