from __future__ import annotations

from typing import Tuple

from .models import Row, Table


def filter_rows(table: Table, term: str) -> Tuple[Row, ...]:
    """
    Case-insensitive substring search across every cell of a row.

    An empty or whitespace-only term keeps every row. Result order is the
    table's source order.
    """
    if not term or not term.strip():
        return table.rows

    needle = term.lower()
    return tuple(
        row for row in table.rows
        if any(needle in cell.lower() for cell in row)
    )
