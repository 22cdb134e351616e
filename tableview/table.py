"""Table model: validation of parser payloads into immutable ``Table`` objects."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .errors import MalformedRowError, ParseError
from .models import FileType, Table

logger = logging.getLogger(__name__)


def load(payload: Mapping[str, Any]) -> Table:
    """
    Validate a parser payload and freeze it into a ``Table``.

    Rules:
    - every row must have exactly ``len(headers)`` cells, otherwise
      ``MalformedRowError`` names the offending row (0-based);
    - cells are stored as text;
    - ``row_count`` in the payload is never trusted, it is derived from ``rows``.
    """
    raw_type = payload.get("file_type")
    try:
        file_type = FileType(raw_type.lower() if isinstance(raw_type, str) else raw_type)
    except ValueError as exc:
        raise ParseError(f"Unknown file type: {payload.get('file_type')!r}") from exc

    headers = tuple(str(h) for h in payload.get("headers") or ())
    expected = len(headers)

    rows = []
    for i, row in enumerate(payload.get("rows") or ()):
        if len(row) != expected:
            raise MalformedRowError(i, expected, len(row))
        rows.append(tuple("" if cell is None else str(cell) for cell in row))

    declared = payload.get("row_count")
    if declared is not None and declared != len(rows):
        logger.debug("ignoring declared row_count=%s, found %d rows", declared, len(rows))

    return Table(
        file_name=str(payload.get("file_name") or "unknown"),
        file_type=file_type,
        headers=headers,
        rows=tuple(rows),
    )
