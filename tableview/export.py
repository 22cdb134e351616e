"""
Serialization of the current view back to CSV or JSON.

Responsibilities:
- standard CSV quoting (comma, quote, CR, LF trigger quoting; quotes doubled)
- JSON array of objects keyed by header, values kept as the original text
- mapping any write failure to ``ExportIOError``
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Sequence

from . import rules
from .errors import ExportIOError

logger = logging.getLogger(__name__)


def render_csv(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    outp = io.StringIO(newline="")
    writer = csv.writer(
        outp,
        delimiter=rules.EXPORT_DELIMITER,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator=rules.EXPORT_LINE_TERMINATOR,
    )
    writer.writerow(headers)
    writer.writerows(rows)
    return outp.getvalue()


def render_json(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    records = [
        {header: row[i] for i, header in enumerate(headers) if i < len(row)}
        for row in rows
    ]
    return json.dumps(records, indent=rules.JSON_INDENT, ensure_ascii=False)


def _write_text(path: str, text: str) -> None:
    if not path or not path.strip():
        raise ExportIOError("Export cancelled: no destination selected")
    try:
        with Path(path).open("w", encoding=rules.EXPORT_ENCODING, newline="") as handle:
            handle.write(text)
    except OSError as exc:
        logger.warning("export to %s failed: %s", path, exc)
        raise ExportIOError(f"Failed to write file: {exc}") from exc


def export_csv(path: str, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    _write_text(path, render_csv(headers, rows))
    logger.info("exported %d rows as CSV to %s", len(rows), path)
    return f"Exported {len(rows)} rows to {path}"


def export_json(path: str, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    _write_text(path, render_json(headers, rows))
    logger.info("exported %d rows as JSON to %s", len(rows), path)
    return f"Exported {len(rows)} rows to {path}"


EXPORTERS = {"csv": export_csv, "json": export_json}
RENDERERS = {"csv": render_csv, "json": render_json}
