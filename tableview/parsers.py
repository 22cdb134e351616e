"""
Format parsers: CSV, JSON and JSON-Lines into one ``Table`` payload.

Responsibilities:
- encoding detection + decoding
- delimiter sniffing for CSV
- flattening nested JSON into dot-notation columns
- header union in first-seen order, missing cells as ""
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

from charset_normalizer import from_bytes

from . import rules
from .errors import ParseError, UnsupportedFormatError
from .models import FileType, Table
from .table import load

logger = logging.getLogger(__name__)


def detect_file_type(file_name: str) -> FileType:
    suffix = Path(file_name).suffix.lower()
    if suffix not in rules.SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(
            "Unsupported file type. Please use CSV, JSON, or JSONL files."
        )
    return FileType(rules.SUPPORTED_EXTENSIONS[suffix])


def decode_text(raw: bytes) -> Tuple[str, str]:
    """
    Decode input bytes to text.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is consumed, never surfaced as part of the first header.
    - If decode fails, fall back to UTF-8, then UTF-8 with replacement characters.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        return raw.decode("utf-8-sig"), "utf-8-sig"

    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    try:
        return raw.decode(decode_used), decode_used
    except (UnicodeDecodeError, LookupError):
        pass

    try:
        return raw.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        logger.warning("could not decode input as %s or utf-8; replacing bad bytes", decode_used)
        return raw.decode("utf-8", errors="replace"), "utf-8"


# --- CSV ---

def _sniff_delimiter(text: str) -> str:
    sample = text[: rules.SNIFF_SAMPLE_CHARS]
    try:
        return csv.Sniffer().sniff(sample, delimiters=rules.SNIFF_DELIMITERS).delimiter
    except csv.Error:
        return ","


def parse_csv_text(file_name: str, text: str) -> Table:
    delimiter = _sniff_delimiter(text)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)

    try:
        headers = next(reader)
    except StopIteration:
        raise ParseError("Failed to read headers: file is empty") from None
    except csv.Error as exc:
        raise ParseError(f"Failed to read headers: {exc}") from exc

    rows: List[List[str]] = []
    try:
        for record in reader:
            if not record:
                continue
            if len(record) != len(headers):
                raise ParseError(
                    f"Failed to read record on line {reader.line_num}: "
                    f"found {len(record)} fields, expected {len(headers)}"
                )
            rows.append(record)
    except csv.Error as exc:
        raise ParseError(f"Failed to read record on line {reader.line_num}: {exc}") from exc

    logger.debug("parsed %s: delimiter=%r columns=%d rows=%d", file_name, delimiter, len(headers), len(rows))
    return load({"file_name": file_name, "file_type": FileType.csv, "headers": headers, "rows": rows})


# --- JSON flattening ---

def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _compact(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def flatten(value: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten a JSON value into ``(dotted.key, text)`` pairs."""
    if isinstance(value, dict):
        pairs: List[Tuple[str, str]] = []
        for key, inner in value.items():
            pairs.extend(flatten(inner, f"{prefix}.{key}" if prefix else str(key)))
        return pairs
    if isinstance(value, list):
        primitive = all(not isinstance(v, (dict, list)) for v in value)
        if primitive and len(value) <= rules.PRIMITIVE_ARRAY_JOIN_LIMIT:
            return [(prefix, rules.PRIMITIVE_ARRAY_SEPARATOR.join(_scalar_text(v) for v in value))]
        return [(prefix, _compact(value))]
    return [(prefix, _scalar_text(value))]


def _rows_from_records(records: List[Dict[str, Any]]) -> Tuple[List[str], List[List[str]]]:
    flat_records = [dict(flatten(record)) for record in records]

    headers: List[str] = []
    seen = set()
    for flat in flat_records:
        for key in flat:
            if key not in seen:
                seen.add(key)
                headers.append(key)

    name = rules.DICT_OF_OBJECTS_NAME_COLUMN
    if name in seen and headers[0] != name:
        headers.remove(name)
        headers.insert(0, name)

    rows = [[flat.get(h, "") for h in headers] for flat in flat_records]
    return headers, rows


def _rows_from_arrays(arrays: List[List[Any]]) -> Tuple[List[str], List[List[str]]]:
    width = max(len(a) for a in arrays)
    headers = [f"{rules.ARRAY_COLUMN_PREFIX}{i + 1}" for i in range(width)]
    rows = []
    for array in arrays:
        cells = [_compact(v) if isinstance(v, (dict, list)) else _scalar_text(v) for v in array]
        rows.append(cells + [""] * (width - len(cells)))
    return headers, rows


def extract_records(parsed: Any) -> List[Any]:
    """
    Find the list of records inside a JSON document.

    - an array is used as-is
    - an object of objects becomes one record per key, with a ``Name`` column
    - an object holding arrays of objects yields the largest such array
    - any other object is a single record
    """
    if isinstance(parsed, list):
        if not parsed:
            raise ParseError("JSON array is empty")
        return parsed

    if not isinstance(parsed, dict):
        raise ParseError("JSON must be an object or an array of objects")

    object_values = [v for v in parsed.values() if isinstance(v, dict)]
    if len(object_values) > 1 and len(object_values) * 2 >= len(parsed):
        name = rules.DICT_OF_OBJECTS_NAME_COLUMN
        return [
            {name: key, **value}
            for key, value in parsed.items()
            if isinstance(value, dict)
        ]

    best = None
    for value in parsed.values():
        if isinstance(value, list) and value and isinstance(value[0], dict):
            if best is None or len(value) > len(best):
                best = value
    if best is not None:
        return best

    return [parsed]


def parse_json_text(file_name: str, text: str) -> Table:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Failed to parse JSON: {exc}") from exc

    records = extract_records(parsed)
    if all(isinstance(r, dict) for r in records):
        headers, rows = _rows_from_records(records)
    elif all(isinstance(r, list) for r in records):
        headers, rows = _rows_from_arrays(records)
    else:
        raise ParseError("JSON rows must all be objects or all be arrays")

    return load({"file_name": file_name, "file_type": FileType.json, "headers": headers, "rows": rows})


def parse_jsonl_text(file_name: str, text: str) -> Table:
    records: List[Dict[str, Any]] = []
    # only \n separates records; str.splitlines() would also break on U+2028
    # and friends, which JSON allows unescaped inside strings
    for line_no, line in enumerate(text.split("\n"), start=1):
        line = line.removesuffix("\r")
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Failed to parse line {line_no}: {exc}") from exc
        if not isinstance(obj, dict):
            raise ParseError(f"Failed to parse line {line_no}: JSONL lines must be objects")
        records.append(obj)

    if not records:
        raise ParseError("JSONL file is empty")

    headers, rows = _rows_from_records(records)
    return load({"file_name": file_name, "file_type": FileType.jsonl, "headers": headers, "rows": rows})


_TEXT_PARSERS = {
    FileType.csv: parse_csv_text,
    FileType.json: parse_json_text,
    FileType.jsonl: parse_jsonl_text,
}


def parse_bytes(file_name: str, raw: bytes) -> Table:
    file_type = detect_file_type(file_name)
    text, encoding = decode_text(raw)
    logger.info("parsing %s as %s (encoding=%s, %d bytes)", file_name, file_type.value, encoding, len(raw))
    return _TEXT_PARSERS[file_type](Path(file_name).name, text)


def parse_path(path: str) -> Table:
    file_type = detect_file_type(path)
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ParseError(f"Failed to read file: {exc}") from exc
    text, encoding = decode_text(raw)
    logger.info("parsing %s as %s (encoding=%s, %d bytes)", path, file_type.value, encoding, len(raw))
    return _TEXT_PARSERS[file_type](Path(path).name, text)


def parse_csv(path: str) -> Table:
    if detect_file_type(path) != FileType.csv:
        raise UnsupportedFormatError(f"{Path(path).name} is not a CSV file")
    return parse_path(path)


def parse_json(path: str) -> Table:
    if detect_file_type(path) != FileType.json:
        raise UnsupportedFormatError(f"{Path(path).name} is not a JSON file")
    return parse_path(path)


def parse_jsonl(path: str) -> Table:
    if detect_file_type(path) != FileType.jsonl:
        raise UnsupportedFormatError(f"{Path(path).name} is not a JSONL file")
    return parse_path(path)
