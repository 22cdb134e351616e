"""
Deterministic loading and export rules.

This file exists to keep format decisions explicit and in one place.
"""

SUPPORTED_EXTENSIONS = {".csv": "csv", ".json": "json", ".jsonl": "jsonl"}

SNIFF_DELIMITERS = [",", ";", "\t", "|"]
SNIFF_SAMPLE_CHARS = 4096

EXPORT_DELIMITER = ","
EXPORT_LINE_TERMINATOR = "\r\n"
EXPORT_ENCODING = "utf-8"
JSON_INDENT = 2

# Arrays of at most this many primitives are joined into one cell.
PRIMITIVE_ARRAY_JOIN_LIMIT = 10
PRIMITIVE_ARRAY_SEPARATOR = ", "

DICT_OF_OBJECTS_NAME_COLUMN = "Name"
ARRAY_COLUMN_PREFIX = "column_"
