from __future__ import annotations


class TableViewError(Exception):
    """Base error; `message` is safe to show to the user verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(TableViewError):
    pass


class UnsupportedFormatError(TableViewError):
    pass


class MalformedRowError(TableViewError):
    def __init__(self, row_index: int, expected: int, actual: int):
        super().__init__(
            f"Row {row_index} has {actual} cells, expected {expected}"
        )
        self.row_index = row_index
        self.expected = expected
        self.actual = actual


class ExportIOError(TableViewError):
    pass


class NoTableLoadedError(TableViewError):
    def __init__(self, message: str = "No file is loaded"):
        super().__init__(message)


class ColumnIndexError(TableViewError):
    def __init__(self, column_index: int, column_count: int):
        super().__init__(
            f"Column {column_index} is out of range (table has {column_count} columns)"
        )
        self.column_index = column_index
        self.column_count = column_count


class PathNotAllowedError(TableViewError):
    def __init__(self, path: str):
        super().__init__(f"Path is outside the data directory: {path}")
        self.path = path
