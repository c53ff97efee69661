from __future__ import annotations


class ConversionError(Exception):
    """A conversion run failed and none of its output tables were kept."""

    def __init__(self, message: str, *, stage: str, table: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.table = table


class UnsupportedInputError(ConversionError):
    """The input file is missing or its extension names no known OSM encoding."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="open")


class DecodeError(ConversionError):
    """The decoder rejected the input file."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="decode")


class TableWriteError(ConversionError):
    """An output table could not be opened, appended to, closed or committed."""


class ColumnMismatchError(TableWriteError):
    """A row-group does not match the table's column layout."""

    def __init__(self, message: str, *, table: str) -> None:
        super().__init__(message, stage="append", table=table)


class WriterClosedError(TableWriteError):
    """The table writer was used after it had been closed."""


class LaneError(ConversionError):
    """A lane failed while normalizing its buffer."""

    def __init__(self, message: str, *, kind: str) -> None:
        super().__init__(message, stage="flush")
        self.kind = kind
