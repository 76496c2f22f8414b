"""Library for formatting tabular and json command output."""

import json
import sys
from typing import Any, Generator, TextIO


COLUMN_GAP = 4


def column_widths(rows: list[list[str]]) -> list[int]:
    """Return the width of each column: its widest value plus a gap."""
    return [max(len(value) for value in column) + COLUMN_GAP for column in zip(*rows)]


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the headers and rows aligned in columns, trailing whitespace removed."""
    if not headers:
        return
    table = [headers] + [[str(value) for value in row] for row in rows]
    widths = column_widths(table)
    for row in table:
        yield "".join(value.ljust(width) for value, width in zip(row, widths)).rstrip()


class PrintFormatter:
    """Prints records as a table with one column per key."""

    def __init__(self, keys: list[str] | None = None, empty: str | None = None):
        """Initialize PrintFormatter.

        The columns are the given keys, or the keys of the first record. The
        `empty` message is printed in place of a table without records.
        """
        self._keys = keys
        self._empty = empty

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the records."""
        if not data:
            if self._empty:
                yield self._empty
            return
        keys = self._keys if self._keys is not None else list(data[0])
        yield from format_columns(
            [key.upper() for key in keys],
            [[str(record.get(key, "")) for key in keys] for record in data],
        )

    def print(self, data: list[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        """Print the records."""
        for line in self.format(data):
            print(line, file=file)


class JsonFormatter:
    """Prints data as an indented json document."""

    def format(self, data: Any) -> Generator[str, None, None]:
        """Format the data."""
        yield from json.dumps(data, indent=2, default=str).splitlines()

    def print(self, data: Any, file: TextIO = sys.stdout) -> None:
        """Print the data."""
        print(json.dumps(data, indent=2, default=str), file=file)
