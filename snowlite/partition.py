from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from .cells import Cell, decode
from .errors import DecodeError, UnsupportedTypeError
from .response import StringTable
from .rowtype import Schema


@dataclass(frozen=True)
class Partition:
    """One chunk of a result set, with the schema shared by all chunks.

    The raw strings are kept as returned by the service; every view decodes
    them afresh and never modifies them.
    """

    index: int
    schema: Schema
    data: StringTable

    @property
    def num_rows(self) -> int:
        """Rows in this partition, counted from the data rather than metadata."""
        return len(self.data)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.schema]

    def raw_cells(self) -> StringTable:
        """The cells exactly as the service returned them."""
        return self.data

    def iter_cells(self) -> Iterator[list[Cell]]:
        for row in self.data:
            yield [decode(value, column) for value, column in zip(row, self.schema)]

    def cells(self) -> list[list[Cell]]:
        """Decode every cell. The first decode failure fails the whole view."""
        return list(self.iter_cells())

    def try_cells(self) -> list[list[Cell | DecodeError | UnsupportedTypeError]]:
        """Decode every cell, leaving the error in place of cells that fail."""
        grid: list[list[Cell | DecodeError | UnsupportedTypeError]] = []
        for row in self.data:
            decoded: list[Cell | DecodeError | UnsupportedTypeError] = []
            for value, column in zip(row, self.schema):
                try:
                    decoded.append(decode(value, column))
                except (DecodeError, UnsupportedTypeError) as e:
                    decoded.append(e)
            grid.append(decoded)
        return grid

    def json_table(self) -> list[list[Any]]:
        return [[cell.to_json() for cell in row] for row in self.iter_cells()]

    def json_objects(self) -> list[dict[str, Any]]:
        names = self.column_names
        return [dict(zip(names, row)) for row in self.json_table()]
