"""Spreadsheet-style grid coordinates.

Columns are labeled with base-26 letters that have no zero digit:
A..Z, then AA..AZ, BA.., ZZ, AAA and so on. Rows are 1-based integers.
"""
from __future__ import annotations

import re
from typing import NamedTuple

_LABEL_RE = re.compile(r"[A-Z]+")
_CELL_RE = re.compile(r"([A-Z]+)([1-9][0-9]*)")


class GridCoordinate(NamedTuple):
    column: str
    row: int

    @property
    def a1(self) -> str:
        return f"{self.column}{self.row}"

    @property
    def column_index(self) -> int:
        return column_index(self.column)


def _check_label(label: str) -> None:
    if not isinstance(label, str) or not _LABEL_RE.fullmatch(label):
        raise ValueError(f"Invalid column label: {label!r}")


def next_column(label: str) -> str:
    """Return the column label immediately to the right of ``label``.

    next_column("C")  -> "D"
    next_column("Z")  -> "AA"
    next_column("AZ") -> "BA"
    next_column("ZZ") -> "AAA"
    """
    _check_label(label)
    return _next(label)


def _next(label: str) -> str:
    last = label[-1]
    if last != "Z":
        return label[:-1] + chr(ord(last) + 1)
    # rolled past Z: carry into the prefix
    if len(label) == 1:
        return "AA"
    return _next(label[:-1]) + "A"


def column_index(label: str) -> int:
    """1-based index of a column label ("A" -> 1, "AA" -> 27)."""
    _check_label(label)
    index = 0
    for ch in label:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index


def column_label(index: int) -> str:
    """Column label for a 1-based index (27 -> "AA")."""
    if index < 1:
        raise ValueError(f"Column index must be positive, got {index}")
    letters = []
    while index:
        index, rem = divmod(index - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def parse_cell(cell: str) -> GridCoordinate:
    """Parse A1 notation ("B7") into a GridCoordinate."""
    m = _CELL_RE.fullmatch(cell) if isinstance(cell, str) else None
    if not m:
        raise ValueError(f"Invalid cell reference: {cell!r}")
    return GridCoordinate(m.group(1), int(m.group(2)))


def parse_range(cell_range: str) -> tuple[GridCoordinate, GridCoordinate]:
    """Parse "A3:CC103" into its top-left and bottom-right corners."""
    start, sep, end = cell_range.partition(":")
    if not sep:
        coord = parse_cell(start)
        return coord, coord
    first, last = parse_cell(start), parse_cell(end)
    top_left = GridCoordinate(
        column_label(min(first.column_index, last.column_index)),
        min(first.row, last.row),
    )
    bottom_right = GridCoordinate(
        column_label(max(first.column_index, last.column_index)),
        max(first.row, last.row),
    )
    return top_left, bottom_right
