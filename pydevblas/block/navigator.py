"""
Order navigators.

A navigator turns (row, col) coordinates into buffer indices for one
layout and names which matrix dimension is contiguous. sd is the length
of one contiguous line, fd is the number of lines. Everything else in
the package is written in terms of sd, fd and ld, and asks the
navigator whenever it needs a concrete index.
"""

from __future__ import annotations

from typing import Any

from pydevblas.core.types import Layout


class ColumnNavigator:
    """Columns are contiguous: line j is column j."""
    
    layout = Layout.COLUMN_MAJOR
    
    def sd(self, m: int, n: int) -> int:
        return m
    
    def fd(self, m: int, n: int) -> int:
        return n
    
    def index(self, offset: int, ld: int, i: int, j: int) -> int:
        return offset + i + j * ld
    
    def stripe(self, a: Any, j: int) -> Any:
        return a.col(j)
    
    def __repr__(self) -> str:
        return "ColumnNavigator()"


class RowNavigator:
    """Rows are contiguous: line j is row j."""
    
    layout = Layout.ROW_MAJOR
    
    def sd(self, m: int, n: int) -> int:
        return n
    
    def fd(self, m: int, n: int) -> int:
        return m
    
    def index(self, offset: int, ld: int, i: int, j: int) -> int:
        return offset + i * ld + j
    
    def stripe(self, a: Any, j: int) -> Any:
        return a.row(j)
    
    def __repr__(self) -> str:
        return "RowNavigator()"


COLUMN_NAVIGATOR = ColumnNavigator()
ROW_NAVIGATOR = RowNavigator()


def navigator_for(layout: Layout) -> ColumnNavigator | RowNavigator:
    """The shared navigator instance for a layout."""
    if layout is Layout.COLUMN_MAJOR:
        return COLUMN_NAVIGATOR
    if layout is Layout.ROW_MAJOR:
        return ROW_NAVIGATOR
    raise ValueError(f"Unknown layout: {layout!r}")
