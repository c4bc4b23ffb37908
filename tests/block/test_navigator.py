"""
Tests for the order navigators.
"""

import pytest

from pydevblas.block.navigator import (
    COLUMN_NAVIGATOR,
    ROW_NAVIGATOR,
    navigator_for,
)
from pydevblas.core.types import Layout


class TestNavigator:

    def test_column_major_dimensions(self):
        assert COLUMN_NAVIGATOR.sd(3, 5) == 3
        assert COLUMN_NAVIGATOR.fd(3, 5) == 5

    def test_row_major_dimensions(self):
        assert ROW_NAVIGATOR.sd(3, 5) == 5
        assert ROW_NAVIGATOR.fd(3, 5) == 3

    def test_column_major_index(self):
        assert COLUMN_NAVIGATOR.index(2, 4, 1, 3) == 2 + 1 + 3 * 4

    def test_row_major_index(self):
        assert ROW_NAVIGATOR.index(2, 4, 1, 3) == 2 + 1 * 4 + 3

    def test_navigator_for(self):
        assert navigator_for(Layout.COLUMN_MAJOR) is COLUMN_NAVIGATOR
        assert navigator_for(Layout.ROW_MAJOR) is ROW_NAVIGATOR
        assert ROW_NAVIGATOR.layout is Layout.ROW_MAJOR

    def test_unknown_layout(self):
        with pytest.raises(ValueError):
            navigator_for("diagonal")

    def test_stripe_is_contiguous_line(self, factory):
        a = factory.create_ge(3, 2, Layout.COLUMN_MAJOR)
        b = factory.create_ge(3, 2, Layout.ROW_MAJOR)
        col = COLUMN_NAVIGATOR.stripe(a, 1)
        row = ROW_NAVIGATOR.stripe(b, 2)
        assert (col.dim, col.offset, col.stride) == (3, 3, 1)
        assert (row.dim, row.offset, row.stride) == (2, 4, 1)
