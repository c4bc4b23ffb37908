"""
Tests for input validation utilities.

Validates every function in core/validation.py:
    - check_array: conversion, dtype coercion, object rejection
    - check_ndim / check_1d / check_2d: dimensionality checks
    - check_non_negative / check_positive: integer geometry
    - check_range / check_index: view bounds
    - check_same_dim / check_same_shape: operand agreement
"""

from types import SimpleNamespace

import numpy as np
import pytest

from pydevblas.core.exceptions import DimensionError, ValidationError
from pydevblas.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_index,
    check_ndim,
    check_non_negative,
    check_positive,
    check_range,
    check_same_dim,
    check_same_shape,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:
    """check_array converts to ndarray and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert isinstance(result, np.ndarray)
        assert np.issubdtype(result.dtype, np.floating)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_float32_preserved(self):
        arr = np.array([1.0, 2.0], dtype=np.float32)
        assert check_array(arr, "X").dtype == np.float32

    def test_explicit_dtype(self):
        result = check_array([1, 2], "X", dtype=np.float32)
        assert result.dtype == np.float32

    def test_object_dtype_rejected(self):
        with pytest.raises(ValidationError, match="X"):
            check_array([1, "a", None], "X")

    def test_string_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(np.array(["a", "b"]), "X")


# ═══════════════════════════════════════════════════════════════════════
# Dimensionality
# ═══════════════════════════════════════════════════════════════════════


class TestNdim:

    def test_1d_passes(self):
        check_1d(np.zeros(3), "x")

    def test_1d_rejects_2d(self):
        with pytest.raises(DimensionError, match="expected 1D"):
            check_1d(np.zeros((2, 2)), "x")

    def test_2d_rejects_1d(self):
        with pytest.raises(DimensionError, match="expected 2D"):
            check_2d(np.zeros(3), "a")

    def test_ndim_3(self):
        check_ndim(np.zeros((1, 1, 1)), 3, "t")


# ═══════════════════════════════════════════════════════════════════════
# Geometry
# ═══════════════════════════════════════════════════════════════════════


class TestGeometry:

    def test_non_negative(self):
        check_non_negative(0, "n")
        with pytest.raises(DimensionError, match="n: must be non-negative"):
            check_non_negative(-1, "n")

    def test_positive(self):
        check_positive(1, "stride")
        with pytest.raises(ValidationError, match="stride"):
            check_positive(0, "stride")

    def test_range_inside(self):
        check_range(1, 2, 3, "x")
        check_range(3, 0, 3, "x")

    @pytest.mark.parametrize("start,length", [(-1, 1), (2, 2), (0, -1)])
    def test_range_outside(self, start, length):
        with pytest.raises(DimensionError, match="outside"):
            check_range(start, length, 3, "x")

    def test_index(self):
        check_index(0, 1, "row")
        with pytest.raises(DimensionError):
            check_index(1, 1, "row")


class TestOperandAgreement:

    def test_same_dim(self):
        check_same_dim(SimpleNamespace(dim=3), SimpleNamespace(dim=3), ("x", "y"))

    def test_different_dim(self):
        with pytest.raises(DimensionError, match="x=3, y=4"):
            check_same_dim(SimpleNamespace(dim=3), SimpleNamespace(dim=4), ("x", "y"))

    def test_different_shape(self):
        a = SimpleNamespace(mrows=2, ncols=3)
        b = SimpleNamespace(mrows=3, ncols=2)
        with pytest.raises(DimensionError, match="a=2x3, b=3x2"):
            check_same_shape(a, b, ("a", "b"))
