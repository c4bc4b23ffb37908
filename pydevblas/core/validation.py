"""
Input validation utilities for pydevblas.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages, before any device work is issued,
rather than silently correcting or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pydevblas.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
    dtype: Any = None,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to numpy array.
    
    Accepts any array-like and converts to numpy array. Rejects inputs
    that result in object dtype (indicating mixed types or non-numeric data).
    
    Args:
        array: Input to validate
        name: Parameter name for error messages
        dtype: Target floating dtype. If None, non-floating input is
               promoted to float64 and floating input is kept as is.
        
    Returns:
        numpy.ndarray with floating dtype
        
    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e
    
    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    # Reject non-numeric dtypes (strings, bytes, datetime, etc.)
    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    if dtype is not None:
        return result.astype(dtype, copy=False)

    if not np.issubdtype(result.dtype, np.floating):
        result = result.astype(np.float64)

    return result


def check_ndim(array: NDArray[Any], ndim: int, name: str) -> None:
    """
    Verify array has exactly the specified number of dimensions.
    
    Raises:
        DimensionError: If array has wrong number of dimensions
    """
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_1d(array: NDArray[Any], name: str) -> None:
    """Verify array is 1-dimensional."""
    check_ndim(array, 1, name)


def check_2d(array: NDArray[Any], name: str) -> None:
    """Verify array is 2-dimensional."""
    check_ndim(array, 2, name)


def check_non_negative(value: int, name: str) -> None:
    """
    Verify an integer dimension or offset is >= 0.
    
    Raises:
        DimensionError: If value is negative
    """
    if value < 0:
        raise DimensionError(f"{name}: must be non-negative, got {value}")


def check_positive(value: int, name: str) -> None:
    """
    Verify an integer stride is >= 1.
    
    Raises:
        ValidationError: If value is zero or negative
    """
    if value < 1:
        raise ValidationError(f"{name}: must be positive, got {value}")


def check_range(start: int, length: int, limit: int, name: str) -> None:
    """
    Verify [start, start + length) lies inside [0, limit).
    
    Args:
        start: First index of the range
        length: Number of elements in the range
        limit: Exclusive upper bound (dimension being indexed)
        name: Parameter name for error messages
        
    Raises:
        DimensionError: If the range falls outside the dimension
    """
    if start < 0 or length < 0 or start + length > limit:
        raise DimensionError(
            f"{name}: range [{start}, {start + length}) outside of [0, {limit})"
        )


def check_index(index: int, limit: int, name: str) -> None:
    """
    Verify 0 <= index < limit.
    
    Raises:
        DimensionError: If index is out of bounds
    """
    if not 0 <= index < limit:
        raise DimensionError(f"{name}: index {index} outside of [0, {limit})")


def check_same_dim(x: Any, y: Any, names: tuple[str, str]) -> None:
    """
    Verify two vectors have the same dimension.
    
    Raises:
        DimensionError: If dimensions differ
    """
    if x.dim != y.dim:
        raise DimensionError(
            f"Inconsistent dimensions: {names[0]}={x.dim}, {names[1]}={y.dim}"
        )


def check_same_shape(a: Any, b: Any, names: tuple[str, str]) -> None:
    """
    Verify two matrices have the same (rows, cols).
    
    Raises:
        DimensionError: If shapes differ
    """
    if (a.mrows, a.ncols) != (b.mrows, b.ncols):
        raise DimensionError(
            f"Inconsistent shapes: {names[0]}={a.mrows}x{a.ncols}, "
            f"{names[1]}={b.mrows}x{b.ncols}"
        )
