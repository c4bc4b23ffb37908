"""
Public BLAS operations on device vectors and matrices.

Each function validates its operands and forwards to the engine bound to
the first operand at construction. Dimension errors are raised before
anything is issued on the device.
"""

from __future__ import annotations

from typing import Any

from pydevblas.core.exceptions import ValidationError
from pydevblas.block.matrix import GEMatrix
from pydevblas.block.vector import Vector


def _check_compatible(*blocks: Any) -> None:
    first = blocks[0]
    for other in blocks[1:]:
        if not first.accessor.compatible(other.accessor):
            raise ValidationError(
                f"Incompatible operands: {first!r} and {other!r} belong to "
                f"different scalar kinds or contexts"
            )


def _check_kind(value: Any, expected: type, name: str) -> None:
    if not isinstance(value, expected):
        raise ValidationError(
            f"{name}: expected {expected.__name__}, got {type(value).__name__}"
        )


def _check_same_type(x: Any, y: Any) -> None:
    if isinstance(x, Vector):
        _check_kind(y, Vector, "y")
    else:
        _check_kind(x, GEMatrix, "x")
        _check_kind(y, GEMatrix, "y")


# =====================================================================
# Level 1 (vectors and general matrices)
# =====================================================================

def swap(x, y):
    """Exchange the entries of x and y. Returns x."""
    _check_same_type(x, y)
    _check_compatible(x, y)
    return x.engine.swap(x, y)


def copy(x, y=None):
    """Copy x into y (a new object with x's geometry when omitted). Returns y."""
    if y is None:
        y = x.raw()
    _check_same_type(x, y)
    _check_compatible(x, y)
    return x.engine.copy(x, y)


def scal(alpha: float, x):
    """x *= alpha. Returns x."""
    _check_same_type(x, x)
    return x.engine.scal(alpha, x)


def axpy(alpha: float, x, y):
    """y += alpha * x. Returns y."""
    _check_same_type(x, y)
    _check_compatible(x, y)
    return x.engine.axpy(alpha, x, y)


def subcopy(x: Vector, y: Vector, kx: int, lx: int, ky: int) -> Vector:
    """Copy lx entries of x starting at kx into y starting at ky."""
    _check_kind(x, Vector, "x")
    _check_kind(y, Vector, "y")
    _check_compatible(x, y)
    return x.engine.subcopy(x, y, kx, lx, ky)


def dot(x: Vector, y: Vector) -> float:
    _check_kind(x, Vector, "x")
    _check_kind(y, Vector, "y")
    _check_compatible(x, y)
    return x.engine.dot(x, y)


def nrm2(x: Vector) -> float:
    _check_kind(x, Vector, "x")
    return x.engine.nrm2(x)


def asum(x: Vector) -> float:
    _check_kind(x, Vector, "x")
    return x.engine.asum(x)


def sum(x: Vector) -> float:
    _check_kind(x, Vector, "x")
    return x.engine.sum(x)


def iamax(x: Vector) -> int:
    """Index of the entry with the largest absolute value."""
    _check_kind(x, Vector, "x")
    return x.engine.iamax(x)


def imax(x: Vector) -> int:
    _check_kind(x, Vector, "x")
    return x.engine.imax(x)


def imin(x: Vector) -> int:
    _check_kind(x, Vector, "x")
    return x.engine.imin(x)


def rot(x: Vector, y: Vector, c: float, s: float) -> Vector:
    return x.engine.rot(x, y, c, s)


def rotg(abcs: Vector) -> Vector:
    return abcs.engine.rotg(abcs)


def rotm(x: Vector, y: Vector, param: Vector) -> Vector:
    return x.engine.rotm(x, y, param)


def rotmg(d1d2xy: Vector, param: Vector) -> Vector:
    return d1d2xy.engine.rotmg(d1d2xy, param)


# =====================================================================
# Level 2 and 3
# =====================================================================

def mv(alpha: float, a: GEMatrix, x: Vector, beta: float = 0.0, y: Vector | None = None) -> Vector:
    """
    y = alpha * a * x + beta * y.
    
    Without y the product would have to overwrite x, which general
    matrices do not support.
    
    Raises:
        DimensionError: If a, x and y do not conform
        UnsupportedOperationError: If y is omitted
    """
    _check_kind(a, GEMatrix, "a")
    _check_kind(x, Vector, "x")
    if y is None:
        return a.engine.mv_inplace(alpha, a, x)
    _check_kind(y, Vector, "y")
    _check_compatible(a, x, y)
    return a.engine.mv(alpha, a, x, beta, y)


def rank(alpha: float, x: Vector, y: Vector, a: GEMatrix) -> GEMatrix:
    """a += alpha * x * y^T."""
    _check_kind(x, Vector, "x")
    _check_kind(y, Vector, "y")
    _check_kind(a, GEMatrix, "a")
    _check_compatible(a, x, y)
    return a.engine.rank(alpha, x, y, a)


def mm(
    alpha: float,
    a: GEMatrix,
    b: GEMatrix,
    beta: float = 0.0,
    c: GEMatrix | None = None,
    left: bool = False,
) -> GEMatrix:
    """
    c = alpha * a * b + beta * c.
    
    Without c the product is requested in place: into a, or into b when
    left is set.
    
    Raises:
        DimensionError: If a, b and c do not conform
        UnsupportedOperationError: If c is omitted
    """
    if c is None:
        return a.engine.mm_inplace(alpha, a, b, left)
    _check_kind(a, GEMatrix, "a")
    _check_kind(b, GEMatrix, "b")
    _check_kind(c, GEMatrix, "c")
    _check_compatible(a, b, c)
    return a.engine.mm(alpha, a, b, beta, c)
