"""
Core infrastructure for pydevblas.

Shared abstractions used by every layer above the device backend.

Key components:
    types: ScalarKind, Layout, Triangle, Diagonal
    protocols: Block, OrderNavigator, DataAccessor, engine and factory protocols
    exceptions: Exception hierarchy
    validation: Input validators
    backends: Hardware detection and device selection
    compute: Tolerance tiers
"""

from pydevblas.core.types import (
    ScalarKind,
    Layout,
    Triangle,
    Diagonal,
    DEFAULT_LAYOUT,
)
from pydevblas.core.exceptions import (
    PyDevBlasError,
    ValidationError,
    DimensionError,
    UsageError,
    InvalidStrideError,
    InefficientOperationError,
    UnsupportedOperationError,
    NotImplementedOperationError,
    BackendError,
    BlastError,
    PlatformError,
)

__all__ = [
    # Types
    "ScalarKind",
    "Layout",
    "Triangle",
    "Diagonal",
    "DEFAULT_LAYOUT",
    # Exceptions
    "PyDevBlasError",
    "ValidationError",
    "DimensionError",
    "UsageError",
    "InvalidStrideError",
    "InefficientOperationError",
    "UnsupportedOperationError",
    "NotImplementedOperationError",
    "BackendError",
    "BlastError",
    "PlatformError",
]
