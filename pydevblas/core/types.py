"""
Closed enumerations shared by every layer.

ScalarKind selects the element type and, through the factory, which pair
of engines and which backend entry points are bound. Layout fixes which
dimension of a matrix is contiguous in memory.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import numpy as np


class ScalarKind(Enum):
    """Floating-point element type of a device buffer."""
    SINGLE = 'float'
    DOUBLE = 'double'
    
    @property
    def c_name(self) -> str:
        """Name bound to REAL when kernels are built."""
        return self.value
    
    @property
    def entry_width(self) -> int:
        """Size in bytes of one element."""
        return 4 if self is ScalarKind.SINGLE else 8
    
    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(np.float32 if self is ScalarKind.SINGLE else np.float64)
    
    @property
    def torch_dtype(self) -> Any:
        import torch
        return torch.float32 if self is ScalarKind.SINGLE else torch.float64
    
    @classmethod
    def from_dtype(cls, dtype: Any) -> ScalarKind:
        """
        Get ScalarKind from a numpy dtype (or anything np.dtype accepts).
        
        Raises:
            ValueError: If dtype is not float32 or float64
        """
        dt = np.dtype(dtype)
        if dt == np.float32:
            return cls.SINGLE
        if dt == np.float64:
            return cls.DOUBLE
        raise ValueError(f"Unsupported dtype: {dt}. Expected float32 or float64")


class Layout(Enum):
    """Physical arrangement of a matrix."""
    ROW_MAJOR = 'row-major'
    COLUMN_MAJOR = 'column-major'
    
    @property
    def flipped(self) -> Layout:
        """The other layout (used by transposed views)."""
        if self is Layout.ROW_MAJOR:
            return Layout.COLUMN_MAJOR
        return Layout.ROW_MAJOR
    
    @property
    def numpy_order(self) -> str:
        return 'C' if self is Layout.ROW_MAJOR else 'F'


class Triangle(Enum):
    """Which triangle of a triangular view holds valid entries."""
    UPPER = 'upper'
    LOWER = 'lower'
    
    @property
    def flipped(self) -> Triangle:
        return Triangle.LOWER if self is Triangle.UPPER else Triangle.UPPER


class Diagonal(Enum):
    """Whether the diagonal of a triangular view is implicitly one."""
    UNIT = 'unit'
    NON_UNIT = 'non-unit'


DEFAULT_LAYOUT = Layout.COLUMN_MAJOR
