"""
Host factory: numpy staging objects and host BLAS for one scalar kind.

Host vectors are 1-D arrays, host matrices are 2-D arrays whose memory
order follows the device layout (Fortran order for column-major), so a
transfer copies lines without reshuffling.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np
from scipy.linalg import blas as scipy_blas

from pydevblas.core.types import ScalarKind, Layout, DEFAULT_LAYOUT


class HostFactory:
    """
    Builds host-resident equivalents of device objects.
    
    Args:
        kind: Element type of the objects built
    """
    
    def __init__(self, kind: ScalarKind):
        self.kind = kind
        self.dtype = kind.numpy_dtype
    
    def create_vector(self, n: int, init: bool = True) -> np.ndarray:
        if init:
            return np.zeros(n, dtype=self.dtype)
        return np.empty(n, dtype=self.dtype)
    
    def create_ge(
        self,
        m: int,
        n: int,
        layout: Layout = DEFAULT_LAYOUT,
        init: bool = True,
    ) -> np.ndarray:
        alloc = np.zeros if init else np.empty
        return alloc((m, n), dtype=self.dtype, order=layout.numpy_order)
    
    def blas(self, name: str) -> Callable[..., Any]:
        """
        Host BLAS routine of this kind, e.g. blas('axpy') -> saxpy/daxpy.
        """
        (fn,) = scipy_blas.get_blas_funcs((name,), dtype=self.dtype)
        return fn
    
    def __repr__(self) -> str:
        return f"HostFactory({self.kind.c_name})"
