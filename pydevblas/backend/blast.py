"""
BLAS entry points over runtime buffers.

Every routine takes explicit geometry (dimensions, element offsets,
increments, leading dimensions) and a command queue, validates it the
way the reference BLAS does, and returns an integer status instead of
raising. Callers decode the status with status.raise_for_status().

Matrix routines receive one layout flag for all of their operands, plus
transpose flags saying whether an operand is stored as op(X) or X^T.
Index results are 0-based and written as int32; ties resolve to the
first index.
"""

from __future__ import annotations

from typing import Callable

import torch

from pydevblas.core.exceptions import PlatformError
from pydevblas.core.types import ScalarKind
from pydevblas.backend import status
from pydevblas.backend.runtime import Buffer, CommandQueue, Context

# Layout and transpose flags
LAYOUT_ROW_MAJOR = 101
LAYOUT_COL_MAJOR = 102
TRANSPOSE_NO = 111
TRANSPOSE_YES = 112

INDEX_WIDTH = 4

_LAYOUTS = (LAYOUT_ROW_MAJOR, LAYOUT_COL_MAJOR)
_TRANSPOSES = (TRANSPOSE_NO, TRANSPOSE_YES)


# =====================================================================
# Argument checks (return a status code, SUCCESS when valid)
# =====================================================================

def _check_vector(
    n: int, buffer: Buffer, ofst: int, inc: int, width: int,
    inc_code: int, mem_code: int,
) -> int:
    if inc < 1:
        return inc_code
    capacity = buffer.size // width
    if ofst < 0 or ofst + (n - 1) * inc >= capacity:
        return mem_code
    return status.SUCCESS


def _check_result(buffer: Buffer, ofst: int, width: int) -> int:
    if ofst < 0 or (ofst + 1) * width > buffer.size:
        return status.K_INSUFFICIENT_MEMORY_DOT
    return status.SUCCESS


def _check_matrix(
    layout: int, rows: int, cols: int, buffer: Buffer, ofst: int, ld: int,
    width: int, ld_code: int, mem_code: int,
) -> int:
    sd, fd = (rows, cols) if layout == LAYOUT_COL_MAJOR else (cols, rows)
    if ld < max(1, sd):
        return ld_code
    capacity = buffer.size // width
    if ofst < 0 or ofst + (fd - 1) * ld + sd > capacity:
        return mem_code
    return status.SUCCESS


def _first_error(*codes: int) -> int:
    for code in codes:
        if code != status.SUCCESS:
            return code
    return status.SUCCESS


# =====================================================================
# Routines
# =====================================================================

class BlastRoutines:
    """
    BLAS routines for one scalar kind on one context.
    
    Args:
        kind: Element type the routines operate on
        context: Context whose device the buffers live on
    """
    
    def __init__(self, kind: ScalarKind, context: Context):
        self.kind = kind
        self.context = context
        self.dtype = kind.torch_dtype
        self.width = kind.entry_width
    
    def __repr__(self) -> str:
        return f"<BlastRoutines {self.kind.c_name} on {self.context.device}>"
    
    # -----------------------------------------------------------------
    # helpers
    # -----------------------------------------------------------------
    
    def _run(self, queue: CommandQueue, body: Callable[[], None]) -> int:
        if self.kind is ScalarKind.DOUBLE and not self.context.supports_double:
            return status.K_NO_DOUBLE_PRECISION
        try:
            with queue.submit():
                body()
        except PlatformError as e:
            return e.code
        except RuntimeError:
            return status.K_KERNEL_RUN_ERROR
        return status.SUCCESS
    
    def _vec(self, buffer: Buffer, n: int, ofst: int, inc: int) -> torch.Tensor:
        return buffer.typed(self.dtype).as_strided((n,), (inc,), ofst)
    
    def _mat(
        self, layout: int, trans: int, rows: int, cols: int,
        buffer: Buffer, ofst: int, ld: int,
    ) -> torch.Tensor:
        if layout == LAYOUT_COL_MAJOR:
            stored = buffer.typed(self.dtype).as_strided((rows, cols), (1, ld), ofst)
        else:
            stored = buffer.typed(self.dtype).as_strided((rows, cols), (ld, 1), ofst)
        return stored.T if trans == TRANSPOSE_YES else stored
    
    def _vector_args(self, n, x, ofst_x, inc_x, y=None, ofst_y=0, inc_y=1) -> int:
        if n < 1:
            return status.K_INVALID_DIMENSION
        codes = [_check_vector(n, x, ofst_x, inc_x, self.width,
                               status.K_INVALID_INCREMENT_X,
                               status.K_INSUFFICIENT_MEMORY_X)]
        if y is not None:
            codes.append(_check_vector(n, y, ofst_y, inc_y, self.width,
                                       status.K_INVALID_INCREMENT_Y,
                                       status.K_INSUFFICIENT_MEMORY_Y))
        return _first_error(*codes)
    
    # -----------------------------------------------------------------
    # level 1
    # -----------------------------------------------------------------
    
    def swap(self, n, x, ofst_x, inc_x, y, ofst_y, inc_y, queue) -> int:
        code = self._vector_args(n, x, ofst_x, inc_x, y, ofst_y, inc_y)
        if code != status.SUCCESS:
            return code
        
        def body():
            xs = self._vec(x, n, ofst_x, inc_x)
            ys = self._vec(y, n, ofst_y, inc_y)
            tmp = xs.clone()
            xs.copy_(ys)
            ys.copy_(tmp)
        return self._run(queue, body)
    
    def copy(self, n, x, ofst_x, inc_x, y, ofst_y, inc_y, queue) -> int:
        code = self._vector_args(n, x, ofst_x, inc_x, y, ofst_y, inc_y)
        if code != status.SUCCESS:
            return code
        
        def body():
            self._vec(y, n, ofst_y, inc_y).copy_(self._vec(x, n, ofst_x, inc_x).clone())
        return self._run(queue, body)
    
    def scal(self, n, alpha, x, ofst_x, inc_x, queue) -> int:
        code = self._vector_args(n, x, ofst_x, inc_x)
        if code != status.SUCCESS:
            return code
        return self._run(queue, lambda: self._vec(x, n, ofst_x, inc_x).mul_(alpha))
    
    def axpy(self, n, alpha, x, ofst_x, inc_x, y, ofst_y, inc_y, queue) -> int:
        code = self._vector_args(n, x, ofst_x, inc_x, y, ofst_y, inc_y)
        if code != status.SUCCESS:
            return code
        
        def body():
            xs = self._vec(x, n, ofst_x, inc_x).clone()
            self._vec(y, n, ofst_y, inc_y).add_(xs, alpha=alpha)
        return self._run(queue, body)
    
    def _reduce(self, n, result, ofst_r, x, ofst_x, inc_x, queue, fn,
                y=None, ofst_y=0, inc_y=1, index=False) -> int:
        width = INDEX_WIDTH if index else self.width
        code = _first_error(
            self._vector_args(n, x, ofst_x, inc_x, y, ofst_y, inc_y),
            _check_result(result, ofst_r, width),
        )
        if code != status.SUCCESS:
            return code
        out_dtype = torch.int32 if index else self.dtype
        
        def body():
            xs = self._vec(x, n, ofst_x, inc_x)
            value = fn(xs) if y is None else fn(xs, self._vec(y, n, ofst_y, inc_y))
            result.typed(out_dtype)[ofst_r].copy_(value.to(out_dtype))
        return self._run(queue, body)
    
    def dot(self, n, result, ofst_r, x, ofst_x, inc_x, y, ofst_y, inc_y, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            torch.dot, y, ofst_y, inc_y)
    
    def nrm2(self, n, result, ofst_r, x, ofst_x, inc_x, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            torch.linalg.vector_norm)
    
    def asum(self, n, result, ofst_r, x, ofst_x, inc_x, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            _abs_sum)
    
    def sum(self, n, result, ofst_r, x, ofst_x, inc_x, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            torch.sum)
    
    def iamax(self, n, result, ofst_r, x, ofst_x, inc_x, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            _index_of_max_abs, index=True)
    
    def imax(self, n, result, ofst_r, x, ofst_x, inc_x, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            _index_of_max, index=True)
    
    def imin(self, n, result, ofst_r, x, ofst_x, inc_x, queue) -> int:
        return self._reduce(n, result, ofst_r, x, ofst_x, inc_x, queue,
                            _index_of_min, index=True)
    
    # -----------------------------------------------------------------
    # level 2
    # -----------------------------------------------------------------
    
    def gemv(self, layout, trans, m, n, alpha, a, ofst_a, ld_a,
             x, ofst_x, inc_x, beta, y, ofst_y, inc_y, queue) -> int:
        """y = alpha * op(A) * x + beta * y, with A stored m x n."""
        if layout not in _LAYOUTS or trans not in _TRANSPOSES:
            return status.K_NOT_IMPLEMENTED
        if m < 1 or n < 1:
            return status.K_INVALID_DIMENSION
        x_len, y_len = (n, m) if trans == TRANSPOSE_NO else (m, n)
        code = _first_error(
            _check_matrix(layout, m, n, a, ofst_a, ld_a, self.width,
                          status.K_INVALID_LEAD_DIM_A, status.K_INSUFFICIENT_MEMORY_A),
            _check_vector(x_len, x, ofst_x, inc_x, self.width,
                          status.K_INVALID_INCREMENT_X, status.K_INSUFFICIENT_MEMORY_X),
            _check_vector(y_len, y, ofst_y, inc_y, self.width,
                          status.K_INVALID_INCREMENT_Y, status.K_INSUFFICIENT_MEMORY_Y),
        )
        if code != status.SUCCESS:
            return code
        
        def body():
            av = self._mat(layout, trans, m, n, a, ofst_a, ld_a)
            xs = self._vec(x, x_len, ofst_x, inc_x)
            ys = self._vec(y, y_len, ofst_y, inc_y)
            ys.copy_(torch.addmv(ys, av, xs, beta=beta, alpha=alpha))
        return self._run(queue, body)
    
    def ger(self, layout, m, n, alpha, x, ofst_x, inc_x, y, ofst_y, inc_y,
            a, ofst_a, ld_a, queue) -> int:
        """A += alpha * x * y^T, with A stored m x n."""
        if layout not in _LAYOUTS:
            return status.K_NOT_IMPLEMENTED
        if m < 1 or n < 1:
            return status.K_INVALID_DIMENSION
        code = _first_error(
            _check_vector(m, x, ofst_x, inc_x, self.width,
                          status.K_INVALID_INCREMENT_X, status.K_INSUFFICIENT_MEMORY_X),
            _check_vector(n, y, ofst_y, inc_y, self.width,
                          status.K_INVALID_INCREMENT_Y, status.K_INSUFFICIENT_MEMORY_Y),
            _check_matrix(layout, m, n, a, ofst_a, ld_a, self.width,
                          status.K_INVALID_LEAD_DIM_A, status.K_INSUFFICIENT_MEMORY_A),
        )
        if code != status.SUCCESS:
            return code
        
        def body():
            av = self._mat(layout, TRANSPOSE_NO, m, n, a, ofst_a, ld_a)
            xs = self._vec(x, m, ofst_x, inc_x)
            ys = self._vec(y, n, ofst_y, inc_y)
            av.copy_(torch.addr(av, xs, ys, alpha=alpha))
        return self._run(queue, body)
    
    # -----------------------------------------------------------------
    # level 3
    # -----------------------------------------------------------------
    
    def gemm(self, layout, trans_a, trans_b, m, n, k, alpha, a, ofst_a, ld_a,
             b, ofst_b, ld_b, beta, c, ofst_c, ld_c, queue) -> int:
        """C = alpha * op(A) * op(B) + beta * C, with C m x n and k inner."""
        if layout not in _LAYOUTS or trans_a not in _TRANSPOSES or trans_b not in _TRANSPOSES:
            return status.K_NOT_IMPLEMENTED
        if m < 1 or n < 1 or k < 1:
            return status.K_INVALID_DIMENSION
        a_rows, a_cols = (m, k) if trans_a == TRANSPOSE_NO else (k, m)
        b_rows, b_cols = (k, n) if trans_b == TRANSPOSE_NO else (n, k)
        code = _first_error(
            _check_matrix(layout, a_rows, a_cols, a, ofst_a, ld_a, self.width,
                          status.K_INVALID_LEAD_DIM_A, status.K_INSUFFICIENT_MEMORY_A),
            _check_matrix(layout, b_rows, b_cols, b, ofst_b, ld_b, self.width,
                          status.K_INVALID_LEAD_DIM_B, status.K_INSUFFICIENT_MEMORY_B),
            _check_matrix(layout, m, n, c, ofst_c, ld_c, self.width,
                          status.K_INVALID_LEAD_DIM_C, status.K_INSUFFICIENT_MEMORY_C),
        )
        if code != status.SUCCESS:
            return code
        
        def body():
            av = self._mat(layout, trans_a, a_rows, a_cols, a, ofst_a, ld_a)
            bv = self._mat(layout, trans_b, b_rows, b_cols, b, ofst_b, ld_b)
            cv = self._mat(layout, TRANSPOSE_NO, m, n, c, ofst_c, ld_c)
            cv.copy_(torch.addmm(cv, av, bv, beta=beta, alpha=alpha))
        return self._run(queue, body)


# =====================================================================
# Reductions
# =====================================================================

def _abs_sum(xs: torch.Tensor) -> torch.Tensor:
    return xs.abs().sum()


def _index_of_max_abs(xs: torch.Tensor) -> torch.Tensor:
    return torch.argmax(xs.abs())


def _index_of_max(xs: torch.Tensor) -> torch.Tensor:
    return torch.argmax(xs)


def _index_of_min(xs: torch.Tensor) -> torch.Tensor:
    return torch.argmin(xs)


# =====================================================================
# Per-context cache
# =====================================================================

_ROUTINES: dict[tuple[ScalarKind, Context], BlastRoutines] = {}


def routines_for(kind: ScalarKind, context: Context) -> BlastRoutines:
    """Get the (cached) routines for a scalar kind on a context."""
    key = (kind, context)
    routines = _ROUTINES.get(key)
    if routines is None:
        routines = BlastRoutines(kind, context)
        _ROUTINES[key] = routines
    return routines


def clear_cache() -> None:
    """Drop every cached routine set so later factories rebuild them."""
    _ROUTINES.clear()
