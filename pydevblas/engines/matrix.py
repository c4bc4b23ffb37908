"""
General matrix engine: BLAS operations on GE matrices.

swap, copy, scal and axpy only exist in the backend as 1-D strided
routines, so a matrix operation is decomposed by geometry:

    - same layout, both packed with equal line lengths: one call over
      all m*n entries
    - same layout otherwise: one call per line, sd entries each
    - different layouts: line j of B (stride 1) is matched with the
      entries j, j + ld_a, j + 2*ld_a, ... of A, one call per line of B

gemv, ger and gemm take a layout flag and leading dimensions directly.
For gemm an operand stored in the other layout than C is passed as the
transpose of its storage, which moves no data.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from pydevblas.core.exceptions import DimensionError, UnsupportedOperationError
from pydevblas.core.types import Layout
from pydevblas.core.validation import check_same_shape
from pydevblas.backend import blast
from pydevblas.backend.blast import BlastRoutines
from pydevblas.backend.runtime import CommandQueue, Program, enqueue_fill
from pydevblas.backend.status import raise_for_status
from pydevblas.block.accessor import INDEX_DTYPE, TypedAccessor
from pydevblas.block.matrix import GEMatrix, TRMatrix
from pydevblas.block.vector import Vector

# (n, offset_a, inc_a, offset_b, inc_b) -> status
LineCall = Callable[[int, int, int, int, int], int]


def layout_flag(layout: Layout) -> int:
    if layout is Layout.COLUMN_MAJOR:
        return blast.LAYOUT_COL_MAJOR
    return blast.LAYOUT_ROW_MAJOR


def transpose_flag(operand: GEMatrix, result: GEMatrix) -> int:
    """TRANSPOSE_YES when operand is stored in the other layout than result."""
    if operand.layout is result.layout:
        return blast.TRANSPOSE_NO
    return blast.TRANSPOSE_YES


class BlastGEEngine:
    """
    General matrix operations for one scalar kind.
    
    Args:
        queue: Queue every operation is issued on
        routines: BLAS routines of the engine's scalar kind
        program: Built program providing the 'equals_matrix' kernel
        accessor: Accessor for per-call equality flags and read-back
    """
    
    def __init__(
        self,
        queue: CommandQueue,
        routines: BlastRoutines,
        program: Program,
        accessor: TypedAccessor,
    ):
        self._queue = queue
        self._routines = routines
        self._accessor = accessor
        self._program = program
        # fails here when the program lacks the kernel
        program.kernel('equals_matrix')
    
    def _check(self, code: int, routine: str, **details: Any) -> None:
        raise_for_status(code, {'routine': routine, **details})
    
    # =====================================================================
    # Layout-aware decomposition
    # =====================================================================
    
    def _pairwise(self, routine: str, a: GEMatrix, b: GEMatrix, call: LineCall) -> None:
        """Run a two-operand 1-D routine over all entries of a and b."""
        if a.count == 0:
            return
        if a.layout is b.layout:
            if a.sd == b.sd == a.ld == b.ld:
                self._check(call(a.count, a.offset, 1, b.offset, 1), routine)
            else:
                for j in range(a.fd):
                    code = call(a.sd, a.offset + a.ld * j, 1, b.offset + b.ld * j, 1)
                    self._check(code, routine, line=j)
        else:
            for j in range(b.fd):
                code = call(b.sd, a.offset + j, a.ld, b.offset + b.ld * j, 1)
                self._check(code, routine, line=j)
    
    def swap(self, a: GEMatrix, b: GEMatrix) -> GEMatrix:
        check_same_shape(a, b, ("a", "b"))
        queue, swap = self._queue, self._routines.swap
        self._pairwise('swap', a, b, lambda n, oa, ia, ob, ib: swap(
            n, a.buffer, oa, ia, b.buffer, ob, ib, queue,
        ))
        return a
    
    def copy(self, a: GEMatrix, b: GEMatrix) -> GEMatrix:
        check_same_shape(a, b, ("a", "b"))
        queue, copy = self._queue, self._routines.copy
        self._pairwise('copy', a, b, lambda n, oa, ia, ob, ib: copy(
            n, a.buffer, oa, ia, b.buffer, ob, ib, queue,
        ))
        return b
    
    def axpy(self, alpha: float, a: GEMatrix, b: GEMatrix) -> GEMatrix:
        check_same_shape(a, b, ("a", "b"))
        queue, axpy = self._queue, self._routines.axpy
        self._pairwise('axpy', a, b, lambda n, oa, ia, ob, ib: axpy(
            n, alpha, a.buffer, oa, ia, b.buffer, ob, ib, queue,
        ))
        return b
    
    def scal(self, alpha: float, a: GEMatrix) -> GEMatrix:
        if a.count == 0:
            return a
        if a.packed:
            code = self._routines.scal(a.count, alpha, a.buffer, a.offset, 1, self._queue)
            self._check(code, 'scal')
        else:
            for j in range(a.fd):
                code = self._routines.scal(
                    a.sd, alpha, a.buffer, a.offset + a.ld * j, 1, self._queue,
                )
                self._check(code, 'scal', line=j)
        return a
    
    # =====================================================================
    # Level 2
    # =====================================================================
    
    def mv(self, alpha: float, a: GEMatrix, x: Vector, beta: float, y: Vector) -> Vector:
        """y = alpha * a * x + beta * y."""
        if a.ncols != x.dim or a.mrows != y.dim:
            raise DimensionError(
                f"Inconsistent dimensions for mv: a={a.mrows}x{a.ncols}, "
                f"x={x.dim}, y={y.dim}"
            )
        if y.dim == 0:
            return y
        if x.dim == 0:
            return y.engine.scal(beta, y)
        code = self._routines.gemv(
            layout_flag(a.layout), blast.TRANSPOSE_NO, a.mrows, a.ncols,
            alpha, a.buffer, a.offset, a.ld,
            x.buffer, x.offset, x.stride,
            beta, y.buffer, y.offset, y.stride, self._queue,
        )
        self._check(code, 'gemv')
        return y
    
    def mv_inplace(self, alpha: float, a: GEMatrix, x: Vector) -> Vector:
        raise UnsupportedOperationError(
            "In-place mv is not supported for general matrices; pass an output vector."
        )
    
    def rank(self, alpha: float, x: Vector, y: Vector, a: GEMatrix) -> GEMatrix:
        """a += alpha * x * y^T."""
        if a.mrows != x.dim or a.ncols != y.dim:
            raise DimensionError(
                f"Inconsistent dimensions for rank: a={a.mrows}x{a.ncols}, "
                f"x={x.dim}, y={y.dim}"
            )
        if a.count == 0:
            return a
        code = self._routines.ger(
            layout_flag(a.layout), a.mrows, a.ncols, alpha,
            x.buffer, x.offset, x.stride,
            y.buffer, y.offset, y.stride,
            a.buffer, a.offset, a.ld, self._queue,
        )
        self._check(code, 'ger')
        return a
    
    # =====================================================================
    # Level 3
    # =====================================================================
    
    def mm(self, alpha: float, a: GEMatrix, b: GEMatrix, beta: float, c: GEMatrix) -> GEMatrix:
        """c = alpha * a * b + beta * c."""
        if a.ncols != b.mrows or a.mrows != c.mrows or b.ncols != c.ncols:
            raise DimensionError(
                f"Inconsistent dimensions for mm: a={a.mrows}x{a.ncols}, "
                f"b={b.mrows}x{b.ncols}, c={c.mrows}x{c.ncols}"
            )
        if c.count == 0:
            return c
        if a.ncols == 0:
            return self.scal(beta, c)
        code = self._routines.gemm(
            layout_flag(c.layout), transpose_flag(a, c), transpose_flag(b, c),
            a.mrows, b.ncols, a.ncols,
            alpha, a.buffer, a.offset, a.ld,
            b.buffer, b.offset, b.ld,
            beta, c.buffer, c.offset, c.ld, self._queue,
        )
        self._check(code, 'gemm')
        return c
    
    def mm_inplace(self, alpha: float, a: Any, b: Any, left: bool = False) -> Any:
        """
        In-place product absorbed by one operand.
        
        With left set, b absorbs the product, so the request is handed to
        b's engine; general matrices cannot absorb it either way.
        """
        if left:
            return b.engine.mm_inplace(alpha, b, a, False)
        raise UnsupportedOperationError(
            "In-place mm is not supported for general matrices; pass an output matrix."
        )
    
    # =====================================================================
    # Equality
    # =====================================================================
    
    def equals_block(self, a: GEMatrix, b: GEMatrix) -> bool:
        """Entry-wise equality, independent of offsets, ld and layout."""
        if a.count == 0:
            return b.count == 0
        if a.shape != b.shape:
            return False
        if a.layout is b.layout:
            flag = self._accessor.create_index_source()
            try:
                enqueue_fill(self._queue, flag, np.zeros(1, dtype=INDEX_DTYPE))
                kernel = self._program.kernel('equals_matrix').set_args(
                    flag, a.buffer, a.offset, a.ld, b.buffer, b.offset, b.ld,
                )
                code = self._queue.enqueue_nd_range(kernel, (a.sd, a.fd))
                self._check(code, 'equals_matrix')
                return self._accessor.read_index(flag) == 0
            finally:
                flag.release()
        navigator = a.navigator
        return all(
            navigator.stripe(a, j) == navigator.stripe(b, j)
            for j in range(a.fd)
        )
    
    def equals_triangle(self, a: TRMatrix, b: TRMatrix) -> bool:
        """Equality of the stored entries of two triangles of the same kind."""
        if a.n != b.n or a.uplo is not b.uplo or a.diag is not b.diag:
            return False
        for j in range(a.n):
            if a.segment(j, along_rows=False)[1] <= 0:
                continue
            if a.col(j) != b.col(j):
                return False
        return True
    
    def release(self) -> bool:
        """Nothing is held between calls; kept for the factory's release."""
        return True
    
    def __repr__(self) -> str:
        return f"<BlastGEEngine {self._routines.kind.c_name}>"

