"""
Vector engine: BLAS level-1 operations on device vectors.

Every backend status is checked right after the call. Operations on
empty vectors issue nothing and return the additive identity (0.0 for
values, 0 for indices). Scalar results go through a one-element scratch
buffer that is read back synchronously and always released.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from pydevblas.core.exceptions import NotImplementedOperationError
from pydevblas.core.validation import check_range, check_same_dim
from pydevblas.backend.blast import BlastRoutines
from pydevblas.backend.runtime import CommandQueue, Program, enqueue_fill
from pydevblas.backend.status import raise_for_status
from pydevblas.block.accessor import INDEX_DTYPE, TypedAccessor
from pydevblas.block.vector import Vector

_ROTATION_MESSAGE = (
    "{} is not available: the BLAS backend does not provide the rotation family yet."
)


class BlastVectorEngine:
    """
    Vector operations for one scalar kind.
    
    Args:
        queue: Queue every operation is issued on
        routines: BLAS routines of the engine's scalar kind
        program: Built program providing the 'equals_vector' kernel
        accessor: Accessor used for scratch buffers and read-back
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
        program.kernel('equals_vector')
    
    # =====================================================================
    # Helpers
    # =====================================================================
    
    def _check(self, code: int, routine: str, **details: Any) -> None:
        raise_for_status(code, {'routine': routine, **details})
    
    def _scalar(self, routine: str, call: Callable[[Any], int]) -> float:
        result = self._accessor.create_data_source(1)
        try:
            self._check(call(result), routine)
            return self._accessor.read_scalar(result)
        finally:
            result.release()
    
    def _index(self, routine: str, fn: Callable[..., int], x: Vector) -> int:
        if x.dim == 0:
            return 0
        result = self._accessor.create_index_source()
        try:
            code = fn(x.dim, result, 0, x.buffer, x.offset, x.stride, self._queue)
            self._check(code, routine)
            return self._accessor.read_index(result)
        finally:
            result.release()
    
    # =====================================================================
    # Data movement
    # =====================================================================
    
    def swap(self, x: Vector, y: Vector) -> Vector:
        check_same_dim(x, y, ("x", "y"))
        if x.dim > 0:
            code = self._routines.swap(
                x.dim, x.buffer, x.offset, x.stride,
                y.buffer, y.offset, y.stride, self._queue,
            )
            self._check(code, 'swap')
        return x
    
    def copy(self, x: Vector, y: Vector) -> Vector:
        check_same_dim(x, y, ("x", "y"))
        if x.dim > 0:
            code = self._routines.copy(
                x.dim, x.buffer, x.offset, x.stride,
                y.buffer, y.offset, y.stride, self._queue,
            )
            self._check(code, 'copy')
        return y
    
    def subcopy(self, x: Vector, y: Vector, kx: int, lx: int, ky: int) -> Vector:
        """Copy x[kx:kx+lx] into y[ky:ky+lx]."""
        check_range(kx, lx, x.dim, "x")
        check_range(ky, lx, y.dim, "y")
        if lx > 0:
            code = self._routines.copy(
                lx, x.buffer, x.offset + kx * x.stride, x.stride,
                y.buffer, y.offset + ky * y.stride, y.stride, self._queue,
            )
            self._check(code, 'copy', kx=kx, lx=lx, ky=ky)
        return y
    
    # =====================================================================
    # Reductions
    # =====================================================================
    
    def dot(self, x: Vector, y: Vector) -> float:
        check_same_dim(x, y, ("x", "y"))
        if x.dim == 0:
            return 0.0
        return self._scalar('dot', lambda result: self._routines.dot(
            x.dim, result, 0, x.buffer, x.offset, x.stride,
            y.buffer, y.offset, y.stride, self._queue,
        ))
    
    def nrm2(self, x: Vector) -> float:
        if x.dim == 0:
            return 0.0
        return self._scalar('nrm2', lambda result: self._routines.nrm2(
            x.dim, result, 0, x.buffer, x.offset, x.stride, self._queue,
        ))
    
    def asum(self, x: Vector) -> float:
        if x.dim == 0:
            return 0.0
        return self._scalar('asum', lambda result: self._routines.asum(
            x.dim, result, 0, x.buffer, x.offset, x.stride, self._queue,
        ))
    
    def sum(self, x: Vector) -> float:
        if x.dim == 0:
            return 0.0
        return self._scalar('sum', lambda result: self._routines.sum(
            x.dim, result, 0, x.buffer, x.offset, x.stride, self._queue,
        ))
    
    def iamax(self, x: Vector) -> int:
        return self._index('iamax', self._routines.iamax, x)
    
    def imax(self, x: Vector) -> int:
        return self._index('imax', self._routines.imax, x)
    
    def imin(self, x: Vector) -> int:
        return self._index('imin', self._routines.imin, x)
    
    # =====================================================================
    # Updates
    # =====================================================================
    
    def scal(self, alpha: float, x: Vector) -> Vector:
        if x.dim > 0:
            code = self._routines.scal(x.dim, alpha, x.buffer, x.offset, x.stride, self._queue)
            self._check(code, 'scal')
        return x
    
    def axpy(self, alpha: float, x: Vector, y: Vector) -> Vector:
        check_same_dim(x, y, ("x", "y"))
        if x.dim > 0:
            code = self._routines.axpy(
                x.dim, alpha, x.buffer, x.offset, x.stride,
                y.buffer, y.offset, y.stride, self._queue,
            )
            self._check(code, 'axpy')
        return y
    
    # =====================================================================
    # Rotations
    # =====================================================================
    
    def rot(self, x: Vector, y: Vector, c: float, s: float) -> Vector:
        raise NotImplementedOperationError(_ROTATION_MESSAGE.format('rot'))
    
    def rotg(self, abcs: Vector) -> Vector:
        raise NotImplementedOperationError(_ROTATION_MESSAGE.format('rotg'))
    
    def rotm(self, x: Vector, y: Vector, param: Vector) -> Vector:
        raise NotImplementedOperationError(_ROTATION_MESSAGE.format('rotm'))
    
    def rotmg(self, d1d2xy: Vector, param: Vector) -> Vector:
        raise NotImplementedOperationError(_ROTATION_MESSAGE.format('rotmg'))
    
    # =====================================================================
    # Equality
    # =====================================================================
    
    def equals_block(self, x: Vector, y: Vector) -> bool:
        """Entry-wise equality, independent of offsets and strides."""
        if x.dim == 0:
            return y.dim == 0
        if x.dim != y.dim:
            return False
        flag = self._accessor.create_index_source()
        try:
            enqueue_fill(self._queue, flag, np.zeros(1, dtype=INDEX_DTYPE))
            kernel = self._program.kernel('equals_vector').set_args(
                flag, x.buffer, x.offset, x.stride, y.buffer, y.offset, y.stride,
            )
            code = self._queue.enqueue_nd_range(kernel, (x.dim,))
            self._check(code, 'equals_vector')
            return self._accessor.read_index(flag) == 0
        finally:
            flag.release()
    
    def release(self) -> bool:
        """Nothing is held between calls; kept for the factory's release."""
        return True
    
    def __repr__(self) -> str:
        return f"<BlastVectorEngine {self._routines.kind.c_name}>"
