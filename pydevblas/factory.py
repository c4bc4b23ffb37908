"""
Factories: one scalar kind bound to an accessor and a pair of engines.

A factory builds the equality program for its kind, takes the BLAS
routines for its context, and hands every object it creates the engines
that operate on it. All work goes through the factory's single queue.
"""

from __future__ import annotations

import warnings
from typing import Any

from pydevblas.core.types import (
    ScalarKind,
    Layout,
    Triangle,
    Diagonal,
    DEFAULT_LAYOUT,
)
from pydevblas.core.validation import check_non_negative
from pydevblas.backend import status
from pydevblas.backend.blast import routines_for, clear_cache
from pydevblas.backend.kernels import EQUALS_SOURCE
from pydevblas.backend.runtime import CommandQueue, build_program
from pydevblas.backend.status import raise_for_status
from pydevblas.block.accessor import TypedAccessor
from pydevblas.block.host import HostFactory
from pydevblas.block.matrix import GEMatrix, TRMatrix
from pydevblas.block.ownership import OwnedBuffer
from pydevblas.block.vector import Vector
from pydevblas.engines.matrix import BlastGEEngine
from pydevblas.engines.vector import BlastVectorEngine


class DeviceFactory:
    """
    Creates device vectors and matrices of one scalar kind.
    
    Args:
        queue: Queue all objects and operations of this factory use
        kind: Element type
        
    Raises:
        BlastError: kNoDoublePrecision if kind is DOUBLE and the device
            has no double precision arithmetic
    """
    
    def __init__(self, queue: CommandQueue, kind: ScalarKind):
        context = queue.context
        if kind is ScalarKind.DOUBLE and not context.supports_double:
            raise_for_status(status.K_NO_DOUBLE_PRECISION, {'device': str(context.info)})
        self._queue = queue
        self._kind = kind
        self._program = build_program(context, EQUALS_SOURCE, f"-DREAL={kind.c_name}")
        self._accessor = TypedAccessor(context, queue, kind, HostFactory(kind))
        routines = routines_for(kind, context)
        self._vector_engine = BlastVectorEngine(queue, routines, self._program, self._accessor)
        self._ge_engine = BlastGEEngine(queue, routines, self._program, self._accessor)
    
    @property
    def kind(self) -> ScalarKind:
        return self._kind
    
    @property
    def context(self):
        return self._queue.context
    
    @property
    def queue(self) -> CommandQueue:
        return self._queue
    
    @property
    def data_accessor(self) -> TypedAccessor:
        return self._accessor
    
    @property
    def vector_engine(self) -> BlastVectorEngine:
        return self._vector_engine
    
    @property
    def ge_engine(self) -> BlastGEEngine:
        return self._ge_engine
    
    def compatible(self, other: Any) -> bool:
        """True if objects of other can be mixed with objects of this factory."""
        accessor = getattr(other, 'data_accessor', getattr(other, 'accessor', None))
        return self._accessor.compatible(accessor)
    
    # =====================================================================
    # Construction
    # =====================================================================
    
    def _allocate(self, n: int, init: bool) -> OwnedBuffer:
        buffer = self._accessor.create_data_source(n)
        if init:
            self._accessor.initialize(buffer)
        return OwnedBuffer(buffer)
    
    def create_vector(self, n: int, init: bool = True) -> Vector:
        """
        Allocate a vector of n entries.
        
        Args:
            n: Number of entries (0 allowed)
            init: Zero-fill the entries
        """
        check_non_negative(n, "n")
        return Vector(self, self._allocate(n, init), n, 0, 1)
    
    def create_ge(
        self,
        m: int,
        n: int,
        layout: Layout = DEFAULT_LAYOUT,
        init: bool = True,
    ) -> GEMatrix:
        """
        Allocate a packed m x n matrix.
        
        Args:
            m: Rows
            n: Columns
            layout: Physical layout
            init: Zero-fill the entries
        """
        check_non_negative(m, "m")
        check_non_negative(n, "n")
        return GEMatrix(self, self._allocate(m * n, init), m, n, 0, 0, layout)
    
    def create_tr(
        self,
        n: int,
        layout: Layout = DEFAULT_LAYOUT,
        uplo: Triangle = Triangle.LOWER,
        diag: Diagonal = Diagonal.NON_UNIT,
        init: bool = True,
    ) -> TRMatrix:
        """Allocate an n x n triangular matrix over a packed square."""
        check_non_negative(n, "n")
        return TRMatrix(self, self._allocate(n * n, init), n, 0, n, layout, uplo, diag)
    
    # =====================================================================
    # Lifecycle
    # =====================================================================
    
    def release(self) -> bool:
        """
        Release the engines and the program, then drop cached routines.
        
        Every resource gets its chance to release; failures are reported
        together as one ResourceWarning.
        """
        failures = []
        try:
            for name, resource in (
                ('vector engine', self._vector_engine),
                ('ge engine', self._ge_engine),
                ('program', self._program),
            ):
                try:
                    resource.release()
                except Exception as e:
                    failures.append(f"{name}: {e}")
        finally:
            clear_cache()
        if failures:
            warnings.warn(
                "Factory release incomplete: " + "; ".join(failures),
                ResourceWarning,
                stacklevel=2,
            )
        return True
    
    def __enter__(self) -> DeviceFactory:
        return self
    
    def __exit__(self, *exc: Any) -> None:
        self.release()
    
    def __repr__(self) -> str:
        return f"<DeviceFactory {self._kind.c_name} on {self.context.device}>"


def float_factory(queue: CommandQueue) -> DeviceFactory:
    """Single precision factory on queue."""
    return DeviceFactory(queue, ScalarKind.SINGLE)


def double_factory(queue: CommandQueue) -> DeviceFactory:
    """Double precision factory on queue."""
    return DeviceFactory(queue, ScalarKind.DOUBLE)


def factory_for(kind: ScalarKind | str, queue: CommandQueue) -> DeviceFactory:
    """
    Factory for a scalar kind given as ScalarKind, 'float' or 'double'.
    
    Raises:
        ValueError: If kind is not a known scalar kind
    """
    if not isinstance(kind, ScalarKind):
        kind = ScalarKind(kind)
    return DeviceFactory(queue, kind)
