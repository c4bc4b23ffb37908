"""
Core protocols for pydevblas.

These define the structural interfaces between layers: block objects,
order navigators, data accessors, engines and factories. We use Protocol
(structural typing) rather than ABC (nominal typing) so that each scalar
kind's concrete classes only need to provide the methods, not inherit.

Design Principles:
    - Minimal contracts: prescribe only what the dispatch code relies on
    - Engines are bound to objects at construction, never looked up by
      inspecting the scalar kind at call time
"""

from __future__ import annotations

from typing import Protocol, Any, runtime_checkable

from pydevblas.core.types import Layout, ScalarKind


@runtime_checkable
class Block(Protocol):
    """
    Anything that views a strided region of a device buffer.
    
    Vectors report their element stride; matrices report their leading
    dimension.
    """
    
    @property
    def buffer(self) -> Any:
        """The backing device buffer."""
        ...
    
    @property
    def offset(self) -> int:
        """Element offset of the first entry."""
        ...
    
    @property
    def stride(self) -> int:
        """Element stride (vectors) or leading dimension (matrices)."""
        ...
    
    @property
    def count(self) -> int:
        """Number of logical entries."""
        ...
    
    def release(self) -> bool:
        """Free the buffer if this object owns it. Idempotent."""
        ...


@runtime_checkable
class OrderNavigator(Protocol):
    """
    Layout strategy converting (row, col) coordinates to buffer indices.
    
    sd is the length of one contiguous line, fd is the number of lines.
    """
    
    layout: Layout
    
    def sd(self, m: int, n: int) -> int:
        ...
    
    def fd(self, m: int, n: int) -> int:
        ...
    
    def index(self, offset: int, ld: int, i: int, j: int) -> int:
        ...
    
    def stripe(self, a: Any, j: int) -> Any:
        """Line j of matrix a as a vector view."""
        ...


@runtime_checkable
class DataAccessor(Protocol):
    """Per scalar kind allocation, fill and host bridging."""
    
    @property
    def kind(self) -> ScalarKind:
        ...
    
    @property
    def entry_width(self) -> int:
        ...
    
    def count(self, buffer: Any) -> int:
        ...
    
    def create_data_source(self, n: int) -> Any:
        ...
    
    def initialize(self, buffer: Any, value: float | None = None) -> Any:
        ...


@runtime_checkable
class VectorEngine(Protocol):
    """BLAS level-1 operations on vectors of one scalar kind."""
    
    def equals_block(self, x: Any, y: Any) -> bool:
        ...
    
    def copy(self, x: Any, y: Any) -> Any:
        ...
    
    def axpy(self, alpha: float, x: Any, y: Any) -> Any:
        ...
    
    def dot(self, x: Any, y: Any) -> float:
        ...
    
    def release(self) -> bool:
        ...


@runtime_checkable
class MatrixEngine(Protocol):
    """BLAS level-1/2/3 operations on general matrices of one scalar kind."""
    
    def equals_block(self, a: Any, b: Any) -> bool:
        ...
    
    def copy(self, a: Any, b: Any) -> Any:
        ...
    
    def mv(self, alpha: float, a: Any, x: Any, beta: float, y: Any) -> Any:
        ...
    
    def mm(self, alpha: float, a: Any, b: Any, beta: float, c: Any) -> Any:
        ...
    
    def release(self) -> bool:
        ...


@runtime_checkable
class Factory(Protocol):
    """Creates device objects of one scalar kind and owns their engines."""
    
    @property
    def kind(self) -> ScalarKind:
        ...
    
    def create_vector(self, n: int, init: bool = True) -> Any:
        ...
    
    def create_ge(self, m: int, n: int, layout: Layout = ..., init: bool = True) -> Any:
        ...
    
    def release(self) -> bool:
        ...
