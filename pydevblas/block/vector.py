"""
Device vector: a strided view of a device buffer.

A Vector is (handle, dim, offset, stride). The handle either owns the
buffer (objects returned by a factory) or borrows it (views such as
subvectors, matrix rows and columns). Arithmetic goes through the
vector engine bound at construction.

Single element access is refused: use transfer() or mapped() instead.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import numpy as np

from pydevblas.core.exceptions import (
    DimensionError,
    InefficientOperationError,
    InvalidStrideError,
)
from pydevblas.core.validation import (
    check_non_negative,
    check_positive,
    check_range,
)
from pydevblas.backend.runtime import (
    MAP_READ,
    MAP_WRITE,
    MAP_WRITE_INVALIDATE_REGION,
    MappedRegion,
    enqueue_map_buffer,
    enqueue_unmap,
)
from pydevblas.block.ownership import OwnedBuffer, BorrowedBuffer

_ENTRY_MESSAGE = (
    "Accessing single entries of a device vector needs one device round trip "
    "per entry. Transfer the vector to the host or use mapped() instead."
)


class Vector:
    """
    Strided device vector.
    
    Args:
        factory: Factory whose accessor and vector engine the vector uses
        handle: OwnedBuffer or BorrowedBuffer
        n: Number of entries
        offset: Element offset of entry 0
        stride: Element distance between consecutive entries
        
    Raises:
        DimensionError: If the entries do not fit in the buffer
        ValidationError: If stride is not positive
    """
    
    def __init__(
        self,
        factory: Any,
        handle: OwnedBuffer | BorrowedBuffer,
        n: int,
        offset: int = 0,
        stride: int = 1,
    ):
        check_non_negative(n, "n")
        check_non_negative(offset, "offset")
        check_positive(stride, "stride")
        accessor = factory.data_accessor
        capacity = accessor.count(handle.buffer)
        if n > 0 and offset + (n - 1) * stride >= capacity:
            raise DimensionError(
                f"Vector of dim {n}, offset {offset} and stride {stride} "
                f"does not fit in a buffer of {capacity} entries"
            )
        self._factory = factory
        self._accessor = accessor
        self._engine = factory.vector_engine
        self._handle = handle
        self._n = n
        self._offset = offset
        self._stride = stride
    
    # =====================================================================
    # Geometry
    # =====================================================================
    
    @property
    def factory(self) -> Any:
        return self._factory
    
    @property
    def accessor(self) -> Any:
        return self._accessor
    
    @property
    def engine(self) -> Any:
        return self._engine
    
    @property
    def kind(self):
        return self._accessor.kind
    
    @property
    def handle(self) -> OwnedBuffer | BorrowedBuffer:
        return self._handle
    
    @property
    def buffer(self):
        return self._handle.buffer
    
    @property
    def master(self) -> bool:
        return self._handle.master
    
    @property
    def dim(self) -> int:
        return self._n
    
    @property
    def count(self) -> int:
        return self._n
    
    @property
    def offset(self) -> int:
        return self._offset
    
    @property
    def stride(self) -> int:
        return self._stride
    
    def __len__(self) -> int:
        return self._n
    
    def subvector(self, k: int, l: int) -> Vector:
        """View of entries k .. k+l-1, sharing the buffer and stride."""
        check_range(k, l, self._n, "subvector")
        return Vector(
            self._factory,
            self._handle.borrow(),
            l,
            self._offset + k * self._stride,
            self._stride,
        )
    
    # =====================================================================
    # Lifecycle
    # =====================================================================
    
    def release(self) -> bool:
        """Free the buffer if this vector owns it. Idempotent."""
        return self._handle.release()
    
    def __enter__(self) -> Vector:
        return self
    
    def __exit__(self, *exc: Any) -> None:
        self.release()
    
    def raw(self, factory: Any = None) -> Vector:
        """New uninitialised vector of the same dimension."""
        return (factory or self._factory).create_vector(self._n, init=False)
    
    def zero(self, factory: Any = None) -> Vector:
        """New zero vector of the same dimension."""
        return (factory or self._factory).create_vector(self._n, init=True)
    
    def identity(self) -> Vector:
        """The empty vector of this vector's factory."""
        return self._factory.create_vector(0)
    
    def fold(self) -> float:
        return self._engine.sum(self)
    
    # =====================================================================
    # Equality
    # =====================================================================
    
    def __eq__(self, other: Any) -> bool:
        if other is None:
            return False
        if self is other:
            return True
        if (
            isinstance(other, Vector)
            and self._accessor.compatible(other._accessor)
            and self._n == other._n
        ):
            return self._engine.equals_block(self, other)
        return False
    
    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)
    
    def __hash__(self) -> int:
        return hash((Vector, self._n))
    
    # =====================================================================
    # Element access
    # =====================================================================
    
    def set(self, value: float) -> Vector:
        """
        Fill every entry with value.
        
        Raises:
            InvalidStrideError: Unless the vector covers its whole buffer
                contiguously from element zero
        """
        if self._n == 0:
            return self
        if (
            self._offset == 0
            and self._stride == 1
            and self._n == self._accessor.count(self.buffer)
        ):
            self._accessor.initialize(self.buffer, value)
            return self
        raise InvalidStrideError(
            f"In-place set needs offset 0 and stride 1 over the whole buffer, "
            f"got offset {self._offset} and stride {self._stride}. "
            f"Use scal or transfer instead."
        )
    
    def entry(self, i: int) -> float:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def set_entry(self, i: int, value: float) -> Vector:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def alter(self, i: int, fn: Any) -> Vector:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def __getitem__(self, i: Any) -> float:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    def __setitem__(self, i: Any, value: Any) -> None:
        raise InefficientOperationError(_ENTRY_MESSAGE)
    
    # =====================================================================
    # Host bridge
    # =====================================================================
    
    def map_memory(self, flags: str = MAP_READ) -> MappedRegion:
        """Map the span of buffer bytes this vector touches."""
        width = self._accessor.entry_width
        span = (self._n - 1) * self._stride + 1 if self._n > 0 else 0
        return enqueue_map_buffer(
            self._accessor.queue, self.buffer, self._offset * width, span * width, flags,
        )
    
    def unmap(self, mapped: MappedRegion) -> None:
        enqueue_unmap(self._accessor.queue, self.buffer, mapped)
    
    @contextmanager
    def mapped(self, flags: str = MAP_READ) -> Iterator[np.ndarray]:
        """
        Map the vector and yield its entries as a strided numpy view.
        
        Writes to the view reach the device when the block exits, for
        writable flags. The mapping is released on every exit path.
        """
        region = self.map_memory(flags)
        try:
            yield region.data.view(self._accessor.entry_type)[::self._stride]
        finally:
            self.unmap(region)
    
    def read_into(self, host: np.ndarray) -> np.ndarray:
        """Copy the entries into a host vector of the same dimension."""
        if host.shape != (self._n,):
            raise DimensionError(f"host: expected shape ({self._n},), got {host.shape}")
        if self._n > 0:
            with self.mapped(MAP_READ) as entries:
                host[:] = entries
        return host
    
    def write_from(self, host: np.ndarray) -> Vector:
        """Copy a host vector of the same dimension into the entries."""
        if np.shape(host) != (self._n,):
            raise DimensionError(f"host: expected shape ({self._n},), got {np.shape(host)}")
        if self._n > 0:
            flags = MAP_WRITE_INVALIDATE_REGION if self._stride == 1 else MAP_WRITE
            with self.mapped(flags) as entries:
                entries[:] = host
        return self
    
    def host(self) -> np.ndarray:
        """Host copy of the entries."""
        out = self._accessor.host_factory.create_vector(self._n, init=False)
        return self.read_into(out)
    
    native = host
    
    def __repr__(self) -> str:
        return (
            f"<Vector {self.kind.c_name} dim={self._n} offset={self._offset} "
            f"stride={self._stride} master={self.master}>"
        )
