"""
Data accessor: allocation, fill and scalar read-back for one scalar kind.

Allocations and fills are issued on the accessor's queue, so any command
issued on the same queue afterwards sees the initialised buffer.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from pydevblas.core.types import ScalarKind
from pydevblas.backend.runtime import (
    Buffer,
    CommandQueue,
    Context,
    create_buffer,
    enqueue_fill,
    enqueue_read,
)
from pydevblas.block.host import HostFactory

INDEX_DTYPE = np.dtype(np.int32)


class TypedAccessor:
    """
    Allocates and initialises device buffers of one element type.
    
    Args:
        context: Context buffers are allocated on
        queue: Queue fills and reads are issued on
        kind: Element type
        host_factory: Host staging factory (defaults to HostFactory(kind))
    """
    
    def __init__(
        self,
        context: Context,
        queue: CommandQueue,
        kind: ScalarKind,
        host_factory: HostFactory | None = None,
    ):
        self.context = context
        self.queue = queue
        self._kind = kind
        self._host_factory = host_factory if host_factory is not None else HostFactory(kind)
    
    @property
    def kind(self) -> ScalarKind:
        return self._kind
    
    @property
    def entry_type(self) -> np.dtype:
        return self._kind.numpy_dtype
    
    @property
    def entry_width(self) -> int:
        return self._kind.entry_width
    
    @property
    def host_factory(self) -> HostFactory:
        return self._host_factory
    
    def count(self, buffer: Buffer) -> int:
        """Capacity of buffer in elements."""
        return buffer.size // self.entry_width
    
    def create_data_source(self, n: int) -> Buffer:
        """Allocate room for n elements (at least one)."""
        return create_buffer(self.context, max(1, n) * self.entry_width)
    
    def create_index_source(self) -> Buffer:
        """Allocate room for one int32 index result."""
        return create_buffer(self.context, INDEX_DTYPE.itemsize)
    
    def initialize(self, buffer: Buffer, value: float | None = None) -> Buffer:
        """Fill the whole buffer with value (zero when omitted)."""
        pattern = np.zeros(1, dtype=self.entry_type)
        if value is not None:
            pattern[0] = value
        return enqueue_fill(self.queue, buffer, pattern)
    
    def wrap_prim(self, value: Any) -> np.generic:
        """Host scalar converted to this accessor's element type."""
        return self.entry_type.type(value)
    
    def read_scalar(self, buffer: Buffer) -> float:
        """Blocking read of the first element."""
        host = np.empty(1, dtype=self.entry_type)
        enqueue_read(self.queue, buffer, host)
        return float(host[0])
    
    def read_index(self, buffer: Buffer) -> int:
        """Blocking read of the first int32 of buffer."""
        host = np.empty(1, dtype=INDEX_DTYPE)
        enqueue_read(self.queue, buffer, host)
        return int(host[0])
    
    def compatible(self, other: Any) -> bool:
        """Same element type on the same context."""
        if other is self:
            return True
        return (
            isinstance(other, TypedAccessor)
            and other.kind is self.kind
            and other.context is self.context
        )
    
    def __repr__(self) -> str:
        return f"<TypedAccessor {self._kind.c_name} on {self.context.device}>"
