"""
Device runtime: contexts, in-order command queues, buffers, programs.

This is the transport every other layer goes through. Buffers are raw
byte allocations on a torch device and are only given an element type
when a command uses them, exactly like device memory objects. All work
issued through one CommandQueue runs in program order: on CUDA the queue
owns a stream, elsewhere torch executes eagerly in issue order.

Allocation, fill, read and map primitives raise PlatformError directly.
Kernel launches return a status code that the caller must check.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

import numpy as np
import torch

from pydevblas.core.backends.device import DeviceInfo, select_device
from pydevblas.core.exceptions import PlatformError
from pydevblas.backend import status
from pydevblas.backend.status import raise_for_status

# Map flags
MAP_READ = 'read'
MAP_WRITE = 'write'
MAP_WRITE_INVALIDATE_REGION = 'write-invalidate-region'

_MAP_FLAGS = frozenset({MAP_READ, MAP_WRITE, MAP_WRITE_INVALIDATE_REGION})
_WRITABLE_MAP_FLAGS = frozenset({MAP_WRITE, MAP_WRITE_INVALIDATE_REGION})

_REAL_TYPES = {
    'float': torch.float32,
    'double': torch.float64,
}


class Context:
    """
    A device on which buffers are allocated and programs are built.
    
    Attributes:
        info: DeviceInfo the context was created from
        device: The torch.device backing every buffer of this context
    """
    
    def __init__(self, info: DeviceInfo):
        self.info = info
        self.device = info.torch_device()
    
    @property
    def supports_double(self) -> bool:
        return self.info.supports_double
    
    def __repr__(self) -> str:
        return f"<Context {self.info}>"


def create_context(prefer: str = 'auto', device: Any = None) -> Context:
    """
    Create a context on the preferred device.
    
    Args:
        prefer: 'auto' (GPU if available, else CPU), 'cpu' or 'gpu'
        device: Explicit torch device (or device string) overriding prefer
        
    Returns:
        Context bound to the selected device
        
    Raises:
        RuntimeError: If 'gpu' requested but no GPU available
    """
    if device is None:
        return Context(select_device(prefer))
    
    dev = torch.device(device)
    info = DeviceInfo(
        device_type=dev.type,
        device_index=dev.index,
        name=str(dev),
        memory_bytes=None,
    )
    return Context(info)


class CommandQueue:
    """
    In-order command queue on one context.
    
    Commands run in the order they are issued through the same queue.
    No ordering is implied between different queues.
    """
    
    def __init__(self, context: Context):
        self.context = context
        if context.device.type == 'cuda':
            self._stream = torch.cuda.Stream(device=context.device)
        else:
            self._stream = None
    
    @contextmanager
    def submit(self) -> Iterator[None]:
        """Scope torch work onto this queue."""
        if self._stream is None:
            yield
        else:
            with torch.cuda.stream(self._stream):
                yield
    
    def finish(self) -> None:
        """Block until every command issued on this queue has completed."""
        if self._stream is not None:
            self._stream.synchronize()
        elif self.context.device.type == 'mps':
            torch.mps.synchronize()
    
    def enqueue_nd_range(self, kernel: Kernel, work_size: tuple[int, ...]) -> int:
        """
        Launch a kernel over a 1-D or 2-D work size.
        
        Returns:
            status.SUCCESS, or a negative platform status code
        """
        if kernel.args is None:
            return status.CL_INVALID_KERNEL_ARGS
        if len(work_size) not in (1, 2):
            return status.CL_INVALID_WORK_DIMENSION
        if any(w <= 0 for w in work_size):
            return status.CL_INVALID_WORK_GROUP_SIZE
        try:
            with self.submit():
                kernel.fn(kernel.real, tuple(work_size), *kernel.args)
        except PlatformError as e:
            return e.code
        except RuntimeError:
            return status.CL_OUT_OF_RESOURCES
        return status.SUCCESS
    
    def __repr__(self) -> str:
        return f"<CommandQueue on {self.context.device}>"


class Buffer:
    """
    Raw device allocation of `size` bytes.
    
    A buffer has no element type of its own; typed() reinterprets the
    bytes for a command. Using a released buffer is a platform error.
    """
    
    def __init__(self, context: Context, storage: torch.Tensor):
        self.context = context
        self._storage: torch.Tensor | None = storage
        self._size = storage.numel()
    
    @property
    def size(self) -> int:
        """Allocation size in bytes (kept after release)."""
        return self._size
    
    @property
    def released(self) -> bool:
        return self._storage is None
    
    def typed(self, dtype: torch.dtype) -> torch.Tensor:
        """
        1-D view of the whole buffer as elements of dtype.
        
        Raises:
            PlatformError: CL_INVALID_MEM_OBJECT if released,
                CL_INVALID_VALUE if size is not a multiple of the element size
        """
        if self._storage is None:
            raise_for_status(status.CL_INVALID_MEM_OBJECT, {'call': 'typed'})
        width = torch.empty((), dtype=dtype).element_size()
        if self._size % width:
            raise_for_status(status.CL_INVALID_VALUE, {
                'call': 'typed', 'size': self._size, 'width': width,
            })
        return self._storage.view(dtype)
    
    def release(self) -> bool:
        self._storage = None
        return True
    
    def __repr__(self) -> str:
        state = "released" if self.released else f"{self._size} bytes"
        return f"<Buffer {state} on {self.context.device}>"


def create_buffer(context: Context, nbytes: int) -> Buffer:
    """
    Allocate nbytes of uninitialised device memory.
    
    Raises:
        PlatformError: CL_INVALID_BUFFER_SIZE for nbytes <= 0,
            CL_MEM_OBJECT_ALLOCATION_FAILURE if the device is out of memory
    """
    if nbytes <= 0:
        raise_for_status(status.CL_INVALID_BUFFER_SIZE, {'nbytes': nbytes})
    try:
        storage = torch.empty(nbytes, dtype=torch.uint8, device=context.device)
    except RuntimeError as e:
        raise PlatformError(
            f"Platform error: CL_MEM_OBJECT_ALLOCATION_FAILURE ({e}).",
            status.CL_MEM_OBJECT_ALLOCATION_FAILURE,
            'CL_MEM_OBJECT_ALLOCATION_FAILURE',
            {'nbytes': nbytes},
        ) from e
    return Buffer(context, storage)


def enqueue_fill(queue: CommandQueue, buffer: Buffer, pattern: np.ndarray) -> Buffer:
    """
    Repeat a one-element pattern over the whole buffer.
    
    Args:
        queue: Queue to issue the fill on
        buffer: Destination buffer
        pattern: One-element numpy array; its dtype types the fill
    """
    pattern = np.asarray(pattern).reshape(-1)
    if pattern.size != 1:
        raise_for_status(status.CL_INVALID_VALUE, {'call': 'fill', 'pattern': pattern.size})
    dtype = torch.from_numpy(pattern.copy()).dtype
    target = buffer.typed(dtype)
    with queue.submit():
        target.fill_(pattern[0].item())
    return buffer


def enqueue_read(
    queue: CommandQueue,
    buffer: Buffer,
    host: np.ndarray,
    offset: int = 0,
) -> np.ndarray:
    """
    Blocking copy of host.nbytes bytes starting at byte offset into host.
    
    Raises:
        PlatformError: CL_INVALID_VALUE if the region leaves the buffer
    """
    nbytes = host.nbytes
    if offset < 0 or offset + nbytes > buffer.size:
        raise_for_status(status.CL_INVALID_VALUE, {
            'call': 'read', 'offset': offset, 'nbytes': nbytes, 'size': buffer.size,
        })
    raw = buffer.typed(torch.uint8)
    queue.finish()
    host.reshape(-1).view(np.uint8)[:] = raw[offset:offset + nbytes].cpu().numpy()
    return host


@dataclass
class MappedRegion:
    """
    Host-visible copy of a byte range of a buffer.
    
    Attributes:
        buffer: The mapped buffer
        offset: Byte offset of the region
        data: Host bytes (uint8); writable mappings are written back on unmap
        flags: Map flags the region was created with
    """
    buffer: Buffer
    offset: int
    data: np.ndarray | None
    flags: str
    
    @property
    def mapped(self) -> bool:
        return self.data is not None


def enqueue_map_buffer(
    queue: CommandQueue,
    buffer: Buffer,
    offset: int,
    size: int,
    flags: str,
) -> MappedRegion:
    """
    Map a byte range of a buffer into host memory (blocking).
    
    With MAP_WRITE_INVALIDATE_REGION the previous contents are not
    transferred; the caller is expected to overwrite the whole region.
    
    Raises:
        PlatformError: CL_INVALID_VALUE for unknown flags or a region
            outside the buffer, CL_INVALID_MEM_OBJECT if released
    """
    if flags not in _MAP_FLAGS:
        raise_for_status(status.CL_INVALID_VALUE, {'call': 'map', 'flags': flags})
    if offset < 0 or size < 0 or offset + size > buffer.size:
        raise_for_status(status.CL_INVALID_VALUE, {
            'call': 'map', 'offset': offset, 'size': size, 'buffer_size': buffer.size,
        })
    raw = buffer.typed(torch.uint8)
    queue.finish()
    if flags == MAP_WRITE_INVALIDATE_REGION:
        data = np.zeros(size, dtype=np.uint8)
    else:
        data = raw[offset:offset + size].cpu().numpy().copy()
    return MappedRegion(buffer=buffer, offset=offset, data=data, flags=flags)


def enqueue_unmap(queue: CommandQueue, buffer: Buffer, mapped: MappedRegion) -> None:
    """
    Release a mapping, writing host changes back for writable mappings.
    
    Raises:
        PlatformError: CL_INVALID_VALUE if the region does not belong to
            buffer or was already unmapped
    """
    if mapped.buffer is not buffer or not mapped.mapped:
        raise_for_status(status.CL_INVALID_VALUE, {'call': 'unmap'})
    try:
        if mapped.flags in _WRITABLE_MAP_FLAGS:
            raw = buffer.typed(torch.uint8)
            region = raw[mapped.offset:mapped.offset + mapped.data.size]
            with queue.submit():
                region.copy_(torch.from_numpy(mapped.data).to(region.device))
            queue.finish()
    finally:
        mapped.data = None


# =====================================================================
# Programs and kernels
# =====================================================================

class Kernel:
    """One entry point of a built program with its bound arguments."""
    
    def __init__(self, name: str, fn: Any, real: torch.dtype):
        self.name = name
        self.fn = fn
        self.real = real
        self.args: tuple | None = None
    
    def set_args(self, *args: Any) -> Kernel:
        self.args = args
        return self


class Program:
    """
    Kernel source for a context, built once with the element type bound.
    
    Source is a mapping from kernel name to kernel function.
    """
    
    def __init__(self, context: Context, source: dict[str, Any]):
        self.context = context
        self._source = dict(source)
        self._real: torch.dtype | None = None
        self._released = False
    
    @property
    def built(self) -> bool:
        return self._real is not None and not self._released
    
    @property
    def real(self) -> torch.dtype | None:
        return self._real
    
    def build(self, options: str) -> Program:
        """
        Bind REAL from options of the form '-DREAL=float' or '-DREAL=double'.
        
        Raises:
            PlatformError: CL_INVALID_BUILD_OPTIONS for other options,
                CL_INVALID_PROGRAM if released
        """
        if self._released:
            raise_for_status(status.CL_INVALID_PROGRAM, {'call': 'build'})
        real = None
        for option in options.split():
            if option.startswith('-DREAL='):
                real = _REAL_TYPES.get(option[len('-DREAL='):])
        if real is None:
            raise_for_status(status.CL_INVALID_BUILD_OPTIONS, {'options': options})
        self._real = real
        return self
    
    def kernel(self, name: str) -> Kernel:
        """
        Create a kernel object for one entry point.
        
        Raises:
            PlatformError: CL_INVALID_PROGRAM_EXECUTABLE if not built,
                CL_INVALID_KERNEL_NAME for unknown entry points
        """
        if not self.built:
            raise_for_status(status.CL_INVALID_PROGRAM_EXECUTABLE, {'kernel': name})
        fn = self._source.get(name)
        if fn is None:
            raise_for_status(status.CL_INVALID_KERNEL_NAME, {'kernel': name})
        return Kernel(name, fn, self._real)
    
    def release(self) -> bool:
        self._released = True
        return True


def build_program(context: Context, source: dict[str, Any], options: str) -> Program:
    """Create and build a program in one step."""
    return Program(context, source).build(options)
