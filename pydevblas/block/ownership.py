"""
Buffer ownership handles.

Exactly one OwnedBuffer exists per allocation. Views hold a
BorrowedBuffer, which has no way to free anything. Releasing an owner
frees the allocation once; concurrent and repeated releases are no-ops.
Borrowed views must not outlive their owner; that is up to the caller.
"""

from __future__ import annotations

import threading

from pydevblas.backend.runtime import Buffer


class OwnedBuffer:
    """Owning handle: frees its buffer on the first release."""
    
    def __init__(self, buffer: Buffer):
        self._buffer = buffer
        self._lock = threading.Lock()
        self._owned = True
    
    @property
    def buffer(self) -> Buffer:
        return self._buffer
    
    @property
    def master(self) -> bool:
        return self._owned
    
    def borrow(self) -> BorrowedBuffer:
        return BorrowedBuffer(self._buffer)
    
    def release(self) -> bool:
        with self._lock:
            owned, self._owned = self._owned, False
        if owned:
            self._buffer.release()
        return True


class BorrowedBuffer:
    """Non-owning handle held by views."""
    
    master = False
    
    def __init__(self, buffer: Buffer):
        self._buffer = buffer
    
    @property
    def buffer(self) -> Buffer:
        return self._buffer
    
    def borrow(self) -> BorrowedBuffer:
        return BorrowedBuffer(self._buffer)
    
    def release(self) -> bool:
        return True
