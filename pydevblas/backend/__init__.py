"""
Device backend: status codes, runtime transport, kernels and BLAS routines.

The layers above only talk to the device through this package.
"""

from pydevblas.backend.status import (
    SUCCESS,
    decode_blast_error,
    decode_platform_error,
    raise_for_status,
)
from pydevblas.backend.runtime import (
    Context,
    CommandQueue,
    Buffer,
    create_context,
    create_buffer,
)
from pydevblas.backend.blast import BlastRoutines, routines_for, clear_cache

__all__ = [
    "SUCCESS",
    "decode_blast_error",
    "decode_platform_error",
    "raise_for_status",
    "Context",
    "CommandQueue",
    "Buffer",
    "create_context",
    "create_buffer",
    "BlastRoutines",
    "routines_for",
    "clear_cache",
]
