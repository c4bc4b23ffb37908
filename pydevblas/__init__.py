"""
pydevblas: device-resident dense linear algebra for Python.

Vectors and matrices live in accelerator memory (CUDA, MPS, or the torch
CPU device) and every operation is dispatched to a BLAS-style backend,
for row-major and column-major layouts and for strided views alike.

Typical use:

    >>> from pydevblas import create_context, CommandQueue, double_factory, ops
    >>> queue = CommandQueue(create_context('cpu'))
    >>> fac = double_factory(queue)
    >>> x = fac.create_vector(3).set(1.0)
    >>> ops.asum(x)
    3.0

Submodules:
    block: Vectors, general and triangular matrices
    engines: BLAS dispatch per scalar kind
    ops: Public operations
    transfer: Host <-> device bridge
"""

__version__ = "0.1.0"

from pydevblas.core import (
    ScalarKind,
    Layout,
    Triangle,
    Diagonal,
    DEFAULT_LAYOUT,
)
from pydevblas.backend.runtime import Context, CommandQueue, create_context
from pydevblas.factory import (
    DeviceFactory,
    float_factory,
    double_factory,
    factory_for,
)
from pydevblas.block import Vector, GEMatrix, TRMatrix
from pydevblas.transfer import transfer, to_host, to_device
from pydevblas import ops

__all__ = [
    "__version__",
    "ScalarKind",
    "Layout",
    "Triangle",
    "Diagonal",
    "DEFAULT_LAYOUT",
    "Context",
    "CommandQueue",
    "create_context",
    "DeviceFactory",
    "float_factory",
    "double_factory",
    "factory_for",
    "Vector",
    "GEMatrix",
    "TRMatrix",
    "transfer",
    "to_host",
    "to_device",
    "ops",
]
