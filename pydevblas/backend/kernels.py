"""
Kernel sources for operations the BLAS backend does not provide.

Each kernel receives the element type bound at build time (the REAL of
the build options), the work size it was enqueued with, and the
arguments set on it. Kernels only touch device memory: results are left
in buffers for the caller to read back.

The equality kernels raise a shared int32 flag to 1 as soon as any pair
of corresponding elements differs. The caller clears the flag before the
launch and reads it afterwards.
"""

from __future__ import annotations

from typing import Any

import torch


def _raise_flag(flag: Any, differs: torch.Tensor) -> None:
    cell = flag.typed(torch.int32)[:1]
    cell.bitwise_or_(differs.any().to(torch.int32).reshape(1))


def equals_vector(real, work_size, flag, x, ofst_x, strd_x, y, ofst_y, strd_y) -> None:
    """Compare n = work_size[0] strided elements of x and y."""
    (n,) = work_size
    xs = x.typed(real).as_strided((n,), (strd_x,), ofst_x)
    ys = y.typed(real).as_strided((n,), (strd_y,), ofst_y)
    _raise_flag(flag, torch.ne(xs, ys))


def equals_matrix(real, work_size, flag, a, ofst_a, ld_a, b, ofst_b, ld_b) -> None:
    """
    Compare fd lines of sd contiguous elements.
    
    Work size is (sd, fd); element i of line j lives at ofst + i + j*ld in
    both operands, so both must share layout.
    """
    sd, fd = work_size
    av = a.typed(real).as_strided((fd, sd), (ld_a, 1), ofst_a)
    bv = b.typed(real).as_strided((fd, sd), (ld_b, 1), ofst_b)
    _raise_flag(flag, torch.ne(av, bv))


# Entry points of the equality program, by kernel name.
EQUALS_SOURCE = {
    'equals_vector': equals_vector,
    'equals_matrix': equals_matrix,
}
