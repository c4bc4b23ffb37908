"""
Tolerance tiers for numerical comparison of device results.

Defines precision expectations for the two scalar kinds:
- FP64: double precision, matches a host double precision BLAS
- FP32: relaxed for single-precision arithmetic and reduction order

Used by the test suite when comparing device results against the host
reference implementation.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pydevblas.core.types import ScalarKind


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str
    
    def allclose(self, actual, expected) -> bool:
        """np.allclose with this tier's tolerances."""
        return bool(np.allclose(actual, expected, rtol=self.rtol, atol=self.atol))


FP64 = ToleranceTier(
    rtol=1e-12,
    atol=1e-12,
    name='fp64',
    description='Double precision, matches host BLAS to rounding',
)

FP32 = ToleranceTier(
    rtol=1e-5,
    atol=1e-5,
    name='fp32',
    description='Single precision, reduction order may differ from host',
)


def select_tolerance(kind: ScalarKind) -> ToleranceTier:
    """Select appropriate tolerance tier for a scalar kind."""
    if kind is ScalarKind.DOUBLE:
        return FP64
    return FP32
