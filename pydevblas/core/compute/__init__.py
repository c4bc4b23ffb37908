"""
Shared numeric infrastructure for pydevblas.

Submodules:
    tolerances: Precision tiers for comparing single/double results
"""

from pydevblas.core.compute.tolerances import (
    ToleranceTier,
    FP32,
    FP64,
    select_tolerance,
)

__all__ = [
    "ToleranceTier",
    "FP32",
    "FP64",
    "select_tolerance",
]
