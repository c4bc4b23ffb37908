"""
Engines: BLAS dispatch for block objects of one scalar kind.
"""

from pydevblas.engines.vector import BlastVectorEngine
from pydevblas.engines.matrix import BlastGEEngine

__all__ = [
    "BlastVectorEngine",
    "BlastGEEngine",
]
