"""
Block objects: device vectors and matrices viewing strided buffer regions.
"""

from pydevblas.block.navigator import (
    ColumnNavigator,
    RowNavigator,
    COLUMN_NAVIGATOR,
    ROW_NAVIGATOR,
    navigator_for,
)
from pydevblas.block.ownership import OwnedBuffer, BorrowedBuffer
from pydevblas.block.host import HostFactory
from pydevblas.block.accessor import TypedAccessor
from pydevblas.block.vector import Vector
from pydevblas.block.matrix import GEMatrix, TRMatrix

__all__ = [
    "ColumnNavigator",
    "RowNavigator",
    "COLUMN_NAVIGATOR",
    "ROW_NAVIGATOR",
    "navigator_for",
    "OwnedBuffer",
    "BorrowedBuffer",
    "HostFactory",
    "TypedAccessor",
    "Vector",
    "GEMatrix",
    "TRMatrix",
]
