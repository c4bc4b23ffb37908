"""
Host bridge.

transfer(source, destination) moves data between device objects and
host data:

    - device -> device: BLAS copy
    - device -> numpy: scoped read mapping
    - numpy -> device: scoped write mapping (write-invalidate when the
      destination is contiguous)
    - any other sequence -> device: staged through a host object of the
      destination's geometry

Mappings are released on every exit path.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from pydevblas.core.exceptions import DimensionError, ValidationError
from pydevblas.core.types import Layout, DEFAULT_LAYOUT
from pydevblas.core.validation import check_1d, check_2d, check_array
from pydevblas.block.matrix import GEMatrix, TRMatrix
from pydevblas.block.vector import Vector
from pydevblas import ops

_DEVICE_TYPES = (Vector, GEMatrix)


def _shape(block: Vector | GEMatrix) -> tuple[int, ...]:
    if isinstance(block, Vector):
        return (block.dim,)
    return block.shape


def _stage(destination: Vector | GEMatrix, data: Any) -> np.ndarray:
    """Host object of the destination's geometry holding data."""
    values = check_array(data, "source", dtype=destination.accessor.entry_type)
    host_factory = destination.accessor.host_factory
    if isinstance(destination, Vector):
        check_1d(values, "source")
        staged = host_factory.create_vector(destination.dim, init=False)
    else:
        staged = host_factory.create_ge(
            destination.mrows, destination.ncols, destination.layout, init=False,
        )
    if values.size != staged.size:
        raise DimensionError(
            f"source: {values.size} values do not fit destination of shape {staged.shape}"
        )
    staged[...] = values.reshape(staged.shape)
    return staged


def transfer(source: Any, destination: Any) -> Any:
    """
    Copy source into destination and return destination.
    
    Raises:
        DimensionError: If the geometries do not match
        ValidationError: If the combination of types is not supported
    """
    if isinstance(source, _DEVICE_TYPES) and isinstance(destination, _DEVICE_TYPES):
        return ops.copy(source, destination)
    if isinstance(source, (*_DEVICE_TYPES, TRMatrix)) and isinstance(destination, np.ndarray):
        if isinstance(source, TRMatrix):
            destination[...] = source.host()
            return destination
        return source.read_into(destination)
    if isinstance(destination, _DEVICE_TYPES):
        if isinstance(source, np.ndarray) and source.shape == _shape(destination):
            return destination.write_from(source)
        return destination.write_from(_stage(destination, source))
    raise ValidationError(
        f"Cannot transfer {type(source).__name__} to {type(destination).__name__}"
    )


def to_host(block: Vector | GEMatrix | TRMatrix) -> np.ndarray:
    """Host copy of a device object."""
    return block.host()


def to_device(
    factory: Any,
    data: Any,
    layout: Layout = DEFAULT_LAYOUT,
) -> Vector | GEMatrix:
    """
    New device object holding data.
    
    1-D data becomes a Vector, 2-D data a GEMatrix with the given layout.
    
    Raises:
        DimensionError: If data is neither 1-D nor 2-D
    """
    values = check_array(data, "data", dtype=factory.data_accessor.entry_type)
    if values.ndim == 1:
        destination = factory.create_vector(values.shape[0], init=False)
    else:
        check_2d(values, "data")
        destination = factory.create_ge(values.shape[0], values.shape[1], layout, init=False)
    return destination.write_from(values)
