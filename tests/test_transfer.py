"""
Tests for the host bridge and the public operations front end.

Validates:
    - transfer in every supported direction, with staging of sequences
    - Geometry mismatches raise DimensionError before any copy
    - Mappings are released after success and after failure
    - ops rejects operands of different kinds or block types
"""

import numpy as np
import pytest

from pydevblas import double_factory, float_factory, ops, transfer, to_device, to_host
from pydevblas.backend import runtime
from pydevblas.block.vector import Vector
from pydevblas.core.exceptions import DimensionError, ValidationError
from pydevblas.core.types import Layout


class TestTransfer:

    def test_host_to_device_and_back(self, factory, rng):
        values = rng.standard_normal((3, 2)).astype(factory.kind.numpy_dtype)
        a = factory.create_ge(3, 2, Layout.ROW_MAJOR)
        transfer(values, a)
        out = np.empty((3, 2), dtype=factory.kind.numpy_dtype)
        transfer(a, out)
        np.testing.assert_array_equal(out, values)

    def test_device_to_device(self, factory):
        x = to_device(factory, [1.0, 2.0])
        y = factory.create_vector(2)
        assert transfer(x, y) is y
        assert x == y

    def test_sequence_is_staged(self, factory):
        a = factory.create_ge(2, 2, Layout.COLUMN_MAJOR)
        transfer([[1.0, 2.0], [3.0, 4.0]], a)
        np.testing.assert_array_equal(a.host(), [[1.0, 2.0], [3.0, 4.0]])

    def test_flat_sequence_fills_matrix_row_by_row(self, factory):
        a = factory.create_ge(2, 2)
        transfer(range(4), a)
        np.testing.assert_array_equal(a.host(), [[0.0, 1.0], [2.0, 3.0]])

    def test_sequence_size_mismatch(self, factory):
        with pytest.raises(DimensionError):
            transfer([1.0, 2.0, 3.0], factory.create_vector(2))

    def test_host_shape_mismatch(self, factory):
        with pytest.raises(DimensionError):
            transfer(factory.create_vector(3), np.empty(2))

    def test_triangle_to_host(self, factory):
        tr = to_device(factory, np.ones((2, 2))).subtriangle()
        out = np.empty((2, 2))
        transfer(tr, out)
        np.testing.assert_array_equal(out, [[1.0, 0.0], [1.0, 1.0]])

    def test_unsupported_combination(self):
        with pytest.raises(ValidationError):
            transfer([1.0], [2.0])

    def test_to_host(self, factory):
        np.testing.assert_array_equal(to_host(to_device(factory, [5.0])), [5.0])

    def test_nested_sequence_into_vector(self, factory):
        with pytest.raises(DimensionError, match="source: expected 1D"):
            transfer([[1.0], [2.0]], factory.create_vector(2))

    def test_to_device_rejects_3d(self, factory):
        with pytest.raises(DimensionError, match="data: expected 2D"):
            to_device(factory, np.zeros((1, 1, 1)))


class TestMappingsReleased:
    """Every transfer unmaps, even when the copy into host memory fails."""

    @pytest.fixture
    def mappings(self, monkeypatch):
        live = []
        original_map = runtime.enqueue_map_buffer
        original_unmap = runtime.enqueue_unmap

        def map_spy(*args):
            region = original_map(*args)
            live.append(region)
            return region

        def unmap_spy(queue, buffer, region):
            live.remove(region)
            return original_unmap(queue, buffer, region)

        for module in ('pydevblas.block.vector', 'pydevblas.block.matrix'):
            monkeypatch.setattr(f'{module}.enqueue_map_buffer', map_spy)
            monkeypatch.setattr(f'{module}.enqueue_unmap', unmap_spy)
        return live

    def test_released_after_success(self, factory, mappings):
        a = to_device(factory, np.ones((2, 3)))
        a.host()
        assert mappings == []

    def test_released_after_failure(self, factory, mappings):
        x = to_device(factory, [1.0, 2.0])
        with pytest.raises(ValueError):
            with x.mapped() as entries:
                entries[:] = [1.0, 2.0, 3.0]
        assert mappings == []


class TestOpsValidation:

    def test_mixed_kinds_rejected(self, queue):
        with float_factory(queue) as f, double_factory(queue) as d:
            with pytest.raises(ValidationError, match="Incompatible"):
                ops.axpy(1.0, f.create_vector(2), d.create_vector(2))

    def test_vector_and_matrix_rejected(self, factory):
        with pytest.raises(ValidationError, match="expected GEMatrix"):
            ops.copy(factory.create_ge(2, 1), factory.create_vector(2))

    def test_dot_needs_vectors(self, factory):
        with pytest.raises(ValidationError):
            ops.dot(factory.create_ge(1, 1), factory.create_ge(1, 1))

    def test_copy_returns_destination(self, factory):
        x = factory.create_vector(2)
        y = factory.create_vector(2)
        assert ops.copy(x, y) is y
        assert isinstance(ops.copy(x), Vector)
