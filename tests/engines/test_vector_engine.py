"""
Tests for the vector engine.

Validates against the host BLAS (scipy) and numpy:
    - Every level-1 operation on contiguous and strided vectors
    - Empty vectors return the additive identity without device calls
    - Scratch result buffers are released on success and failure
    - Backend failures surface as classified errors with the routine name
    - Rotation family is not implemented
"""

import numpy as np
import pytest

from pydevblas import ops
from pydevblas.backend import status
from pydevblas.backend.blast import BlastRoutines
from pydevblas.backend import runtime
from pydevblas.block.vector import Vector
from pydevblas.core.exceptions import (
    BlastError,
    DimensionError,
    NotImplementedOperationError,
    PlatformError,
)
from pydevblas.transfer import to_device


@pytest.fixture
def xy(factory, rng):
    x = rng.standard_normal(7)
    y = rng.standard_normal(7)
    return x, y


def strided(factory, values, stride=3, offset=2):
    """Device vector holding values at the given offset and stride."""
    n = len(values)
    base = factory.create_vector(offset + (n - 1) * stride + 1)
    view = Vector(factory, base.handle.borrow(), n, offset, stride)
    view.write_from(np.asarray(values))
    return view


# ═══════════════════════════════════════════════════════════════════════
# Reductions
# ═══════════════════════════════════════════════════════════════════════


class TestReductions:

    def test_dot(self, factory, xy, tol):
        x, y = xy
        host_dot = factory.data_accessor.host_factory.blas('dot')
        expected = host_dot(x.astype(factory.kind.numpy_dtype), y.astype(factory.kind.numpy_dtype))
        assert tol.allclose(ops.dot(to_device(factory, x), strided(factory, y)), expected)

    def test_nrm2(self, factory, xy, tol):
        x, _ = xy
        assert tol.allclose(ops.nrm2(strided(factory, x)), np.linalg.norm(x))

    def test_asum(self, factory, xy, tol):
        x, _ = xy
        assert tol.allclose(ops.asum(to_device(factory, x)), np.abs(x).sum())

    def test_sum(self, factory, xy, tol):
        x, _ = xy
        assert tol.allclose(ops.sum(strided(factory, x)), x.sum())

    def test_indices(self, factory):
        x = strided(factory, [1.0, -7.0, 3.0, 7.0, -2.0])
        assert ops.iamax(x) == 1
        assert ops.imax(x) == 3
        assert ops.imin(x) == 1

    @pytest.mark.parametrize("op", [ops.nrm2, ops.asum, ops.sum])
    def test_empty_value_identity(self, factory, op):
        assert op(factory.create_vector(0)) == 0.0

    @pytest.mark.parametrize("op", [ops.iamax, ops.imax, ops.imin])
    def test_empty_index_identity(self, factory, op):
        assert op(factory.create_vector(0)) == 0

    def test_empty_dot(self, factory):
        assert ops.dot(factory.create_vector(0), factory.create_vector(0)) == 0.0

    def test_dot_dimension_mismatch(self, factory):
        with pytest.raises(DimensionError):
            ops.dot(factory.create_vector(2), factory.create_vector(3))


class TestScratchBuffers:
    """Scratch result buffers never outlive the operation."""

    @pytest.fixture
    def allocations(self, monkeypatch):
        made = []
        original = runtime.create_buffer

        def spy(context, nbytes):
            buf = original(context, nbytes)
            made.append(buf)
            return buf

        monkeypatch.setattr('pydevblas.block.accessor.create_buffer', spy)
        return made

    def test_released_after_success(self, factory, allocations):
        x = to_device(factory, [1.0, 2.0])
        allocations.clear()
        ops.nrm2(x)
        ops.iamax(x)
        assert len(allocations) == 2
        assert all(buf.released for buf in allocations)

    def test_released_after_failure(self, factory, allocations, monkeypatch):
        x = to_device(factory, [1.0, 2.0])
        allocations.clear()
        monkeypatch.setattr(
            BlastRoutines, 'asum',
            lambda self, *args: status.K_KERNEL_RUN_ERROR,
        )
        with pytest.raises(BlastError) as excinfo:
            ops.asum(x)
        assert excinfo.value.name == 'kKernelRunError'
        assert excinfo.value.details['routine'] == 'asum'
        assert allocations and all(buf.released for buf in allocations)


# ═══════════════════════════════════════════════════════════════════════
# Updates and data movement
# ═══════════════════════════════════════════════════════════════════════


class TestUpdates:

    def test_scal_strided(self, factory, xy, tol):
        x, _ = xy
        v = strided(factory, x)
        ops.scal(2.5, v)
        assert tol.allclose(v.host(), 2.5 * x)

    def test_scal_leaves_gaps_untouched(self, factory):
        base = to_device(factory, [1.0, 2.0, 3.0, 4.0])
        ops.scal(10.0, Vector(factory, base.handle.borrow(), 2, 1, 2))
        np.testing.assert_array_equal(base.host(), [1.0, 20.0, 3.0, 40.0])

    def test_axpy_matches_host_blas(self, factory, xy, tol):
        x, y = xy
        dtype = factory.kind.numpy_dtype
        host_axpy = factory.data_accessor.host_factory.blas('axpy')
        expected = host_axpy(x.astype(dtype), y.astype(dtype).copy(), a=-1.5)
        result = ops.axpy(-1.5, strided(factory, x), to_device(factory, y))
        assert tol.allclose(result.host(), expected)

    def test_copy_and_swap(self, factory, xy):
        x, y = xy
        dx = strided(factory, x)
        dy = to_device(factory, y)
        ops.swap(dx, dy)
        assert dx == to_device(factory, y)
        assert dy == to_device(factory, x)
        copied = ops.copy(dx)
        assert copied == dx
        assert copied.master

    def test_subcopy(self, factory):
        x = to_device(factory, [1.0, 2.0, 3.0, 4.0])
        y = factory.create_vector(5)
        ops.subcopy(x, y, 1, 2, 3)
        np.testing.assert_array_equal(y.host(), [0.0, 0.0, 0.0, 2.0, 3.0])

    def test_subcopy_out_of_range(self, factory):
        with pytest.raises(DimensionError):
            ops.subcopy(factory.create_vector(4), factory.create_vector(2), 0, 3, 0)

    def test_empty_is_noop(self, factory, monkeypatch):
        def fail(*args):
            raise AssertionError("backend called")
        monkeypatch.setattr(BlastRoutines, 'axpy', fail)
        x = factory.create_vector(0)
        assert ops.axpy(1.0, x, factory.create_vector(0)).dim == 0

    def test_released_operand(self, factory):
        x = to_device(factory, [1.0, 2.0])
        y = factory.create_vector(2)
        y.release()
        with pytest.raises(PlatformError) as excinfo:
            ops.copy(x, y)
        assert excinfo.value.name == 'CL_INVALID_MEM_OBJECT'
        assert excinfo.value.details['routine'] == 'copy'


# ═══════════════════════════════════════════════════════════════════════
# Rotations
# ═══════════════════════════════════════════════════════════════════════


class TestRotations:

    def test_rot(self, factory):
        x = factory.create_vector(2)
        with pytest.raises(NotImplementedOperationError):
            ops.rot(x, factory.create_vector(2), 0.0, 1.0)

    def test_rotg(self, factory):
        with pytest.raises(NotImplementedError):
            ops.rotg(factory.create_vector(4))

    def test_rotm(self, factory):
        with pytest.raises(NotImplementedOperationError):
            ops.rotm(factory.create_vector(2), factory.create_vector(2), factory.create_vector(5))

    def test_rotmg(self, factory):
        with pytest.raises(NotImplementedOperationError):
            ops.rotmg(factory.create_vector(4), factory.create_vector(5))
