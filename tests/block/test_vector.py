"""
Tests for device vectors.

Validates:
    - Construction bounds and view geometry
    - Ownership: one free per buffer, idempotent and thread-safe release
    - Equality and hashing across offsets and strides, from several threads
    - set / entry access rules
    - Host bridge through mappings
"""

import threading

import numpy as np
import pytest

from pydevblas.block.ownership import BorrowedBuffer, OwnedBuffer
from pydevblas.block.vector import Vector
from pydevblas.core.exceptions import (
    DimensionError,
    InefficientOperationError,
    InvalidStrideError,
    ValidationError,
)
from pydevblas.transfer import to_device


# ═══════════════════════════════════════════════════════════════════════
# Construction and geometry
# ═══════════════════════════════════════════════════════════════════════


class TestGeometry:

    def test_create(self, factory):
        x = factory.create_vector(5)
        assert (x.dim, x.offset, x.stride) == (5, 0, 1)
        assert len(x) == 5
        assert x.master
        assert x.kind is factory.kind

    def test_created_zero(self, factory):
        np.testing.assert_array_equal(factory.create_vector(4).host(), np.zeros(4))

    def test_subvector(self, factory):
        x = factory.create_vector(10)
        view = Vector(factory, x.handle.borrow(), 4, 1, 2)
        sub = view.subvector(1, 2)
        assert sub.offset == 1 + 1 * 2
        assert sub.stride == 2
        assert sub.dim == 2
        assert not sub.master
        assert sub.buffer is x.buffer

    def test_subvector_out_of_range(self, factory):
        x = factory.create_vector(3)
        with pytest.raises(DimensionError):
            x.subvector(2, 2)

    def test_too_long_for_buffer(self, factory):
        x = factory.create_vector(5)
        with pytest.raises(DimensionError, match="does not fit"):
            Vector(factory, x.handle.borrow(), 3, 1, 2)

    def test_fits_exactly(self, factory):
        x = factory.create_vector(5)
        assert Vector(factory, x.handle.borrow(), 3, 0, 2).dim == 3

    def test_non_positive_stride(self, factory):
        x = factory.create_vector(5)
        with pytest.raises(ValidationError):
            Vector(factory, x.handle.borrow(), 2, 0, 0)

    def test_empty_vector(self, factory):
        x = factory.create_vector(0)
        assert x.dim == 0
        assert x.buffer.size == factory.kind.entry_width
        assert x.host().shape == (0,)


# ═══════════════════════════════════════════════════════════════════════
# Ownership
# ═══════════════════════════════════════════════════════════════════════


class TestOwnership:

    def test_release_frees_once(self, factory):
        x = factory.create_vector(3)
        assert x.release()
        assert x.buffer.released
        assert not x.master
        assert x.release()

    def test_views_never_free(self, factory):
        x = factory.create_vector(3)
        sub = x.subvector(0, 2)
        assert isinstance(sub.handle, BorrowedBuffer)
        assert sub.release()
        assert not x.buffer.released
        x.release()
        assert sub.release()

    def test_context_manager(self, factory):
        with factory.create_vector(3) as x:
            buffer = x.buffer
        assert buffer.released

    def test_concurrent_release_frees_once(self):
        calls = []

        class CountingBuffer:
            def release(self):
                calls.append(1)
                return True

        handle = OwnedBuffer(CountingBuffer())
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            handle.release()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(calls) == 1
        assert not handle.master


# ═══════════════════════════════════════════════════════════════════════
# Equality
# ═══════════════════════════════════════════════════════════════════════


class TestEquality:

    def test_equal_across_strides(self, factory):
        x = to_device(factory, [1.0, 2.0, 3.0])
        y = to_device(factory, [0.0, 1.0, 9.0, 2.0, 9.0, 3.0])
        strided = Vector(factory, y.handle.borrow(), 3, 1, 2)
        assert x == strided
        assert strided == x

    def test_one_entry_breaks_equality(self, factory):
        x = to_device(factory, [1.0, 2.0, 3.0])
        y = to_device(factory, [1.0, 2.0, 3.5])
        assert x != y

    def test_dimension_mismatch(self, factory):
        assert factory.create_vector(2) != factory.create_vector(3)

    def test_empty_vectors(self, factory):
        assert factory.create_vector(0) == factory.create_vector(0)

    def test_identity_and_none(self, factory):
        x = factory.create_vector(2)
        assert x == x
        assert not (x == None)  # noqa: E711
        assert x != "vector"

    def test_other_scalar_kind_is_not_equal(self, queue):
        from pydevblas import double_factory, float_factory
        with float_factory(queue) as f, double_factory(queue) as d:
            assert f.create_vector(2) != d.create_vector(2)

    def test_hash_follows_values(self, factory):
        x = to_device(factory, [3.0, 4.0])
        y = to_device(factory, [3.0, 4.0])
        assert hash(x) == hash(y)

    def test_hash_ignores_stride(self, factory, rng):
        values = rng.standard_normal(4097)
        x = to_device(factory, values)
        padded = np.zeros(3 * 4097)
        padded[::3] = values
        y = Vector(factory, to_device(factory, padded).handle.borrow(), 4097, 0, 3)
        assert x == y
        assert hash(x) == hash(y)
        assert len({x, y}) == 1

    def test_concurrent_comparisons_through_one_factory(self, factory):
        equal = (to_device(factory, [1.0, 2.0]), to_device(factory, [1.0, 2.0]))
        unequal = (to_device(factory, [1.0, 2.0]), to_device(factory, [1.0, 5.0]))
        wrong = []

        def compare(pair, expected):
            for _ in range(500):
                if (pair[0] == pair[1]) is not expected:
                    wrong.append(pair)

        threads = [
            threading.Thread(target=compare, args=(equal, True)),
            threading.Thread(target=compare, args=(unequal, False)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert wrong == []


# ═══════════════════════════════════════════════════════════════════════
# Element access
# ═══════════════════════════════════════════════════════════════════════


class TestElementAccess:

    def test_set_whole_buffer(self, factory):
        x = factory.create_vector(3).set(1.5)
        np.testing.assert_array_equal(x.host(), [1.5, 1.5, 1.5])

    def test_set_on_strided_view(self, factory):
        x = factory.create_vector(6)
        with pytest.raises(InvalidStrideError):
            Vector(factory, x.handle.borrow(), 3, 0, 2).set(1.0)

    def test_set_on_offset_view(self, factory):
        x = factory.create_vector(6)
        with pytest.raises(InvalidStrideError):
            x.subvector(1, 5).set(1.0)

    def test_set_on_prefix_view(self, factory):
        x = factory.create_vector(6)
        with pytest.raises(InvalidStrideError):
            x.subvector(0, 3).set(1.0)

    @pytest.mark.parametrize("access", [
        lambda x: x.entry(0),
        lambda x: x.set_entry(0, 1.0),
        lambda x: x.alter(0, abs),
        lambda x: x[0],
    ])
    def test_single_entry_access(self, factory, access):
        x = factory.create_vector(3)
        with pytest.raises(InefficientOperationError):
            access(x)

    def test_setitem(self, factory):
        x = factory.create_vector(3)
        with pytest.raises(InefficientOperationError):
            x[0] = 1.0


# ═══════════════════════════════════════════════════════════════════════
# Host bridge
# ═══════════════════════════════════════════════════════════════════════


class TestHostBridge:

    def test_write_to_strided_view_keeps_gaps(self, factory):
        base = to_device(factory, [1.0, 2.0, 3.0, 4.0, 5.0])
        view = Vector(factory, base.handle.borrow(), 2, 1, 2)
        view.write_from(np.array([20.0, 40.0]))
        np.testing.assert_array_equal(base.host(), [1.0, 20.0, 3.0, 40.0, 5.0])

    def test_read_strided_view(self, factory):
        base = to_device(factory, [1.0, 2.0, 3.0, 4.0, 5.0])
        view = Vector(factory, base.handle.borrow(), 3, 0, 2)
        np.testing.assert_array_equal(view.host(), [1.0, 3.0, 5.0])

    def test_mapped_context_writes_back(self, factory):
        x = factory.create_vector(3)
        with x.mapped('write') as entries:
            entries[:] = [7.0, 8.0, 9.0]
        np.testing.assert_array_equal(x.host(), [7.0, 8.0, 9.0])

    def test_host_shape_mismatch(self, factory):
        x = factory.create_vector(3)
        with pytest.raises(DimensionError):
            x.read_into(np.empty(4))

    def test_raw_and_zero(self, factory):
        x = to_device(factory, [1.0, 2.0])
        assert x.raw().dim == 2
        assert x.zero() == factory.create_vector(2)
        assert x.identity().dim == 0
        assert x.fold() == pytest.approx(3.0)

    def test_repr(self, factory):
        assert "dim=3" in repr(factory.create_vector(3))
