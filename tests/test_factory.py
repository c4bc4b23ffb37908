"""
Tests for factories.

Validates:
    - Builders per scalar kind and engine binding
    - create_vector / create_ge / create_tr geometry and initialisation
    - Release is best effort, reports failures once, and always clears
      the routine cache
"""

import warnings

import numpy as np
import pytest

from pydevblas import DeviceFactory, double_factory, factory_for, float_factory
from pydevblas.backend import blast
from pydevblas.core.exceptions import BlastError, DimensionError, PlatformError
from pydevblas.core.types import Diagonal, Layout, ScalarKind, Triangle


class TestBuilders:

    def test_float_factory(self, queue):
        with float_factory(queue) as fac:
            assert fac.kind is ScalarKind.SINGLE
            assert fac.data_accessor.entry_width == 4

    def test_double_factory(self, queue):
        with double_factory(queue) as fac:
            assert fac.kind is ScalarKind.DOUBLE
            assert fac.data_accessor.entry_width == 8

    def test_factory_for_name(self, queue):
        with factory_for('float', queue) as fac:
            assert fac.kind is ScalarKind.SINGLE

    def test_factory_for_unknown(self, queue):
        with pytest.raises(ValueError):
            factory_for('half', queue)

    def test_no_double_precision_device(self, queue, monkeypatch):
        monkeypatch.setattr(type(queue.context), 'supports_double', property(lambda self: False))
        with pytest.raises(BlastError) as excinfo:
            DeviceFactory(queue, ScalarKind.DOUBLE)
        assert excinfo.value.name == 'kNoDoublePrecision'


class TestCreate:

    def test_objects_carry_factory_engines(self, factory):
        x = factory.create_vector(2)
        a = factory.create_ge(2, 2)
        assert x.engine is factory.vector_engine
        assert a.engine is factory.ge_engine
        assert x.factory is factory

    def test_create_ge_default_layout(self, factory):
        a = factory.create_ge(2, 3)
        assert a.layout is Layout.COLUMN_MAJOR
        assert a.master
        np.testing.assert_array_equal(a.host(), np.zeros((2, 3)))

    def test_create_uninitialised(self, factory):
        a = factory.create_ge(2, 3, Layout.ROW_MAJOR, init=False)
        assert a.shape == (2, 3)
        assert a.layout is Layout.ROW_MAJOR

    def test_create_tr(self, factory):
        tr = factory.create_tr(3, Layout.ROW_MAJOR, Triangle.UPPER, Diagonal.UNIT)
        assert (tr.n, tr.ld, tr.layout, tr.uplo, tr.diag) == (
            3, 3, Layout.ROW_MAJOR, Triangle.UPPER, Diagonal.UNIT,
        )
        np.testing.assert_array_equal(tr.host(), np.eye(3))

    def test_negative_dimension(self, factory):
        with pytest.raises(DimensionError):
            factory.create_vector(-1)

    def test_compatible(self, factory, queue):
        assert factory.compatible(factory)
        assert factory.compatible(factory.create_vector(1))
        other_kind = ScalarKind.DOUBLE if factory.kind is ScalarKind.SINGLE else ScalarKind.SINGLE
        with factory_for(other_kind, queue) as other:
            assert not factory.compatible(other)


class TestRelease:

    def test_release_clears_cache(self, queue):
        fac = float_factory(queue)
        assert blast._ROUTINES
        assert fac.release()
        assert not blast._ROUTINES

    def test_release_is_repeatable(self, queue):
        fac = double_factory(queue)
        assert fac.release()
        assert fac.release()

    def test_failing_sub_release_still_succeeds(self, queue, monkeypatch):
        fac = float_factory(queue)
        released = []

        def broken(self):
            raise PlatformError("Platform error: CL_INVALID_MEM_OBJECT.", -38,
                                'CL_INVALID_MEM_OBJECT')

        monkeypatch.setattr(type(fac.vector_engine), 'release', broken)
        original = type(fac.ge_engine).release
        monkeypatch.setattr(
            type(fac.ge_engine), 'release',
            lambda self: released.append('ge') or original(self),
        )
        with pytest.warns(ResourceWarning, match="vector engine"):
            assert fac.release()
        assert released == ['ge']
        assert not blast._ROUTINES

    def test_unexpected_failure_does_not_skip_the_rest(self, queue, monkeypatch):
        fac = float_factory(queue)
        released = []

        def broken(self):
            raise RuntimeError("device lost")

        monkeypatch.setattr(type(fac.vector_engine), 'release', broken)
        monkeypatch.setattr(type(fac.ge_engine), 'release', broken)
        original = type(fac._program).release
        monkeypatch.setattr(
            type(fac._program), 'release',
            lambda self: released.append('program') or original(self),
        )
        with pytest.warns(ResourceWarning, match="ge engine: device lost"):
            assert fac.release()
        assert released == ['program']
        assert not blast._ROUTINES

    def test_clean_release_does_not_warn(self, queue):
        fac = float_factory(queue)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert fac.release()
