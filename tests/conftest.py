"""
pytest configuration and shared fixtures.

Every test runs on the torch CPU device so the suite needs no
accelerator. Factories are parametrized over both scalar kinds.
"""

import numpy as np
import pytest

from pydevblas import CommandQueue, ScalarKind, create_context, factory_for
from pydevblas.core.compute.tolerances import select_tolerance


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def context():
    """CPU context."""
    return create_context('cpu')


@pytest.fixture
def queue(context):
    """In-order queue on the CPU context."""
    return CommandQueue(context)


@pytest.fixture(params=[ScalarKind.SINGLE, ScalarKind.DOUBLE], ids=['float', 'double'])
def factory(request, queue):
    """Factory of each scalar kind, released after the test."""
    fac = factory_for(request.param, queue)
    yield fac
    fac.release()


@pytest.fixture
def dfactory(queue):
    """Double precision factory, for tests comparing exact host values."""
    fac = factory_for(ScalarKind.DOUBLE, queue)
    yield fac
    fac.release()


@pytest.fixture
def tol(factory):
    """Tolerance tier matching the factory's scalar kind."""
    return select_tolerance(factory.kind)
