import numpy as np
import pytest

from lbfgsb.bounds import Bounds
from lbfgsb.cauchy import generalized_cauchy_point
from lbfgsb.hessian import LimitedMemoryHessian
from lbfgsb.subspace import subspace_minimize


def diag_hessian():
    """Compact matrix equal to diag(1, 4)."""
    hessian = LimitedMemoryHessian(2, capacity=2)
    hessian.update(np.array([1.0, 0.0]), np.array([1.0, 0.0]))
    hessian.update(np.array([0.0, 1.0]), np.array([0.0, 4.0]))
    return hessian


def test_compact_factors_reproduce_diagonal_hessian():
    hessian = diag_hessian()
    assert np.allclose(hessian.multiply(np.array([1.0, 1.0])), [1.0, 4.0])


def test_reaches_newton_point_when_unconstrained():
    hessian = diag_hessian()
    bounds = Bounds.from_arrays(2, lower=-100.0, upper=100.0)
    x = np.zeros(2)
    g = np.array([1.0, 4.0])
    cp = generalized_cauchy_point(x, g, bounds, hessian)
    step = subspace_minimize(x, g, cp, bounds, hessian)
    assert np.allclose(step.x, [-1.0, -1.0])
    assert not step.truncated
    assert step.n_free == 2


def test_truncates_at_bound():
    hessian = diag_hessian()
    bounds = Bounds.from_arrays(2, lower=[-0.5, -100.0], upper=[100.0, 100.0])
    x = np.zeros(2)
    g = np.array([1.0, 4.0])
    cp = generalized_cauchy_point(x, g, bounds, hessian)
    assert cp.free.all()
    step = subspace_minimize(x, g, cp, bounds, hessian)
    assert step.truncated
    assert step.x[0] == pytest.approx(-0.5)
    assert bounds.contains(step.x)


def test_all_active_returns_cauchy_point():
    hessian = LimitedMemoryHessian(2, capacity=2)
    bounds = Bounds.from_arrays(2, lower=0.0, upper=1.0)
    x = np.array([0.5, 0.5])
    g = np.array([1.0, 1.0])
    cp = generalized_cauchy_point(x, g, bounds, hessian)
    step = subspace_minimize(x, g, cp, bounds, hessian)
    assert np.array_equal(step.x, cp.x)
    assert step.n_free == 0
    assert not step.truncated


def test_reduced_gradient_vanishes_on_free_set(rng):
    n = 6
    a = rng.standard_normal((n, n))
    a = a @ a.T + n * np.eye(n)
    hessian = LimitedMemoryHessian(n, capacity=4)
    for _ in range(4):
        s = rng.standard_normal(n)
        hessian.update(s, a @ s)
    lower = np.full(n, -1e3)
    lower[0] = -1e-3
    bounds = Bounds.from_arrays(n, lower=lower, upper=1e3)
    x = np.zeros(n)
    g = rng.standard_normal(n)
    g[0] = 50.0

    cp = generalized_cauchy_point(x, g, bounds, hessian)
    assert cp.active[0]
    step = subspace_minimize(x, g, cp, bounds, hessian)
    assert not step.truncated
    assert step.x[0] == pytest.approx(-1e-3)
    model_grad = g + hessian.multiply(step.x - x)
    assert np.allclose(model_grad[1:], 0.0, atol=1e-8)
