import numpy as np
import pytest

from lbfgsb.bounds import Bounds
from lbfgsb.cauchy import generalized_cauchy_point
from lbfgsb.hessian import LimitedMemoryHessian


def box(lower, upper):
    return Bounds.from_arrays(len(lower), np.array(lower, float), np.array(upper, float))


def test_identity_model_without_breakpoints():
    bounds = box([-10.0, -10.0], [10.0, 10.0])
    hessian = LimitedMemoryHessian(2, capacity=3)
    cp = generalized_cauchy_point(np.zeros(2), np.array([1.0, -2.0]), bounds, hessian)
    assert np.allclose(cp.x, [-1.0, 2.0])
    assert not cp.active.any()
    assert cp.t == pytest.approx(1.0)
    assert cp.breakpoints == 0


def test_stops_inside_first_segment():
    bounds = box([0.0], [10.0])
    hessian = LimitedMemoryHessian(1, capacity=3)
    cp = generalized_cauchy_point(np.array([5.0]), np.array([1.0]), bounds, hessian)
    assert cp.x[0] == pytest.approx(4.0)
    assert cp.free.all()


def test_equal_breakpoints_fix_both_variables():
    bounds = box([0.0, 0.0], [1.0, 1.0])
    hessian = LimitedMemoryHessian(2, capacity=3)
    cp = generalized_cauchy_point(np.array([0.5, 0.5]), np.array([1.0, 1.0]), bounds, hessian)
    assert np.array_equal(cp.x, [0.0, 0.0])
    assert cp.active.all()
    assert cp.breakpoints == 2


def test_variable_at_bound_pushed_outward_stays():
    bounds = box([0.0, 0.0], [1.0, 1.0])
    hessian = LimitedMemoryHessian(2, capacity=3)
    x = np.array([0.0, 0.5])
    cp = generalized_cauchy_point(x, np.array([1.0, 0.2]), bounds, hessian)
    assert cp.x[0] == 0.0
    assert cp.x[1] == pytest.approx(0.3)
    assert cp.active.tolist() == [True, False]


def test_zero_gradient_returns_start_point():
    bounds = box([0.0, 0.0], [1.0, 1.0])
    hessian = LimitedMemoryHessian(2, capacity=3)
    x = np.array([0.0, 0.5])
    cp = generalized_cauchy_point(x, np.array([1.0, 0.0]), bounds, hessian)
    assert np.array_equal(cp.x, x)
    assert cp.active.tolist() == [True, False]


def test_curvature_scales_the_step():
    # With y = 2 s the compact matrix is exactly 2 I.
    hessian = LimitedMemoryHessian(1, capacity=3)
    hessian.update(np.array([1.0]), np.array([2.0]))
    cp = generalized_cauchy_point(np.array([5.0]), np.array([1.0]), box([0.0], [10.0]), hessian)
    assert cp.x[0] == pytest.approx(4.5)


def test_matches_exact_minimizer_along_gradient(rng):
    n = 5
    a = rng.standard_normal((n, n))
    a = a @ a.T + n * np.eye(n)
    hessian = LimitedMemoryHessian(n, capacity=4)
    for _ in range(3):
        s = rng.standard_normal(n)
        hessian.update(s, a @ s)
    dense = np.column_stack([hessian.multiply(e) for e in np.eye(n)])

    x = rng.standard_normal(n)
    g = rng.standard_normal(n)
    bounds = box([-1e6] * n, [1e6] * n)
    cp = generalized_cauchy_point(x, g, bounds, hessian)
    t_star = (g @ g) / (g @ dense @ g)
    assert np.allclose(cp.x, x - t_star * g, rtol=1e-8, atol=1e-10)
    assert np.allclose(cp.c, hessian.w.T @ (cp.x - x), atol=1e-8)


def test_result_is_feasible(rng):
    lower = -rng.random(6)
    upper = rng.random(6)
    bounds = box(lower, upper)
    hessian = LimitedMemoryHessian(6, capacity=2)
    x = np.zeros(6)
    g = 10.0 * rng.standard_normal(6)
    cp = generalized_cauchy_point(x, g, bounds, hessian)
    assert bounds.contains(cp.x)
    assert np.all(np.sign(cp.x - x) == -np.sign(g))
