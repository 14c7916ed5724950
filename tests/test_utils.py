import numpy as np
import pytest

from lbfgsb.utils import approx_grad, safe_inverse, safe_solve


def test_approx_grad_matches_analytic():
    def fun(x):
        return float(np.sin(x[0]) + x[1] ** 3)

    x = np.array([0.3, -1.2])
    grad, evals = approx_grad(fun, x, return_evals=True)
    assert np.allclose(grad, [np.cos(0.3), 3 * 1.2**2], atol=1e-6)
    assert evals == 4


def test_approx_grad_rejects_bad_eps():
    with pytest.raises(ValueError):
        approx_grad(lambda x: 0.0, np.zeros(1), eps=0.0)


def test_safe_solve_regular_and_singular():
    mat = np.array([[2.0, 0.0], [0.0, 4.0]])
    assert np.allclose(safe_solve(mat, np.array([2.0, 4.0])), [1.0, 1.0])
    singular = np.array([[1.0, 1.0], [1.0, 1.0]])
    sol = safe_solve(singular, np.array([2.0, 2.0]), reg=0.0)
    assert np.allclose(singular @ sol, [2.0, 2.0])


def test_safe_inverse_fallbacks():
    assert safe_inverse(np.zeros((0, 0))).shape == (0, 0)
    mat = np.array([[4.0, 1.0], [1.0, 3.0]])
    assert np.allclose(safe_inverse(mat) @ mat, np.eye(2))
    pinv = safe_inverse(np.zeros((2, 2)), reg=0.0)
    assert np.array_equal(pinv, np.zeros((2, 2)))


def test_approx_grad_one_sided_at_bounds():
    calls = []

    def fun(x):
        calls.append(x.copy())
        return float(np.sum(np.sqrt(x)) + x[1] ** 2)

    x = np.array([0.0, 1.0])
    grad, evals = approx_grad(
        fun, x, return_evals=True, lower=np.zeros(2), upper=np.ones(2)
    )
    assert all(np.all(p >= 0.0) and np.all(p <= 1.0) for p in calls)
    assert evals == len(calls) == 3
    assert grad[1] == pytest.approx(0.5 + 2.0, rel=1e-4)
    assert grad[0] > 100.0


def test_approx_grad_fixed_variable_has_zero_derivative():
    grad, evals = approx_grad(
        lambda x: float(x[0] + 2 * x[1]),
        np.array([0.5, 0.25]),
        return_evals=True,
        lower=np.array([0.5, -1.0]),
        upper=np.array([0.5, 1.0]),
    )
    assert grad[0] == 0.0
    assert grad[1] == pytest.approx(2.0)
    assert evals == 2
