import numpy as np
import pytest
import torch

from lbfgsb import EvaluationError, Status, lbfgsb
from lbfgsb.torch import (
    TorchObjective,
    as_float_tensor,
    infer_device,
    torch_problem,
    validate_params_shape,
)


def test_infer_device_defaults_to_cpu():
    assert infer_device(None) == torch.device("cpu")
    assert infer_device("cpu") == torch.device("cpu")


def test_as_float_tensor_copies_numpy():
    x = np.array([1.0, 2.0])
    t = as_float_tensor(x)
    assert t.dtype == torch.float64
    t[0] = 5.0
    assert x[0] == 1.0


def test_validate_params_shape():
    validate_params_shape(torch.zeros(3), 3)
    with pytest.raises(ValueError):
        validate_params_shape(torch.zeros(2, 2), 4)
    with pytest.raises(ValueError):
        validate_params_shape(torch.zeros(3), 2)


def test_gradient_matches_analytic():
    objective = TorchObjective(lambda x: torch.sum(x**2) + x[0] * x[1])
    point = np.array([1.0, -2.0])
    assert objective.evaluate_function(point) == pytest.approx(3.0)
    assert np.allclose(objective.evaluate_gradient(point), [0.0, -3.0])


def test_constant_objective_has_zero_gradient():
    objective = TorchObjective(lambda x: torch.tensor(2.0, dtype=torch.float64))
    assert np.array_equal(objective.evaluate_gradient(np.ones(3)), np.zeros(3))


def test_non_scalar_output_is_evaluation_error():
    objective = TorchObjective(lambda x: x * 2)
    with pytest.raises(EvaluationError):
        objective.evaluate_function(np.ones(2))


def test_wrong_dimension_fails_the_run():
    res = lbfgsb(TorchObjective(lambda x: torch.sum(x**2), dim=3), np.ones(2))
    assert res.status is Status.FAILURE
    assert "does not match" in res.message


def test_bounded_minimization_through_autograd():
    problem = torch_problem(lambda x: torch.sum((x - 3.0) ** 2), dim=2)
    res = lbfgsb(problem, np.zeros(2), upper_bounds=2.5)
    assert res.status is Status.SUCCESS
    assert np.allclose(res.x, [2.5, 2.5])


def test_rosenbrock_with_autograd():
    def rosen(x):
        return torch.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2)

    res = lbfgsb(TorchObjective(rosen), np.array([-1.2, 1.0, -1.2, 1.0]), g_tolerance=1e-7, f_tolerance=0.0)
    assert res.success
    assert np.allclose(res.x, 1.0, atol=1e-4)
