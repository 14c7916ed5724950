"""Objective/gradient callback protocol and evaluation bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

import numpy as np

from .bounds import Bounds
from .core import Array, EvaluationError, Problem
from .utils import approx_grad


@runtime_checkable
class FunctionWithGradient(Protocol):
    """A function ``f: R^n -> R`` together with its gradient."""

    def evaluate_function(self, point: Array) -> float:
        ...

    def evaluate_gradient(self, point: Array) -> Array:
        ...


@dataclass(frozen=True)
class GeneralObjectiveFunction:
    """Combine two plain callables into a :class:`FunctionWithGradient`."""

    function: Callable[[Array], float]
    gradient: Callable[[Array], Array]

    def evaluate_function(self, point: Array) -> float:
        return self.function(point)

    def evaluate_gradient(self, point: Array) -> Array:
        return self.gradient(point)


ObjectiveLike = Union[Problem, FunctionWithGradient]


def as_problem(objective: ObjectiveLike) -> Problem:
    """Normalize a :class:`Problem` or :class:`FunctionWithGradient`."""
    if isinstance(objective, Problem):
        return objective
    if isinstance(objective, FunctionWithGradient):
        return Problem(fun=objective.evaluate_function, grad=objective.evaluate_gradient)
    raise TypeError(
        "Objective must be a Problem or implement evaluate_function/evaluate_gradient, "
        f"got {type(objective).__name__}"
    )


def _is_status(item: Any) -> bool:
    return isinstance(item, (int, np.integer)) and not isinstance(item, (bool, np.bool_))


def _unpack(result: Any, kind: str, value_ndim: int) -> Any:
    """Split the optional ``(value, status)`` return form.

    Only a pair whose first item has ``value_ndim`` dimensions (0 for the
    objective, 1 for the gradient) counts, so a plain 2-tuple gradient such
    as ``(2 * x[0], 3)`` is taken as the gradient itself.
    """
    if (
        isinstance(result, tuple)
        and len(result) == 2
        and _is_status(result[1])
        and np.ndim(result[0]) == value_ndim
    ):
        value, status = result
        if status != 0:
            raise EvaluationError(f"{kind} evaluation returned status {int(status)}")
        return value
    return result


class CountingEvaluator:
    """Invoke the problem's callbacks, counting every call.

    Callbacks receive a copy of the point. Finite-difference gradients are
    charged to ``nfev`` since they are built from objective calls, and stay
    inside ``bounds`` when given.
    """

    def __init__(self, problem: Problem, dim: int, bounds: Optional[Bounds] = None):
        self.problem = problem
        self.dim = dim
        self.bounds = bounds
        self.nfev = 0
        self.njev = 0

    @property
    def nevals(self) -> int:
        return self.nfev + self.njev

    def fun(self, x: Array) -> float:
        self.nfev += 1
        value = _unpack(self.problem.fun(np.array(x, dtype=float), *self.problem.args), "Objective", 0)
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise EvaluationError(f"Objective returned a non-scalar value: {exc}") from exc

    def grad(self, x: Array) -> Array:
        if self.problem.grad is None:
            lower = upper = None
            if self.bounds is not None:
                lower, upper = self.bounds.lower, self.bounds.upper
            grad, evals = approx_grad(
                self.fun_uncounted, x, return_evals=True, lower=lower, upper=upper
            )
            self.nfev += int(evals)
            return grad
        self.njev += 1
        value = _unpack(self.problem.grad(np.array(x, dtype=float), *self.problem.args), "Gradient", 1)
        grad = np.asarray(value, dtype=float).reshape(-1)
        if grad.size != self.dim:
            raise EvaluationError(
                f"Gradient has {grad.size} components, expected {self.dim}"
            )
        return grad

    def fun_uncounted(self, x: Array) -> float:
        value = _unpack(self.problem.fun(np.array(x, dtype=float), *self.problem.args), "Objective", 0)
        return float(value)


__all__ = [
    "FunctionWithGradient",
    "GeneralObjectiveFunction",
    "ObjectiveLike",
    "as_problem",
    "CountingEvaluator",
]
