"""Core interfaces shared across the optimizer components.

The optimizer reports its outcome through a :class:`Status` code plus a
human-readable message. Success in optimization is not binary, so six codes
are distinguished:

1. ``SUCCESS``: normal termination having converged.
2. ``APPROXIMATE``: normal termination with a looser answer, e.g. the
   relative reduction test fired while the projected gradient was still
   above tolerance.
3. ``WARNING``: the result could be fine but needs examination, e.g. the
   iteration or evaluation ceiling was reached.
4. ``FAILURE``: the optimization itself failed, e.g. repeated line-search
   breakdown or an objective/gradient evaluation error.
5. ``USAGE_ERROR``: invalid input such as inconsistent bounds or bad
   parameters. Responsibility is on the caller.
6. ``INTERNAL_ERROR``: a violated optimizer invariant. Responsibility is on
   this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

Array = np.ndarray
Objective = Callable[..., float]
Gradient = Callable[..., Array]

MESSAGE_LENGTH = 250


class Status(Enum):
    """Terminal classification of an optimization run."""

    SUCCESS = 0
    APPROXIMATE = 1
    WARNING = 2
    FAILURE = 3
    USAGE_ERROR = 4
    INTERNAL_ERROR = 5

    def __str__(self) -> str:
        return self.name

    @property
    def converged(self) -> bool:
        return self in (Status.SUCCESS, Status.APPROXIMATE)


def truncate_message(message: str, length: int = MESSAGE_LENGTH) -> str:
    """Clip ``message`` to at most ``length`` characters."""
    if len(message) <= length:
        return message
    return message[: length - 3] + "..."


@dataclass(frozen=True)
class ExitStatus:
    """Status code and explanation of how a run ended."""

    code: Status
    message: str = ""

    def __str__(self) -> str:
        return f"Exit status: {self.code}; Message: {self.message};"

    def as_error(self) -> Optional["LbfgsbError"]:
        """Return ``None`` on SUCCESS, otherwise an error wrapping this status."""
        if self.code is Status.SUCCESS:
            return None
        return LbfgsbError(str(self), exit_status=self)


class LbfgsbError(Exception):
    """Base class for errors raised by this package."""

    def __init__(self, message: str = "", exit_status: Optional[ExitStatus] = None):
        super().__init__(message)
        self.exit_status = exit_status


class UsageError(LbfgsbError, ValueError):
    """Malformed input detected before any iteration took place."""


class EvaluationError(LbfgsbError):
    """Raised by (or on behalf of) a callback that failed to evaluate.

    Objective and gradient callbacks raise this to abort the run; the
    message is reported to the caller verbatim.
    """


@dataclass(frozen=True)
class Problem:
    """Container describing an optimization problem.

    ``args`` is opaque caller context forwarded unchanged as extra positional
    arguments to ``fun`` and ``grad`` on every call. When ``grad`` is None the
    gradient is approximated by central differences.
    """

    fun: Objective
    grad: Optional[Gradient] = None
    dim: Optional[int] = None
    args: Tuple[Any, ...] = ()


@dataclass
class PointValueGradient:
    """A point ``x``, its objective value ``f`` and its gradient ``g``."""

    x: Array
    f: float
    g: Array


@dataclass(frozen=True)
class OptimizationStatistics:
    """Basic counters for a run. Negative values mean "not tracked"."""

    iterations: int = -1
    function_evaluations: int = -1
    gradient_evaluations: int = -1


@dataclass
class IterationInfo:
    """Diagnostics for one completed iteration, handed to the log callback."""

    iteration: int
    f_evals: int
    g_evals: int
    f_evals_total: int
    g_evals_total: int
    step_length: float
    x: Array
    f: float
    g: Array
    f_delta: float
    f_delta_bound: float
    g_norm: float
    g_norm_bound: float

    @property
    def fg_evals(self) -> int:
        return self.f_evals + self.g_evals

    @property
    def fg_evals_total(self) -> int:
        return self.f_evals_total + self.g_evals_total

    @staticmethod
    def header() -> str:
        """Column descriptions for the rows produced by ``str()``."""
        return "iter, f(x), step, df(x) <1?, ||f'(x)|| <1?, #f(), #g()"

    def __str__(self) -> str:
        f_ratio = _ratio(self.f_delta, self.f_delta_bound)
        g_ratio = _ratio(self.g_norm, self.g_norm_bound)
        f_flag = "T" if f_ratio < 1.0 else "F"
        g_flag = "T" if g_ratio < 1.0 else "F"
        return (
            f"{self.iteration} {self.f:g} {self.step_length:g} "
            f"{self.f_delta:g} {f_ratio:.2g}{f_flag} "
            f"{self.g_norm:g} {g_ratio:.2g}{g_flag} "
            f"{self.f_evals} {self.g_evals}"
        )


def _ratio(value: float, bound: float) -> float:
    if bound > 0:
        return value / bound
    return 0.0 if value == 0 else float("inf")


@dataclass
class OptimizeResult:
    """Result returned by :func:`lbfgsb.optimizer.lbfgsb`.

    ``x``/``fun``/``grad`` describe the best point found, even when the run
    did not converge. ``grad_norm`` is the infinity norm of the projected
    gradient at ``x``.
    """

    x: Array
    fun: float
    grad: Array
    nit: int
    nfev: int
    njev: int
    status: Status
    message: str
    grad_norm: float
    history: List[Array] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status.converged

    @property
    def nevals(self) -> int:
        """Total number of objective plus gradient callback invocations."""
        return self.nfev + self.njev

    @property
    def exit_status(self) -> ExitStatus:
        return ExitStatus(self.status, self.message)

    @property
    def minimum(self) -> PointValueGradient:
        return PointValueGradient(x=self.x, f=self.fun, g=self.grad)

    @property
    def statistics(self) -> OptimizationStatistics:
        return OptimizationStatistics(
            iterations=self.nit,
            function_evaluations=self.nfev,
            gradient_evaluations=self.njev,
        )


__all__ = [
    "Array",
    "Objective",
    "Gradient",
    "MESSAGE_LENGTH",
    "Status",
    "ExitStatus",
    "LbfgsbError",
    "UsageError",
    "EvaluationError",
    "Problem",
    "PointValueGradient",
    "OptimizationStatistics",
    "IterationInfo",
    "OptimizeResult",
    "truncate_message",
]
