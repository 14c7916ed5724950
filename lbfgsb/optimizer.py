"""Iteration controller for limited-memory BFGS with box constraints.

Each iteration computes the generalized Cauchy point, minimizes the
quadratic model over the variables it leaves free, runs a bounded line
search towards that subspace minimizer, then updates the compact Hessian
with the new correction pair. Without any bounds the search direction comes
straight from the two-loop recursion, which yields the same point as the
Cauchy/subspace pair for an unconstrained model.

The run always ends with a terminal :class:`~lbfgsb.core.Status` and the
best point reached so far, also on failure.

Example
-------
>>> import numpy as np
>>> from lbfgsb import Problem, lbfgsb
>>> problem = Problem(fun=lambda x: float(x @ x), grad=lambda x: 2 * x)
>>> res = lbfgsb(problem, np.array([7.0, -8.0, 9.0]))
>>> res.status.name, bool(np.allclose(res.x, 0.0))
('SUCCESS', True)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Mapping, Optional

import numpy as np

from .bounds import Bounds, MAX_STEP, make_bounds
from .cauchy import generalized_cauchy_point
from .core import (
    Array,
    EvaluationError,
    IterationInfo,
    OptimizationStatistics,
    OptimizeResult,
    Problem,
    Status,
    UsageError,
    truncate_message,
)
from .hessian import LimitedMemoryHessian
from .line_search import LineSearchResult, backtracking_armijo, wolfe_line_search
from .logging import get_logger
from .objective import CountingEvaluator, ObjectiveLike, as_problem
from .options import LbfgsbOptions
from .subspace import subspace_minimize

logger = get_logger(__name__)

LogCallback = Callable[[IterationInfo], Any]


class RunState(Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED = "failed"
    TERMINATED = "terminated"


_TERMINAL_STATE = {
    Status.SUCCESS: RunState.CONVERGED,
    Status.APPROXIMATE: RunState.CONVERGED,
    Status.WARNING: RunState.TERMINATED,
    Status.FAILURE: RunState.FAILED,
    Status.USAGE_ERROR: RunState.FAILED,
    Status.INTERNAL_ERROR: RunState.FAILED,
}


class _Terminate(Exception):
    """Internal signal carrying the terminal status out of an iteration."""

    def __init__(self, status: Status, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class IterationController:
    """Owns the state of one run. Not reusable across runs."""

    def __init__(
        self,
        problem: Problem,
        x0: Array,
        bounds: Bounds,
        options: LbfgsbOptions,
        callback: Optional[LogCallback] = None,
    ):
        self.problem = problem
        self.bounds = bounds
        self.options = options
        self.callback = callback
        self.dim = bounds.dim
        self.state = RunState.INITIALIZING
        self.evaluator = CountingEvaluator(problem, self.dim, bounds)
        self.hessian = LimitedMemoryHessian(
            self.dim, options.approximation_size, options.curvature_eps
        )
        self.x = bounds.project(x0)
        self.f = np.nan
        self.g = np.full(self.dim, np.nan)
        self.grad_norm = np.nan
        self.nit = 0
        self.history: list[Array] = []
        self._ls_failures = 0
        self._skipped_updates = 0

    def run(self) -> OptimizeResult:
        opts = self.options
        logger.debug(
            "Starting L-BFGS-B: dim=%d, m=%d, f_tolerance=%g, g_tolerance=%g",
            self.dim,
            opts.approximation_size,
            opts.f_tolerance,
            opts.g_tolerance,
        )
        try:
            self._initialize()
            self.state = RunState.ITERATING
            while True:
                if self.nit >= opts.max_iterations:
                    raise _Terminate(Status.WARNING, "Iteration limit reached.")
                if self.evaluator.nevals >= opts.max_evaluations:
                    raise _Terminate(Status.WARNING, "Evaluation limit reached.")
                self._iterate()
        except EvaluationError as exc:
            return self._finish(Status.FAILURE, str(exc))
        except _Terminate as term:
            return self._finish(term.status, term.message)

    def _initialize(self) -> None:
        if self.options.history:
            self.history.append(self.x.copy())
        self.f = self.evaluator.fun(self.x)
        self.g = self.evaluator.grad(self.x)
        if not np.isfinite(self.f):
            raise EvaluationError(f"Objective is not finite at the initial point: {self.f}")
        if not np.all(np.isfinite(self.g)):
            raise EvaluationError("Gradient is not finite at the initial point.")
        self.grad_norm = self.bounds.projected_gradient_norm(self.x, self.g)
        if self.grad_norm <= self.options.g_tolerance:
            raise _Terminate(Status.SUCCESS, "Projected gradient tolerance satisfied at the initial point.")

    def _search_direction(self) -> Array:
        if self.bounds.is_unbounded:
            direction = -self.hessian.inverse_multiply(self.g)
            fallback = -self.g
        else:
            cauchy = generalized_cauchy_point(self.x, self.g, self.bounds, self.hessian)
            step = subspace_minimize(self.x, self.g, cauchy, self.bounds, self.hessian)
            direction = step.x - self.x
            fallback = cauchy.x - self.x
            logger.debug(
                "Iteration %d: %d active, %d free, truncated=%s",
                self.nit + 1,
                int(np.count_nonzero(cauchy.active)),
                step.n_free,
                step.truncated,
            )
        if float(np.dot(self.g, direction)) < 0:
            return direction
        logger.debug("Subspace direction is not a descent direction; using the Cauchy step.")
        if len(self.hessian):
            self.hessian.reset()
        if float(np.dot(self.g, fallback)) < 0:
            return fallback
        raise _Terminate(Status.INTERNAL_ERROR, "Could not compute a descent direction.")

    def _line_search(self, direction: Array) -> LineSearchResult:
        opts = self.options
        alpha_max = self.bounds.max_step(self.x, direction, cap=MAX_STEP)
        if len(self.hessian) == 0 and self.bounds.is_unbounded:
            alpha0 = min(1.0 / float(np.linalg.norm(direction)), alpha_max)
        else:
            alpha0 = min(1.0, alpha_max)
        if opts.line_search == "armijo":
            return backtracking_armijo(
                self.evaluator.fun,
                self.x,
                direction,
                self.g,
                self.f,
                alpha0=alpha0,
                c=opts.ftol_line_search,
                max_iter=opts.max_line_search_steps,
                alpha_max=alpha_max,
                project=self.bounds.project,
            )
        return wolfe_line_search(
            self.evaluator.fun,
            self.evaluator.grad,
            self.x,
            direction,
            self.f,
            self.g,
            alpha0=alpha0,
            c1=opts.ftol_line_search,
            c2=opts.gtol_line_search,
            max_iter=opts.max_line_search_steps,
            alpha_max=alpha_max,
            project=self.bounds.project,
        )

    def _iterate(self) -> None:
        opts = self.options
        nfev0, njev0 = self.evaluator.nfev, self.evaluator.njev
        direction = self._search_direction()
        ls = self._line_search(direction)

        if ls.alpha <= 0.0:
            self._ls_failures += 1
            self.nit += 1
            logger.warning("Iteration %d: %s", self.nit, ls.message)
            self._emit(0.0, 0.0, nfev0, njev0)
            if len(self.hessian) == 0 or self._ls_failures >= opts.max_line_search_failures:
                raise _Terminate(
                    Status.FAILURE,
                    f"Line search failed to make progress ({self._ls_failures} consecutive failures).",
                )
            logger.debug("Discarding %d correction pairs after line-search failure.", len(self.hessian))
            self.hessian.reset()
            return
        self._ls_failures = 0
        if not ls.success:
            logger.debug("Iteration %d: %s", self.nit + 1, ls.message)

        x_new = self.bounds.project(self.x + ls.alpha * direction)
        f_new = ls.fun
        g_new = ls.grad if ls.grad is not None else self.evaluator.grad(x_new)
        if not np.all(np.isfinite(g_new)):
            raise EvaluationError(f"Gradient is not finite at iteration {self.nit + 1}.")

        if self.hessian.capacity:
            if self.hessian.update(x_new - self.x, g_new - self.g):
                self._skipped_updates = 0
            else:
                self._skipped_updates += 1
                logger.debug(
                    "Iteration %d: skipped Hessian update (%d in a row)",
                    self.nit + 1,
                    self._skipped_updates,
                )

        f_prev = self.f
        self.x, self.f, self.g = x_new, f_new, g_new
        self.nit += 1
        self.grad_norm = self.bounds.projected_gradient_norm(self.x, self.g)
        if opts.history:
            self.history.append(self.x.copy())

        f_delta = f_prev - self.f
        f_bound = opts.f_tolerance * max(abs(f_prev), abs(self.f), 1.0)
        self._emit(ls.alpha, f_delta, nfev0, njev0, f_bound)

        if f_delta < 0:
            raise _Terminate(
                Status.INTERNAL_ERROR,
                f"Objective increased from {f_prev:g} to {self.f:g} at iteration {self.nit}.",
            )
        if self.grad_norm <= opts.g_tolerance:
            raise _Terminate(Status.SUCCESS, "Projected gradient tolerance satisfied.")
        if f_delta <= f_bound:
            if self.grad_norm <= 10.0 * opts.g_tolerance:
                raise _Terminate(Status.SUCCESS, "Relative reduction of f below tolerance.")
            raise _Terminate(
                Status.APPROXIMATE,
                "Relative reduction of f below tolerance; projected gradient "
                f"{self.grad_norm:g} above tolerance.",
            )
        if self._skipped_updates >= opts.max_skipped_updates:
            raise _Terminate(
                Status.INTERNAL_ERROR,
                f"Hessian update rejected {self._skipped_updates} consecutive times "
                "(curvature condition y's > 0 not met).",
            )

    def _emit(
        self,
        step: float,
        f_delta: float,
        nfev0: int,
        njev0: int,
        f_bound: Optional[float] = None,
    ) -> None:
        opts = self.options
        if opts.verbosity < 1:
            return
        if f_bound is None:
            f_bound = opts.f_tolerance * max(abs(self.f), 1.0)
        info = IterationInfo(
            iteration=self.nit,
            f_evals=self.evaluator.nfev - nfev0,
            g_evals=self.evaluator.njev - njev0,
            f_evals_total=self.evaluator.nfev,
            g_evals_total=self.evaluator.njev,
            step_length=float(step),
            x=self.x.copy(),
            f=float(self.f),
            g=self.g.copy(),
            f_delta=float(f_delta),
            f_delta_bound=float(f_bound),
            g_norm=float(self.grad_norm),
            g_norm_bound=float(opts.g_tolerance),
        )
        if opts.verbosity >= 2:
            if self.nit == 1:
                logger.info(IterationInfo.header())
            logger.info("%s", info)
        if self.callback is not None and self.callback(info):
            raise _Terminate(Status.WARNING, "Terminated by logging callback.")

    def _finish(self, status: Status, message: str) -> OptimizeResult:
        self.state = _TERMINAL_STATE[status]
        message = truncate_message(message)
        log = logger.info if status.converged else logger.warning
        log(
            "L-BFGS-B finished: %s (%s) after %d iterations, %d evaluations",
            status,
            message,
            self.nit,
            self.evaluator.nevals,
        )
        return OptimizeResult(
            x=self.x.copy(),
            fun=float(self.f),
            grad=self.g.copy(),
            nit=self.nit,
            nfev=self.evaluator.nfev,
            njev=self.evaluator.njev,
            status=status,
            message=message,
            grad_norm=float(self.grad_norm),
            history=self.history,
        )


def _usage_error(x0: Any, exc: Exception) -> OptimizeResult:
    try:
        x = np.array(x0, dtype=float).reshape(-1)
    except (TypeError, ValueError):
        x = np.empty(0)
    message = truncate_message(str(exc))
    logger.warning("L-BFGS-B usage error: %s", message)
    return OptimizeResult(
        x=x,
        fun=float("nan"),
        grad=np.full(x.size, np.nan),
        nit=0,
        nfev=0,
        njev=0,
        status=Status.USAGE_ERROR,
        message=message,
        grad_norm=float("nan"),
    )


def _initial_point(x0: Any, problem: Problem) -> Array:
    try:
        x = np.array(x0, dtype=float).reshape(-1)
    except (TypeError, ValueError) as exc:
        raise UsageError(f"Initial point is not a numeric vector: {exc}") from exc
    if x.size == 0:
        raise UsageError("Initial point must have at least one component.")
    if not np.all(np.isfinite(x)):
        raise UsageError("Initial point contains non-finite values.")
    if problem.dim is not None and problem.dim != x.size:
        raise UsageError(
            f"Dimensionality disagreement: problem: {problem.dim}, initialPoint: {x.size}"
        )
    return x


def lbfgsb(
    problem: ObjectiveLike,
    x0: Array,
    bounds: Optional[Bounds] = None,
    *,
    bounds_control: Optional[Array] = None,
    lower_bounds: Any = None,
    upper_bounds: Any = None,
    options: Optional[LbfgsbOptions] = None,
    callback: Optional[LogCallback] = None,
    **parameters: Any,
) -> OptimizeResult:
    """Minimize ``problem`` subject to box constraints.

    Parameters
    ----------
    problem:
        A :class:`~lbfgsb.core.Problem` or any object with
        ``evaluate_function``/``evaluate_gradient``.
    x0:
        Initial point; projected onto the box before the first evaluation.
    bounds:
        Prebuilt :class:`~lbfgsb.bounds.Bounds`. Alternatively pass
        ``bounds_control`` with ``lower_bounds``/``upper_bounds``, or only
        the value arrays to derive the control codes from them.
    options:
        Base configuration; keyword ``parameters`` override its fields.
    callback:
        Called with an :class:`~lbfgsb.core.IterationInfo` after every
        iteration while ``verbosity >= 1``. A truthy return value stops the
        run with ``Status.WARNING``.

    Returns
    -------
    OptimizeResult
        Never raises for invalid input or failed evaluations; those are
        reported through ``status`` and ``message``.
    """
    try:
        problem = as_problem(problem)
        opts = (options or LbfgsbOptions()).with_overrides(parameters)
        x = _initial_point(x0, problem)
        if bounds is None:
            bounds = make_bounds(x.size, bounds_control, lower_bounds, upper_bounds)
        elif bounds.dim != x.size:
            raise UsageError(
                f"Dimensionality disagreement: initialPoint: {x.size}, bounds: {bounds.dim}"
            )
    except (UsageError, TypeError) as exc:
        return _usage_error(x0, exc)
    return IterationController(problem, x, bounds, opts, callback).run()


class Lbfgsb:
    """Reusable minimizer holding bounds and default parameters.

    Per-call ``parameters`` override, but do not replace, the defaults given
    at construction. Statistics of the most recent run are kept in
    :attr:`statistics`.

    Example
    -------
    >>> import numpy as np
    >>> from lbfgsb import GeneralObjectiveFunction, Lbfgsb
    >>> square = GeneralObjectiveFunction(lambda x: float(x @ x), lambda x: 2 * x)
    >>> res = Lbfgsb(lower_bounds=[2.0], upper_bounds=[10.0]).minimize(square, [5.0])
    >>> float(res.x[0])
    2.0
    """

    def __init__(
        self,
        lower_bounds: Any = None,
        upper_bounds: Any = None,
        bounds_control: Optional[Array] = None,
        options: Optional[LbfgsbOptions] = None,
        **parameters: Any,
    ):
        self.lower_bounds = lower_bounds
        self.upper_bounds = upper_bounds
        self.bounds_control = bounds_control
        self.options = (options or LbfgsbOptions()).with_overrides(parameters)
        self._statistics = OptimizationStatistics()

    @property
    def statistics(self) -> OptimizationStatistics:
        return self._statistics

    def minimize(
        self,
        objective: ObjectiveLike,
        initial_point: Array,
        parameters: Optional[Mapping[str, Any]] = None,
        callback: Optional[LogCallback] = None,
    ) -> OptimizeResult:
        res = lbfgsb(
            objective,
            initial_point,
            bounds_control=self.bounds_control,
            lower_bounds=self.lower_bounds,
            upper_bounds=self.upper_bounds,
            options=self.options,
            callback=callback,
            **dict(parameters or {}),
        )
        self._statistics = res.statistics
        return res


__all__ = ["IterationController", "Lbfgsb", "RunState", "lbfgsb"]
