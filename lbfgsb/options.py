"""Configuration for the L-BFGS-B minimizer."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

import numpy as np

from .core import UsageError

LINE_SEARCHES = ("wolfe", "armijo")


@dataclass(frozen=True)
class LbfgsbOptions:
    """
    Tunable parameters of a run.

    Args:
        approximation_size: Number of correction pairs kept (``m``). Zero
            gives projected steepest descent.
        f_tolerance: Stop when ``(f_prev - f) / max(|f_prev|, |f|, 1)`` is at
            most this value.
        g_tolerance: Stop when the infinity norm of the projected gradient
            is at most this value.
        max_iterations: Iteration ceiling.
        max_evaluations: Soft ceiling on objective plus gradient evaluations.
            It is checked between iterations, so the iteration in progress
            may overshoot it by at most the cost of one line search
            (``2 * max_line_search_steps`` with analytic gradients).
        ftol_line_search: Sufficient-decrease constant ``c1``.
        gtol_line_search: Curvature constant ``c2``; requires ``0 < c1 < c2 < 1``.
        max_line_search_steps: Trial evaluations allowed per line search.
        max_line_search_failures: Consecutive line searches without progress
            tolerated before the run fails.
        max_skipped_updates: Consecutive rejected Hessian updates tolerated
            before the run is reported as an internal error.
        curvature_eps: An update is rejected unless ``y^T s > eps * y^T y``.
        line_search: ``"wolfe"`` or ``"armijo"``.
        verbosity: 0 disables the log callback, 1 invokes it once per
            iteration, 2 also logs each iteration at INFO.
        history: Record every accepted iterate.
    """

    approximation_size: int = 5
    f_tolerance: float = 2.220446049250313e-09
    g_tolerance: float = 1e-5
    max_iterations: int = 15000
    max_evaluations: int = 15000
    ftol_line_search: float = 1e-3
    gtol_line_search: float = 0.9
    max_line_search_steps: int = 20
    max_line_search_failures: int = 3
    max_skipped_updates: int = 50
    curvature_eps: float = 2.220446049250313e-16
    line_search: str = "wolfe"
    verbosity: int = 1
    history: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise :class:`UsageError` if any field is out of range."""
        _check_int("approximation_size", self.approximation_size, minimum=0)
        _check_int("max_iterations", self.max_iterations, minimum=1)
        _check_int("max_evaluations", self.max_evaluations, minimum=1)
        _check_int("max_line_search_steps", self.max_line_search_steps, minimum=1)
        _check_int("max_line_search_failures", self.max_line_search_failures, minimum=1)
        _check_int("max_skipped_updates", self.max_skipped_updates, minimum=1)
        _check_int("verbosity", self.verbosity, minimum=0)
        _check_float("f_tolerance", self.f_tolerance)
        _check_float("g_tolerance", self.g_tolerance)
        _check_float("curvature_eps", self.curvature_eps)
        c1, c2 = self.ftol_line_search, self.gtol_line_search
        _check_float("ftol_line_search", c1)
        _check_float("gtol_line_search", c2)
        if not (0 < c1 < c2 < 1):
            raise UsageError(
                f"Bad parameter values: ftol_line_search: {c1}, gtol_line_search: {c2}. "
                "Expected 0 < ftol_line_search < gtol_line_search < 1."
            )
        if self.line_search not in LINE_SEARCHES:
            raise UsageError(
                f"Bad parameter value: line_search: {self.line_search!r}. "
                f"Expected one of {LINE_SEARCHES}."
            )
        if not isinstance(self.history, (bool, np.bool_)):
            raise UsageError(f"Bad parameter value: history: {self.history!r}. Expected bool.")

    def with_overrides(self, parameters: Optional[Mapping[str, Any]]) -> "LbfgsbOptions":
        """Return a copy with ``parameters`` applied on top of these values."""
        if not parameters:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(parameters) - known)
        if unknown:
            raise UsageError(f"Unknown parameter(s): {', '.join(unknown)}")
        return replace(self, **dict(parameters))


def _check_int(name: str, value: Any, minimum: int) -> None:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)) or value < minimum:
        raise UsageError(
            f"Bad parameter value: {name}: {value!r}. Expected integer >= {minimum}."
        )


def _check_float(name: str, value: Any) -> None:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise UsageError(f"Bad parameter value: {name}: {value!r}. Expected float >= 0.")
    if not np.isfinite(value) or value < 0:
        raise UsageError(f"Bad parameter value: {name}: {value!r}. Expected float >= 0.")


__all__ = ["LINE_SEARCHES", "LbfgsbOptions"]
