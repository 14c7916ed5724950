"""Bounded line-search routines following Nocedal & Wright, chapter 3.

Both searches look along ``x + alpha p`` for ``alpha`` in ``(0, alpha_max]``;
``alpha_max`` is the distance to the nearest bound along ``p`` so every
trial point stays feasible. Non-finite objective values are treated as a
failed sufficient-decrease test, which makes the search back off.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .core import Array

Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
Projection = Callable[[Array], Array]


@dataclass
class LineSearchResult:
    """Outcome of a line search.

    ``grad`` is the gradient at the accepted point when the search had to
    compute it, otherwise ``None``. ``success`` is False when the trial
    budget ran out; ``alpha`` then describes the best point seen, which is
    ``0.0`` if no trial produced a sufficient decrease.
    """

    alpha: float
    fun: float
    grad: Optional[Array]
    nfev: int
    njev: int
    success: bool
    message: str


def _finite(value: float) -> float:
    return value if np.isfinite(value) else np.inf


def backtracking_armijo(
    f: Objective,
    x: Array,
    p: Array,
    grad_fx: Array,
    fx: float,
    alpha0: float = 1.0,
    rho: float = 0.5,
    c: float = 1e-4,
    max_iter: int = 50,
    alpha_max: float = np.inf,
    project: Optional[Projection] = None,
) -> LineSearchResult:
    """Classic Armijo backtracking line search, capped at ``alpha_max``."""
    if not (0 < c < 1):
        raise ValueError("Armijo constant c must lie in (0, 1)")
    if not (0 < rho < 1):
        raise ValueError("rho must lie in (0, 1)")
    if alpha_max <= 0:
        raise ValueError("alpha_max must be positive")
    grad_dot = float(np.dot(grad_fx, p))
    if grad_dot >= 0:
        raise ValueError("Search direction must be a descent direction.")
    alpha = min(float(alpha0), alpha_max)
    nfev = 0
    for _ in range(max_iter):
        candidate = x + alpha * p
        if project is not None:
            candidate = project(candidate)
        f_new = _finite(float(f(candidate)))
        nfev += 1
        if f_new <= fx + c * alpha * grad_dot:
            return LineSearchResult(alpha, f_new, None, nfev, 0, True, "Armijo condition satisfied.")
        alpha *= rho
    return LineSearchResult(
        0.0, fx, None, nfev, 0, False, "Line search failed to find a sufficient decrease."
    )


def wolfe_line_search(
    f: Objective,
    grad: Gradient,
    x: Array,
    p: Array,
    fx: float,
    gx: Array,
    alpha0: float = 1.0,
    c1: float = 1e-4,
    c2: float = 0.9,
    max_iter: int = 40,
    alpha_max: float = np.inf,
    project: Optional[Projection] = None,
) -> LineSearchResult:
    """Strong Wolfe line search using bracketing and a safeguarded zoom.

    Every trial costs one objective evaluation; the gradient is evaluated
    only at trials that pass the sufficient-decrease test. ``max_iter``
    bounds the number of trials over both phases.
    """
    if not (0 < c1 < c2 < 1):
        raise ValueError("Require 0 < c1 < c2 < 1 for Wolfe conditions.")
    if alpha_max <= 0:
        raise ValueError("alpha_max must be positive")
    der0 = float(np.dot(gx, p))
    if der0 >= 0:
        raise ValueError("Search direction must be a descent direction.")

    nfev = 0
    njev = 0

    def point(alpha: float) -> Array:
        candidate = x + alpha * p
        return project(candidate) if project is not None else candidate

    def phi(alpha: float) -> float:
        nonlocal nfev
        nfev += 1
        return _finite(float(f(point(alpha))))

    def phi_prime(alpha: float) -> tuple[Array, float]:
        nonlocal njev
        njev += 1
        g = np.asarray(grad(point(alpha)), dtype=float)
        return g, float(np.dot(g, p))

    alpha_lo, phi_lo, der_lo, grad_lo = 0.0, float(fx), der0, gx
    alpha_hi: Optional[float] = None
    phi_hi = np.inf
    alpha = min(float(alpha0), alpha_max)

    for _ in range(max_iter):
        phi_alpha = phi(alpha)
        if phi_alpha > fx + c1 * alpha * der0 or (alpha_lo > 0 and phi_alpha >= phi_lo):
            alpha_hi, phi_hi = alpha, phi_alpha
        else:
            grad_alpha, der_alpha = phi_prime(alpha)
            if abs(der_alpha) <= -c2 * der0:
                return LineSearchResult(
                    alpha, phi_alpha, grad_alpha, nfev, njev, True, "Strong Wolfe conditions satisfied."
                )
            if alpha_hi is None:
                if der_alpha >= 0:
                    alpha_hi, phi_hi = alpha_lo, phi_lo
            elif der_alpha * (alpha_hi - alpha_lo) >= 0:
                alpha_hi, phi_hi = alpha_lo, phi_lo
            alpha_lo, phi_lo, der_lo, grad_lo = alpha, phi_alpha, der_alpha, grad_alpha
            if alpha_hi is None and alpha >= alpha_max:
                return LineSearchResult(
                    alpha, phi_alpha, grad_alpha, nfev, njev, True, "Step length reached the bound."
                )

        if alpha_hi is None:
            alpha = min(2.0 * alpha, alpha_max)
        else:
            if abs(alpha_hi - alpha_lo) <= 1e-12 * max(1.0, abs(alpha_lo)):
                break
            alpha = _interpolate(alpha_lo, phi_lo, der_lo, alpha_hi, phi_hi)

    if alpha_lo > 0:
        return LineSearchResult(
            alpha_lo,
            phi_lo,
            grad_lo,
            nfev,
            njev,
            False,
            "Line search did not satisfy the curvature condition; using best point.",
        )
    return LineSearchResult(
        0.0, float(fx), gx, nfev, njev, False, "Line search failed to find a sufficient decrease."
    )


def _interpolate(
    alpha_lo: float, phi_lo: float, der_lo: float, alpha_hi: float, phi_hi: float
) -> float:
    """Minimizer of the quadratic through the bracket ends, safeguarded.

    Falls back to bisection when the quadratic has no interior minimizer or
    the minimizer lies within 10% of either end of the bracket.
    """
    delta = alpha_hi - alpha_lo
    denom = 2.0 * (phi_hi - phi_lo - der_lo * delta)
    candidate = None
    if np.isfinite(denom) and denom > 0:
        candidate = alpha_lo - der_lo * delta * delta / denom
    left, right = min(alpha_lo, alpha_hi), max(alpha_lo, alpha_hi)
    margin = 0.1 * (right - left)
    if candidate is None or not (left + margin <= candidate <= right - margin):
        candidate = 0.5 * (alpha_lo + alpha_hi)
    return candidate


__all__ = ["LineSearchResult", "backtracking_armijo", "wolfe_line_search"]
