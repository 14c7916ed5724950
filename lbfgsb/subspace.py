"""Subspace minimization over the variables left free by the Cauchy point.

With the active variables held at their bounds, the quadratic model is
minimized over the free set ``F`` by the direct primal method. Writing
``Z`` for the columns of the identity selecting ``F`` and using the
Sherman-Morrison-Woodbury formula on the reduced Hessian,

    du = -(1/theta) r - (1/theta^2) Z^T W (I - (1/theta) M W^T Z Z^T W)^-1 M W^T Z r,

where ``r = Z^T (g + theta (x^c - x) - W M c)`` is the reduced gradient of
the model at the Cauchy point. Only ``2k x 2k`` systems are solved, so the
cost is ``O(n k)``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .bounds import Bounds
from .cauchy import CauchyPoint
from .core import Array
from .hessian import LimitedMemoryHessian
from .utils import safe_solve


@dataclass
class SubspaceStep:
    """Endpoint of the search direction and whether it was truncated."""

    x: Array
    truncated: bool
    n_free: int


def subspace_minimize(
    x: Array,
    g: Array,
    cauchy: CauchyPoint,
    bounds: Bounds,
    hessian: LimitedMemoryHessian,
) -> SubspaceStep:
    """Minimize the model over the free variables starting from ``cauchy.x``."""
    free = np.flatnonzero(cauchy.free)
    xbar = cauchy.x.copy()
    if free.size == 0:
        return SubspaceStep(xbar, False, 0)

    theta = hessian.theta
    w = hessian.w
    m = hessian.m

    reduced = g + theta * (cauchy.x - x)
    if w.shape[1]:
        reduced = reduced - w @ (m @ cauchy.c)
    r = reduced[free]

    if w.shape[1]:
        wtz = w[free, :].T
        v = m @ (wtz @ r)
        n_mat = np.eye(w.shape[1]) - (m @ (wtz @ wtz.T)) / theta
        v = safe_solve(n_mat, v)
        du = -r / theta - (wtz.T @ v) / theta**2
    else:
        du = -r / theta

    alpha = _max_feasible_fraction(cauchy.x[free], du, bounds.lower[free], bounds.upper[free])
    xbar[free] = cauchy.x[free] + alpha * du
    xbar = bounds.project(xbar)
    return SubspaceStep(xbar, alpha < 1.0, int(free.size))


def _max_feasible_fraction(xf: Array, du: Array, lower: Array, upper: Array) -> float:
    """Largest ``alpha <= 1`` with ``lower <= xf + alpha du <= upper``."""
    alpha = 1.0
    pos = du > 0.0
    neg = du < 0.0
    if np.any(pos):
        alpha = min(alpha, float(np.min((upper[pos] - xf[pos]) / du[pos])))
    if np.any(neg):
        alpha = min(alpha, float(np.min((lower[neg] - xf[neg]) / du[neg])))
    return max(alpha, 0.0)


__all__ = ["SubspaceStep", "subspace_minimize"]
