"""Generalized Cauchy point along the projected steepest-descent path.

The path ``x(t) = P(x - t g)`` is piecewise linear with kinks at the
breakpoints where variables reach their bounds. Segments are examined in
order of increasing breakpoint and the first local minimizer of the
quadratic model

    m(z) = g^T z + 0.5 z^T B z,    z = x(t) - x,

is returned. Derivatives of ``m`` along each segment are updated in
``O(k)`` per breakpoint using the compact factors of ``B`` (Byrd, Lu,
Nocedal & Zhu 1995, algorithm CP).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .bounds import Bounds
from .core import Array
from .hessian import EPS, LimitedMemoryHessian
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class CauchyPoint:
    """Generalized Cauchy point and the data the subspace step reuses.

    Attributes:
        x: The Cauchy point ``x^c``.
        c: ``W^T (x^c - x)``, length ``2k``.
        active: Boolean mask of variables at a bound at ``x^c``.
        t: Path parameter at which the minimizer was found.
        breakpoints: Number of breakpoints passed before stopping.
    """

    x: Array
    c: Array
    active: Array
    t: float
    breakpoints: int

    @property
    def free(self) -> Array:
        return ~self.active


def generalized_cauchy_point(
    x: Array, g: Array, bounds: Bounds, hessian: LimitedMemoryHessian
) -> CauchyPoint:
    """Compute the generalized Cauchy point from ``x`` with gradient ``g``.

    Ties between equal breakpoints are resolved by variable index, so the
    result is deterministic.
    """
    x = np.asarray(x, dtype=float)
    g = np.asarray(g, dtype=float)
    w = hessian.w
    m = hessian.m
    theta = hessian.theta

    tb = bounds.breakpoints(x, g)
    d = -g.copy()
    # Variables already at a bound and pushed outward cannot move.
    d[tb <= 0.0] = 0.0

    xc = x.copy()
    p = w.T @ d
    c = np.zeros(w.shape[1])

    fp = -float(np.dot(d, d))
    if fp == 0.0:
        return CauchyPoint(xc, c, bounds.at_bound(xc), 0.0, 0)
    fpp0 = -theta * fp
    fpp = fpp0 - float(p @ (m @ p))
    fpp = max(EPS * fpp0, fpp)
    dt_min = -fp / fpp

    order = np.argsort(tb, kind="stable")
    order = order[(tb[order] > 0.0) & np.isfinite(tb[order])]

    t_old = 0.0
    passed = 0
    for b in order:
        dt = tb[b] - t_old
        if dt_min < dt:
            break
        # Variable b reaches its bound and leaves the path.
        xc[b] = bounds.upper[b] if d[b] > 0.0 else bounds.lower[b]
        zb = xc[b] - x[b]
        gb = g[b]
        wb = w[b, :]
        c = c + dt * p
        fp = fp + dt * fpp + gb * gb + theta * gb * zb - gb * float(wb @ (m @ c))
        fpp = (
            fpp
            - theta * gb * gb
            - 2.0 * gb * float(wb @ (m @ p))
            - gb * gb * float(wb @ (m @ wb))
        )
        fpp = max(EPS * fpp0, fpp)
        p = p + gb * wb
        d[b] = 0.0
        dt_min = -fp / fpp
        t_old = tb[b]
        passed += 1

    dt_min = max(dt_min, 0.0)
    t_old += dt_min
    moving = d != 0.0
    xc[moving] = x[moving] + t_old * d[moving]
    # Guard against rounding past a bound on the last segment.
    xc = bounds.project(xc)
    c = c + dt_min * p

    logger.debug(
        "Cauchy point: t = %g after %d of %d breakpoints", t_old, passed, order.size
    )
    return CauchyPoint(xc, c, bounds.at_bound(xc), float(t_old), passed)


__all__ = ["CauchyPoint", "generalized_cauchy_point"]
