"""
Per-variable box constraints.

Each variable carries a control code describing which of its bounds apply:

* ``0``: unbounded
* ``1``: lower bound only
* ``2``: lower and upper bound
* ``3``: upper bound only

Internally the descriptor is expanded into ``lower``/``upper`` arrays where a
missing bound is ``-inf``/``+inf``. That keeps projection, breakpoint and
step-length computations vectorized without special-casing the codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .core import Array, UsageError

UNBOUNDED = 0
LOWER_ONLY = 1
BOTH = 2
UPPER_ONLY = 3

# Step-length ceiling used when no bound limits the search direction.
MAX_STEP = 1e10

BoundValues = Union[None, float, Array]


def _as_vector(values: BoundValues, dim: int, name: str, fill: float) -> Array:
    if values is None:
        return np.full(dim, fill, dtype=float)
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        return np.full(dim, float(arr), dtype=float)
    arr = arr.reshape(-1)
    if arr.size != dim:
        raise UsageError(
            f"Dimensionality disagreement: point: {dim}, {name}: {arr.size}"
        )
    return arr.copy()


@dataclass(frozen=True)
class Bounds:
    """Immutable bound descriptor for ``dim`` variables."""

    control: Array
    lower: Array
    upper: Array

    def __post_init__(self) -> None:
        control = np.asarray(self.control).reshape(-1)
        dim = control.size
        lower = _as_vector(self.lower, dim, "lower_bounds", -np.inf)
        upper = _as_vector(self.upper, dim, "upper_bounds", np.inf)
        if dim == 0:
            raise UsageError("Bounds require at least one variable")
        if not np.all(np.isin(control, (UNBOUNDED, LOWER_ONLY, BOTH, UPPER_ONLY))):
            bad = control[~np.isin(control, (UNBOUNDED, LOWER_ONLY, BOTH, UPPER_ONLY))]
            raise UsageError(f"Invalid bounds control code(s): {bad.tolist()}")
        control = control.astype(int)

        has_lower = (control == LOWER_ONLY) | (control == BOTH)
        has_upper = (control == BOTH) | (control == UPPER_ONLY)
        if not np.all(np.isfinite(lower[has_lower])):
            idx = np.flatnonzero(has_lower & ~np.isfinite(lower))
            raise UsageError(f"Lower bound required but not finite at index {int(idx[0])}")
        if not np.all(np.isfinite(upper[has_upper])):
            idx = np.flatnonzero(has_upper & ~np.isfinite(upper))
            raise UsageError(f"Upper bound required but not finite at index {int(idx[0])}")
        crossed = (control == BOTH) & (lower > upper)
        if np.any(crossed):
            idx = int(np.flatnonzero(crossed)[0])
            raise UsageError(
                f"Lower bound exceeds upper bound at index {idx}: "
                f"{lower[idx]} > {upper[idx]}"
            )

        # Normalize so that unused bounds are infinite.
        lower = np.where(has_lower, lower, -np.inf)
        upper = np.where(has_upper, upper, np.inf)
        for arr in (control, lower, upper):
            arr.setflags(write=False)
        object.__setattr__(self, "control", control)
        object.__setattr__(self, "lower", lower)
        object.__setattr__(self, "upper", upper)

    @classmethod
    def unbounded(cls, dim: int) -> "Bounds":
        if dim <= 0:
            raise UsageError(f"Dimension must be positive, got {dim}")
        return cls(np.zeros(dim, dtype=int), None, None)

    @classmethod
    def from_arrays(
        cls, dim: int, lower: BoundValues = None, upper: BoundValues = None
    ) -> "Bounds":
        """
        Build bounds from value arrays, deriving the control codes.

        A lower value that is NaN or ``-inf`` (an upper value that is NaN or
        ``+inf``) leaves that side unbounded. ``None`` leaves the whole side
        unbounded and scalars are broadcast to every variable.
        """
        if dim <= 0:
            raise UsageError(f"Dimension must be positive, got {dim}")
        lo = _as_vector(lower, dim, "lower_bounds", -np.inf)
        hi = _as_vector(upper, dim, "upper_bounds", np.inf)
        control = np.zeros(dim, dtype=int)
        control[np.isfinite(lo)] = LOWER_ONLY
        # Map 0 -> 3 and 1 -> 2
        has_upper = np.isfinite(hi)
        control[has_upper] = UPPER_ONLY - control[has_upper]
        return cls(control, lo, hi)

    @property
    def dim(self) -> int:
        return int(self.control.size)

    @property
    def is_unbounded(self) -> bool:
        return bool(np.all(self.control == UNBOUNDED))

    def project(self, x: Array) -> Array:
        """Project ``x`` componentwise onto the box."""
        return np.minimum(np.maximum(x, self.lower), self.upper)

    def contains(self, x: Array, atol: float = 0.0) -> bool:
        return bool(np.all(x >= self.lower - atol) and np.all(x <= self.upper + atol))

    def at_bound(self, x: Array) -> Array:
        """Boolean mask of variables sitting exactly on one of their bounds."""
        return (x == self.lower) | (x == self.upper)

    def projected_gradient(self, x: Array, g: Array) -> Array:
        """Return ``P(x - g) - x``; its norm vanishes at a stationary point."""
        return self.project(x - g) - x

    def projected_gradient_norm(self, x: Array, g: Array) -> float:
        """Infinity norm of the projected gradient."""
        return float(np.max(np.abs(self.projected_gradient(x, g))))

    def breakpoints(self, x: Array, g: Array) -> Array:
        """
        Step lengths ``t`` at which each variable of ``x - t g`` hits a bound.

        Variables that never reach a bound along the path get ``inf``.
        """
        t = np.full(x.size, np.inf)
        with np.errstate(divide="ignore", invalid="ignore"):
            neg = g < 0.0
            pos = g > 0.0
            t[neg] = (x[neg] - self.upper[neg]) / g[neg]
            t[pos] = (x[pos] - self.lower[pos]) / g[pos]
        return t

    def max_step(self, x: Array, d: Array, cap: float = MAX_STEP) -> float:
        """Largest ``alpha <= cap`` keeping ``x + alpha d`` inside the box."""
        alpha = float(cap)
        pos = d > 0.0
        neg = d < 0.0
        if np.any(pos):
            alpha = min(alpha, float(np.min((self.upper[pos] - x[pos]) / d[pos])))
        if np.any(neg):
            alpha = min(alpha, float(np.min((self.lower[neg] - x[neg]) / d[neg])))
        return max(alpha, 0.0)


def make_bounds(
    dim: int,
    control: Optional[Array] = None,
    lower: BoundValues = None,
    upper: BoundValues = None,
) -> Bounds:
    """Bounds from explicit codes when given, else derived from the values."""
    if control is None:
        return Bounds.from_arrays(dim, lower, upper)
    control = np.asarray(control).reshape(-1)
    if control.size != dim:
        raise UsageError(
            f"Dimensionality disagreement: point: {dim}, bounds_control: {control.size}"
        )
    return Bounds(control, lower, upper)


__all__ = [
    "UNBOUNDED",
    "LOWER_ONLY",
    "BOTH",
    "UPPER_ONLY",
    "MAX_STEP",
    "Bounds",
    "make_bounds",
]
