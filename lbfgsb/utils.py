"""Utility helpers for finite differences and small dense linear algebra.

The compact Hessian never forms an ``n x n`` matrix; the only dense systems
solved here are of size at most ``2m x 2m``.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]


def approx_grad(
    fun: Objective,
    x: Array,
    eps: float = 1e-6,
    return_evals: bool = False,
    lower: Optional[Array] = None,
    upper: Optional[Array] = None,
) -> Array | tuple[Array, int]:
    """Compute a finite-difference gradient approximation.

    Central differences are used where ``x +/- eps`` stays inside
    ``[lower, upper]``; otherwise the component falls back to a one-sided
    difference towards the interior, so ``fun`` is never evaluated outside
    the box. A component whose bounds coincide gets a zero derivative.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated.
    eps:
        Perturbation size for finite differences.
    return_evals:
        Also return the number of objective evaluations spent.
    lower, upper:
        Optional box limiting the perturbed points; ``-inf``/``inf`` entries
        mean no limit.
    """
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float).copy()
    lower = np.full(x.size, -np.inf) if lower is None else np.asarray(lower, dtype=float)
    upper = np.full(x.size, np.inf) if upper is None else np.asarray(upper, dtype=float)
    grad = np.zeros_like(x, dtype=float)
    evals = 0
    fx = None
    for i in range(x.size):
        room_up = min(eps, upper[i] - x[i])
        room_down = min(eps, x[i] - lower[i])
        ei = np.zeros_like(x)
        if room_up >= eps and room_down >= eps:
            ei[i] = eps
            fx_plus = fun(x + ei)
            fx_minus = fun(x - ei)
            evals += 2
            grad[i] = (fx_plus - fx_minus) / (2.0 * eps)
            continue
        if max(room_up, room_down) <= 0.0:
            continue
        if fx is None:
            fx = fun(x)
            evals += 1
        if room_up >= room_down:
            ei[i] = room_up
            grad[i] = (fun(x + ei) - fx) / room_up
        else:
            ei[i] = room_down
            grad[i] = (fx - fun(x - ei)) / room_down
        evals += 1
    if return_evals:
        return grad, evals
    return grad


def safe_solve(mat: Array, vec: Array, reg: float = 1e-12) -> Array:
    """Solve ``mat @ z = vec`` with ridge and least-squares fallbacks."""
    try:
        return np.linalg.solve(mat, vec)
    except np.linalg.LinAlgError:
        if reg > 0.0:
            eye = np.eye(mat.shape[0], dtype=mat.dtype)
            try:
                return np.linalg.solve(mat + reg * eye, vec)
            except np.linalg.LinAlgError:
                pass
    sol, *_ = np.linalg.lstsq(mat, vec, rcond=None)
    return sol


def safe_inverse(mat: Array, reg: float = 1e-12) -> Array:
    """Inverse of a small square matrix, falling back to the pseudo-inverse."""
    if mat.size == 0:
        return np.zeros_like(mat, dtype=float)
    try:
        return np.linalg.inv(mat)
    except np.linalg.LinAlgError:
        eye = np.eye(mat.shape[0], dtype=mat.dtype)
        try:
            return np.linalg.inv(mat + reg * eye)
        except np.linalg.LinAlgError:
            return np.linalg.pinv(mat)


__all__ = ["Array", "Objective", "approx_grad", "safe_solve", "safe_inverse"]
