"""Compact limited-memory BFGS Hessian approximation.

With ``k <= m`` stored correction pairs ``S = [s_0 .. s_{k-1}]`` and
``Y = [y_0 .. y_{k-1}]`` the BFGS matrix is represented as

    B = theta * I - W M W^T,    W = [Y, theta * S],

    M = [[-D,  L^T          ],^-1
         [ L,  theta S^T S  ]]

where ``D = diag(s_i^T y_i)`` and ``L`` is the strictly lower triangle of
``S^T Y`` (Byrd, Nocedal & Schnabel 1994). ``W`` is ``n x 2k`` and ``M`` is
``2k x 2k``, so no dense ``n x n`` matrix is ever formed.
"""

from __future__ import annotations

from collections import deque
from typing import Deque

import numpy as np

from .core import Array
from .logging import get_logger
from .utils import safe_inverse

logger = get_logger(__name__)

EPS = float(np.finfo(float).eps)


class LimitedMemoryHessian:
    """Bounded history of correction pairs plus the compact factors."""

    def __init__(self, dim: int, capacity: int, curvature_eps: float = EPS):
        if dim <= 0:
            raise ValueError("Dimension must be positive.")
        if capacity < 0:
            raise ValueError("History capacity must be non-negative.")
        self.dim = int(dim)
        self.capacity = int(capacity)
        self.curvature_eps = float(curvature_eps)
        self._s: Deque[Array] = deque(maxlen=self.capacity)
        self._y: Deque[Array] = deque(maxlen=self.capacity)
        self.reset()

    def __len__(self) -> int:
        return len(self._s)

    @property
    def theta(self) -> float:
        return self._theta

    @property
    def w(self) -> Array:
        """``W = [Y, theta S]`` of shape ``(dim, 2k)``. Read-only view."""
        view = self._w.view()
        view.setflags(write=False)
        return view

    @property
    def m(self) -> Array:
        """Middle matrix ``M`` of shape ``(2k, 2k)``. Read-only view."""
        view = self._m.view()
        view.setflags(write=False)
        return view

    def reset(self) -> None:
        """Drop every correction pair; B becomes the identity."""
        self._s.clear()
        self._y.clear()
        self._theta = 1.0
        self._w = np.zeros((self.dim, 0))
        self._m = np.zeros((0, 0))

    def update(self, s: Array, y: Array) -> bool:
        """Append the pair ``(s, y)`` and refresh the compact factors.

        The pair is discarded, and False returned, when ``y^T s`` is not
        sufficiently positive relative to ``y^T y``.
        """
        s = np.asarray(s, dtype=float).reshape(-1)
        y = np.asarray(y, dtype=float).reshape(-1)
        if s.size != self.dim or y.size != self.dim:
            raise ValueError("Correction pair has the wrong dimension.")
        ys = float(np.dot(y, s))
        yy = float(np.dot(y, y))
        if not np.isfinite(ys) or ys <= self.curvature_eps * yy or yy == 0.0:
            logger.debug("Skipping update: y's = %g, y'y = %g", ys, yy)
            return False
        if self.capacity == 0:
            return False
        self._s.append(s.copy())
        self._y.append(y.copy())
        self._theta = yy / ys
        self._refresh()
        return True

    def _refresh(self) -> None:
        s_mat = np.column_stack(self._s)
        y_mat = np.column_stack(self._y)
        theta = self._theta
        sy = s_mat.T @ y_mat
        d = np.diag(np.diag(sy))
        low = np.tril(sy, -1)
        middle = np.block([[-d, low.T], [low, theta * (s_mat.T @ s_mat)]])
        self._w = np.hstack([y_mat, theta * s_mat])
        self._m = safe_inverse(middle)

    def multiply(self, v: Array) -> Array:
        """Return ``B v``."""
        v = np.asarray(v, dtype=float)
        if len(self) == 0:
            return self._theta * v
        return self._theta * v - self._w @ (self._m @ (self._w.T @ v))

    def quadratic_form(self, v: Array) -> float:
        """Return ``v^T B v``."""
        return float(np.dot(v, self.multiply(v)))

    def inverse_multiply(self, g: Array) -> Array:
        """Return ``H g`` with ``H = B^-1`` via the two-loop recursion."""
        q = np.asarray(g, dtype=float).copy()
        alpha_vals = []
        for s, y in reversed(list(zip(self._s, self._y))):
            rho = 1.0 / float(np.dot(y, s))
            alpha_i = rho * float(np.dot(s, q))
            q = q - alpha_i * y
            alpha_vals.append((rho, alpha_i, s, y))
        r = q / self._theta
        for rho, alpha_i, s, y in reversed(alpha_vals):
            beta = rho * float(np.dot(y, r))
            r = r + s * (alpha_i - beta)
        return r


__all__ = ["LimitedMemoryHessian"]
