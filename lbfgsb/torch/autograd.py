"""Objective adapter computing gradients with torch autograd."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np
import torch

from lbfgsb.core import EvaluationError, Problem
from lbfgsb.torch.utils import as_float_tensor, validate_params_shape


class TorchObjective:
    """
    Wrap ``fn(x: Tensor) -> Tensor`` as a function with gradient.

    ``fn`` receives a 1-D tensor and must return a scalar tensor. Values and
    gradients are handed back to the optimizer as NumPy float64 data.

    Parameters
    ----------
    fn:
        Differentiable scalar function of a 1-D tensor.
    dim:
        Expected number of variables. When given, points of another length
        are rejected with :class:`~lbfgsb.core.EvaluationError`.
    device:
        Device on which ``fn`` is evaluated. Defaults to the CPU.
    dtype:
        Floating dtype of the tensor passed to ``fn``.
    """

    def __init__(
        self,
        fn: Callable[[torch.Tensor], torch.Tensor],
        dim: Optional[int] = None,
        device: Optional[torch.device] = None,
        dtype: torch.dtype = torch.float64,
    ):
        self.fn = fn
        self.dim = dim
        self.device = device
        self.dtype = dtype

    def _tensor(self, point: np.ndarray) -> torch.Tensor:
        x = as_float_tensor(point, self.device, self.dtype)
        if self.dim is not None:
            try:
                validate_params_shape(x, self.dim)
            except ValueError as exc:
                raise EvaluationError(str(exc)) from exc
        return x

    def _scalar(self, value: torch.Tensor) -> torch.Tensor:
        if not isinstance(value, torch.Tensor):
            value = torch.as_tensor(value, dtype=self.dtype)
        if value.numel() != 1:
            raise EvaluationError(
                f"Objective must return a scalar tensor, got shape {tuple(value.shape)}"
            )
        return value.reshape(())

    def evaluate_function(self, point: np.ndarray) -> float:
        x = self._tensor(point)
        with torch.no_grad():
            value = self._scalar(self.fn(x))
        return float(value.item())

    def evaluate_gradient(self, point: np.ndarray) -> np.ndarray:
        x = self._tensor(point).requires_grad_(True)
        value = self._scalar(self.fn(x))
        if not value.requires_grad:
            # Constant objective.
            return np.zeros(x.shape[0])
        (grad,) = torch.autograd.grad(value, x, allow_unused=True)
        if grad is None:
            return np.zeros(x.shape[0])
        return grad.detach().to("cpu", torch.float64).numpy().copy()


def torch_problem(
    fn: Callable[[torch.Tensor], torch.Tensor],
    dim: Optional[int] = None,
    device: Optional[torch.device] = None,
) -> Problem:
    """Build a :class:`~lbfgsb.core.Problem` backed by :class:`TorchObjective`."""
    objective = TorchObjective(fn, dim=dim, device=device)
    return Problem(
        fun=objective.evaluate_function,
        grad=objective.evaluate_gradient,
        dim=dim,
    )


__all__ = ["TorchObjective", "torch_problem"]
