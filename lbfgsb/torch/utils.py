"""Utility functions for moving optimizer vectors in and out of PyTorch."""

from __future__ import annotations

from typing import Optional

import numpy as np
import torch


def infer_device(device: Optional[torch.device]) -> torch.device:
    """
    Infer the PyTorch device to use.

    Parameters
    ----------
    device:
        Optional PyTorch device. If None, the CPU is used.

    Returns
    -------
    torch.device
        The device to use for computation.
    """
    if device is not None:
        return torch.device(device)
    return torch.device("cpu")


def as_float_tensor(
    x: np.ndarray | torch.Tensor,
    device: Optional[torch.device] = None,
    dtype: torch.dtype = torch.float64,
) -> torch.Tensor:
    """
    Convert an array or tensor to a floating tensor on the specified device.

    Parameters
    ----------
    x:
        Input array or tensor.
    device:
        Optional device. If None, uses infer_device().
    dtype:
        Floating dtype, torch.float64 by default.

    Returns
    -------
    torch.Tensor
        A tensor that does not share memory with a NumPy input.
    """
    target_device = infer_device(device)
    if isinstance(x, torch.Tensor):
        return x.to(device=target_device, dtype=dtype)
    return torch.tensor(np.asarray(x, dtype=float), device=target_device, dtype=dtype)


def validate_params_shape(params: torch.Tensor, expected_len: int) -> None:
    """
    Validate that a parameter tensor has the expected shape.

    Raises
    ------
    ValueError
        If params is not 1D or has incorrect length.
    """
    if params.ndim != 1:
        raise ValueError(f"params must be 1D, got shape {tuple(params.shape)}")
    if params.shape[0] != expected_len:
        raise ValueError(
            f"params length {params.shape[0]} does not match expected length {expected_len}"
        )


__all__ = ["infer_device", "as_float_tensor", "validate_params_shape"]
