"""PyTorch integration for lbfgsb.

Lets a function written with torch tensors be minimized directly; the
gradient is obtained with autograd instead of being coded by hand.

Example:
    >>> import numpy as np
    >>> import torch
    >>> from lbfgsb import lbfgsb
    >>> from lbfgsb.torch import TorchObjective
    >>>
    >>> objective = TorchObjective(lambda x: torch.sum((x - 3.0) ** 2))
    >>> res = lbfgsb(objective, np.zeros(2), upper_bounds=2.5)
    >>> res.x
    array([2.5, 2.5])
"""

from lbfgsb.torch.autograd import TorchObjective, torch_problem
from lbfgsb.torch.utils import as_float_tensor, infer_device, validate_params_shape

__all__ = [
    "TorchObjective",
    "torch_problem",
    "as_float_tensor",
    "infer_device",
    "validate_params_shape",
]
