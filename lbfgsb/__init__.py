"""lbfgsb - limited-memory BFGS minimization with box constraints.

Example
-------
>>> import numpy as np
>>> from lbfgsb import Bounds, Problem, lbfgsb
>>> def rosen(x):
...     return (1 - x[0])**2 + 100 * (x[1] - x[0]**2)**2
>>> def rosen_grad(x):
...     return np.array([
...         -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
...         200 * (x[1] - x[0] ** 2),
...     ])
>>> problem = Problem(fun=rosen, grad=rosen_grad, dim=2)
>>> res = lbfgsb(problem, np.array([-1.2, 1.0]), g_tolerance=1e-8)
>>> bool(np.allclose(res.x, 1.0, atol=1e-4))
True
"""

__version__ = "0.1.0"

from .bounds import BOTH, LOWER_ONLY, UNBOUNDED, UPPER_ONLY, Bounds, make_bounds
from .cauchy import CauchyPoint, generalized_cauchy_point
from .core import (
    EvaluationError,
    ExitStatus,
    IterationInfo,
    LbfgsbError,
    OptimizationStatistics,
    OptimizeResult,
    PointValueGradient,
    Problem,
    Status,
    UsageError,
)
from .hessian import LimitedMemoryHessian
from .line_search import LineSearchResult, backtracking_armijo, wolfe_line_search
from .logging import configure_logging, get_logger, set_log_level
from .objective import FunctionWithGradient, GeneralObjectiveFunction
from .optimizer import IterationController, Lbfgsb, RunState, lbfgsb
from .options import LbfgsbOptions
from .subspace import SubspaceStep, subspace_minimize

__all__ = [
    "__version__",
    # Bounds
    "UNBOUNDED",
    "LOWER_ONLY",
    "BOTH",
    "UPPER_ONLY",
    "Bounds",
    "make_bounds",
    # Core types
    "Problem",
    "Status",
    "ExitStatus",
    "OptimizeResult",
    "PointValueGradient",
    "IterationInfo",
    "OptimizationStatistics",
    "LbfgsbError",
    "UsageError",
    "EvaluationError",
    # Objective protocol
    "FunctionWithGradient",
    "GeneralObjectiveFunction",
    # Components
    "LimitedMemoryHessian",
    "CauchyPoint",
    "generalized_cauchy_point",
    "SubspaceStep",
    "subspace_minimize",
    "LineSearchResult",
    "backtracking_armijo",
    "wolfe_line_search",
    # Driver
    "LbfgsbOptions",
    "IterationController",
    "RunState",
    "Lbfgsb",
    "lbfgsb",
    # Logging
    "configure_logging",
    "get_logger",
    "set_log_level",
]
