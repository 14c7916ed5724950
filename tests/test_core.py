import numpy as np
import pytest

from lbfgsb import ExitStatus, IterationInfo, LbfgsbError, OptimizeResult, Status, UsageError
from lbfgsb.core import MESSAGE_LENGTH, truncate_message


def make_info(**overrides):
    values = dict(
        iteration=3,
        f_evals=2,
        g_evals=1,
        f_evals_total=7,
        g_evals_total=5,
        step_length=0.5,
        x=np.zeros(2),
        f=1.25,
        g=np.ones(2),
        f_delta=1e-10,
        f_delta_bound=1e-9,
        g_norm=2.0,
        g_norm_bound=1e-5,
    )
    values.update(overrides)
    return IterationInfo(**values)


def test_status_codes_are_stable():
    assert [s.value for s in Status] == [0, 1, 2, 3, 4, 5]
    assert str(Status.APPROXIMATE) == "APPROXIMATE"
    assert Status.SUCCESS.converged
    assert Status.APPROXIMATE.converged
    assert not Status.WARNING.converged


def test_exit_status_string_and_error():
    status = ExitStatus(Status.FAILURE, "Line search failed.")
    assert str(status) == "Exit status: FAILURE; Message: Line search failed.;"
    err = status.as_error()
    assert isinstance(err, LbfgsbError)
    assert err.exit_status is status
    assert ExitStatus(Status.SUCCESS, "done").as_error() is None


def test_usage_error_is_value_error():
    with pytest.raises(ValueError):
        raise UsageError("bad")


def test_truncate_message():
    assert truncate_message("short") == "short"
    clipped = truncate_message("x" * 1000)
    assert len(clipped) == MESSAGE_LENGTH
    assert clipped.endswith("...")


def test_iteration_info_row():
    info = make_info()
    assert IterationInfo.header() == "iter, f(x), step, df(x) <1?, ||f'(x)|| <1?, #f(), #g()"
    assert str(info) == "3 1.25 0.5 1e-10 0.1T 2 2e+05F 2 1"
    assert info.fg_evals == 3
    assert info.fg_evals_total == 12


def test_iteration_info_zero_bounds():
    info = make_info(f_delta=0.0, f_delta_bound=0.0, g_norm=1.0, g_norm_bound=0.0)
    row = str(info)
    assert "0T" in row
    assert "infF" in row


def test_optimize_result_views():
    res = OptimizeResult(
        x=np.array([1.0]),
        fun=0.5,
        grad=np.array([0.0]),
        nit=4,
        nfev=6,
        njev=5,
        status=Status.APPROXIMATE,
        message="close enough",
        grad_norm=0.0,
    )
    assert res.success
    assert res.nevals == 11
    assert res.exit_status == ExitStatus(Status.APPROXIMATE, "close enough")
    assert res.minimum.f == 0.5
    stats = res.statistics
    assert (stats.iterations, stats.function_evaluations, stats.gradient_evaluations) == (4, 6, 5)
    assert res.history == []
