"""
Example: Minimizing Rosenbrock and a sphere with lbfgsb

Runs three small problems, an unconstrained Rosenbrock function from a far
starting point, a 5-D sphere, and a sphere whose box keeps it away from the
origin, then prints the expected and found minima together with the exit
status of each run.
"""

import numpy as np

from lbfgsb import GeneralObjectiveFunction, Lbfgsb, Problem, Status, lbfgsb


def rosenbrock(x):
    return (1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2


def rosenbrock_grad(x):
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


def report(title, expected, res):
    print("=" * 60)
    print(title)
    print("=" * 60)
    print(f"expected minimum: {expected}")
    print(f"found minimum:    {np.round(res.x, 6)}")
    print(f"f(x) = {res.fun:.3e}, iterations: {res.nit}, evaluations: {res.nevals}")
    print(res.exit_status)
    print()


def example_rosenbrock():
    problem = Problem(fun=rosenbrock, grad=rosenbrock_grad, dim=2)
    res = lbfgsb(problem, np.array([10.0, 10.0]), g_tolerance=1e-8)
    report("Example 1: Rosenbrock from (10, 10)", np.ones(2), res)
    return res


def example_sphere():
    sphere = GeneralObjectiveFunction(lambda x: float(x @ x), lambda x: 2 * x)
    res = Lbfgsb().minimize(sphere, np.full(5, 10.0))
    report("Example 2: 5-D sphere from 10s", np.zeros(5), res)
    return res


def example_bounded_sphere():
    # The lower bound of 2 keeps every coordinate away from the origin.
    sphere = GeneralObjectiveFunction(lambda x: float(x @ x), lambda x: 2 * x)
    minimizer = Lbfgsb(lower_bounds=np.full(3, 2.0), upper_bounds=np.full(3, 10.0))
    res = minimizer.minimize(sphere, np.array([5.0, 9.0, 3.0]))
    report("Example 3: sphere on the box [2, 10]^3", np.full(3, 2.0), res)
    return res


def main():
    results = [example_rosenbrock(), example_sphere(), example_bounded_sphere()]
    converged = all(res.status in (Status.SUCCESS, Status.APPROXIMATE) for res in results)
    print(f"All runs converged: {converged}")


if __name__ == "__main__":
    main()
