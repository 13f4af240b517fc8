"""Tests of the bounded quasi-Newton minimizer on objectives with known minima"""

import numpy as np
import pytest
from hjfit import ConfigurationError, ConvergenceFailure, DomainError
from hjfit.fit import BoundedMinimizer
from hjfit.model import is_feasible


class Quadratic:
    """sum ((x - target) / sigma)^2, whose minimizer has uncertainty sigma"""
    name = "quadratic"

    def __init__(self, target, sigma=0.1):
        self.target = np.array(target, dtype=float)
        self.sigma = sigma

    def __call__(self, params):
        return np.sum(((np.asarray(params) - self.target) / self.sigma)**2)

    def gradient(self, params):
        return 2 * (np.asarray(params) - self.target) / self.sigma**2


class NoGradientQuadratic:
    name = "quadratic"

    def __init__(self, target):
        self.quadratic = Quadratic(target)

    def __call__(self, params):
        return self.quadratic(params)


class Rosenbrock:
    """Rosenbrock valley in (c2, c4) with its minimum at (1, 1)"""
    name = "rosenbrock"

    def __call__(self, params):
        c2, c4, c6, phi2 = params
        return 100 * (c4 - c2**2)**2 + (1 - c2)**2 + c6**2 + phi2**2


def test_quadratic_minimum_and_errors():
    target = [0.3, 0.2, 0.1, 0.5]
    result = BoundedMinimizer().minimize(Quadratic(target), np.zeros(4))
    np.testing.assert_allclose(result.values, target, atol=1e-6)
    np.testing.assert_allclose(result.errors, 0.1, rtol=1e-3)
    assert result.converged
    assert result.fun == pytest.approx(0, abs=1e-10)
    assert result.objective_name == "quadratic"
    assert result.cov.shape == (4, 4)


def test_without_gradient():
    target = [0.3, 0.2, 0.1, 0.5]
    result = BoundedMinimizer().minimize(NoGradientQuadratic(target), np.zeros(4))
    np.testing.assert_allclose(result.values, target, atol=1e-4)


def test_bounds_are_respected():
    result = BoundedMinimizer().minimize(Quadratic([-1.0, 0.2, 0.1, 2.0]), np.zeros(4))
    assert result.values[0] == pytest.approx(-0.5)
    assert result.values[3] == pytest.approx(1.5)
    np.testing.assert_allclose(result.values[1:3], [0.2, 0.1], atol=1e-6)


def test_custom_bounds():
    bounds = [(-0.5, 1.5), (-0.1, 0.1), (-0.5, 1.5), (-0.5, 1.5)]
    result = BoundedMinimizer().minimize(Quadratic([0.3, 0.2, 0.1, 0.5]), np.zeros(4), bounds=bounds)
    assert result.values[1] == pytest.approx(0.1)


def test_initial_point_is_clamped():
    result = BoundedMinimizer().minimize(Quadratic([0.3, 0.2, 0.1, 0.5]), [5, 0, 0, -3])
    np.testing.assert_allclose(result.values, [0.3, 0.2, 0.1, 0.5], atol=1e-6)


def test_fixed_parameters():
    fixed = [False, False, False, True]
    result = BoundedMinimizer().minimize(Quadratic([0.3, 0.2, 0.1, 0.5]), [0, 0, 0, 0.9], fixed=fixed)
    assert result.values[3] == 0.9
    assert result.errors[3] == 0
    np.testing.assert_allclose(result.errors[:3], 0.1, rtol=1e-3)
    np.testing.assert_array_equal(result.fixed, fixed)
    assert result.n_free() == 3


def test_all_fixed():
    with pytest.raises(ConfigurationError):
        BoundedMinimizer().minimize(Quadratic(np.zeros(4)), np.zeros(4), fixed=[True] * 4)


def test_rosenbrock():
    result = BoundedMinimizer().minimize(Rosenbrock(), np.zeros(4))
    np.testing.assert_allclose(result.values, [1, 1, 0, 0], atol=1e-3)


def test_iteration_budget():
    with pytest.raises(ConvergenceFailure) as excinfo:
        BoundedMinimizer(max_iterations=2).minimize(Rosenbrock(), np.zeros(4))
    best = excinfo.value.result
    assert best is not None
    assert not best.converged
    assert best.values.shape == (4,)


def test_infeasible_start_is_shrunk():
    minimizer = BoundedMinimizer()
    x0 = minimizer.make_feasible(np.array([1.5, 1.5, 1.5, 0.2]), np.ones(4, bool))
    assert is_feasible(x0)
    assert x0[3] == 0.2


def test_infeasible_fixed_amplitudes():
    minimizer = BoundedMinimizer()
    with pytest.raises(DomainError):
        minimizer.make_feasible(np.array([1.5, 1.5, 1.5, 0.2]), np.array([False, False, False, True]))
