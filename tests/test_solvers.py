"""Tests for the solver base class and the built-in solvers."""

import numpy as np
import patsy
import pytest

from lqmix._config import LqmmControl
from lqmix.mixed._likelihood import MixedQuantileProblem
from lqmix.mixed.solvers.base import BaseSolver, SolverResult
from lqmix.mixed.solvers.df import NelderMeadSolver
from lqmix.mixed.solvers.gs import GradientSearchSolver


class _StartSolver(BaseSolver):
    """Returns its starting point, for testing the interface."""

    def _solve_impl(self, problem, tau, control, start):
        beta, theta, sigma = start
        return SolverResult(beta=beta, theta=theta, sigma=sigma,
                            loglik=problem.loglik(beta, theta, sigma, tau),
                            iterations=1)


@pytest.fixture
def problem(simulated_frame):
    y, X = patsy.dmatrices("y ~ x", simulated_frame)
    codes = simulated_frame["id"].factorize()[0]
    return MixedQuantileProblem(
        y=np.asarray(y).ravel(), X=np.asarray(X), Z=np.ones((len(codes), 1)),
        groups=codes, covariance="pdIdent",
    )


class TestSolverResult:

    def test_construction(self):
        r = SolverResult(beta=np.array([1.0]), theta=np.array([0.0]),
                         sigma=1.0, loglik=-3.0)
        assert r.converged
        assert r.iterations == 0
        assert r.solver_info == {}

    def test_frozen(self):
        r = SolverResult(beta=np.array([1.0]), theta=np.array([0.0]),
                         sigma=1.0, loglik=-3.0)
        with pytest.raises(AttributeError):
            r.sigma = 2.0


class TestBaseSolverContract:

    def test_default_start_values(self, problem):
        res = _StartSolver().solve(problem, 0.5)
        np.testing.assert_allclose(res.beta, problem.start_values()[0])

    @pytest.mark.parametrize("tau", [0.0, 1.0, -0.1, 1.5])
    def test_invalid_tau(self, problem, tau):
        with pytest.raises(ValueError, match="tau"):
            _StartSolver().solve(problem, tau)

    def test_bad_start_shape(self, problem):
        with pytest.raises(ValueError, match="Start values"):
            _StartSolver().solve(problem, 0.5, start=(np.zeros(3), np.zeros(1), 1.0))

    def test_bad_start_sigma(self, problem):
        with pytest.raises(ValueError, match="sigma"):
            _StartSolver().solve(problem, 0.5, start=(np.zeros(2), np.zeros(1), 0.0))


class TestGradientSearchSolver:

    def test_recovers_coefficients(self, problem):
        res = GradientSearchSolver().solve(problem, 0.5)
        np.testing.assert_allclose(res.beta, [1.0, 2.0], atol=0.3)
        assert res.sigma > 0

    def test_improves_likelihood(self, problem):
        start = problem.start_values()
        res = GradientSearchSolver().solve(problem, 0.5)
        assert res.loglik >= problem.loglik(*start, 0.5)
        assert res.loglik == pytest.approx(
            problem.loglik(res.beta, res.theta, res.sigma, 0.5))

    def test_deterministic(self, problem):
        a = GradientSearchSolver().solve(problem, 0.25)
        b = GradientSearchSolver().solve(problem, 0.25)
        np.testing.assert_array_equal(a.beta, b.beta)

    def test_quantile_ordering_of_intercept(self, problem):
        lo = GradientSearchSolver().solve(problem, 0.1)
        hi = GradientSearchSolver().solve(problem, 0.9)
        assert lo.beta[0] < hi.beta[0]

    def test_iteration_cap_reports_non_convergence(self, problem):
        control = LqmmControl(max_iter=1, outer_max_iter=1, tol_ll=1e-12)
        res = GradientSearchSolver().solve(problem, 0.5, control)
        assert not res.converged


class TestNelderMeadSolver:

    def test_improves_likelihood(self, problem):
        start = problem.start_values()
        control = LqmmControl(method="df", max_iter=2000)
        res = NelderMeadSolver().solve(problem, 0.5, control)
        assert res.loglik >= problem.loglik(*start, 0.5)
        np.testing.assert_allclose(res.beta, [1.0, 2.0], atol=0.5)

    def test_iteration_cap_reports_non_convergence(self, problem):
        control = LqmmControl(method="df", max_iter=2)
        res = NelderMeadSolver().solve(problem, 0.5, control)
        assert not res.converged
        assert res.iterations <= 2
