import warnings
import numpy as np
from scipy.optimize import minimize
from numdifftools import Hessian
from .fit_result import FitResult
from ..errors import ConfigurationError, ConvergenceFailure, DomainError
from ..model import normalization_radicand
from ..settings import DEFAULT_BOUNDS, MAX_ITERATIONS, N_PARAMS, PENALTY

class BoundedMinimizer:
    """Quasi-Newton (L-BFGS-B) minimization of an objective over a box, with some parameters
    optionally held fixed. Uncertainties come from the numerical Hessian at the minimum."""

    def __init__(self, max_iterations=MAX_ITERATIONS, ftol=1e-12, gtol=1e-6, print_level=0):
        """
        # Arguments
        * max_iterations: the iteration budget. Running out raises ConvergenceFailure.
        * ftol, gtol: relative objective and projected gradient tolerances of L-BFGS-B
        * print_level: -1 quiet, 0 normal, 1 verbose. Does not affect results.
        """
        self.max_iterations = max_iterations
        self.ftol = ftol
        self.gtol = gtol
        self.print_level = print_level

    def minimize(self, objective, initial, bounds=None, fixed=None):
        """
        Minimize `objective` starting from `initial`.
        # Arguments
        * objective: callable of the full parameter vector. If it has a `gradient` method, the
        analytic gradient is used. Infeasible points must evaluate to inf.
        * initial: the starting parameter vector. Fixed parameters keep their initial value.
        * bounds (optional): list of (lo, hi) per parameter. Default DEFAULT_BOUNDS for all.
        * fixed (optional): boolean mask of the fixed parameters
        # Returns
        * A FitResult
        """
        x0 = np.array(initial, dtype=float)
        if bounds is None:
            bounds = [DEFAULT_BOUNDS] * N_PARAMS
        bounds = np.array(bounds, dtype=float)
        fixed = np.zeros(len(x0), bool) if fixed is None else np.array(fixed, dtype=bool)
        free = ~fixed
        if not np.any(free):
            raise ConfigurationError("All parameters are fixed; there is nothing to minimize")

        x0[free] = np.clip(x0[free], bounds[free, 0], bounds[free, 1])
        x0 = self.make_feasible(x0, free)
        name = getattr(objective, "name", "objective")
        has_gradient = hasattr(objective, "gradient")

        def full(free_params):
            x = np.copy(x0)
            x[free] = free_params
            return x

        def penalized(free_params):
            x = full(free_params)
            value = objective(x)
            if np.isfinite(value):
                return value, False
            violation = max(-normalization_radicand(x), 0)
            return PENALTY * (1 + violation), True

        def fun(free_params):
            value, infeasible = penalized(free_params)
            if not has_gradient:
                return value
            x = full(free_params)
            if infeasible:
                # Point back towards the normalization budget
                c2, c4, c6, _ = x
                grad = PENALTY * np.array([0.4*c2, 2*c4/9., 2*c6/13., 0])
            else:
                grad = objective.gradient(x)
                grad[~np.isfinite(grad)] = 0
            return value, grad[free]

        if self.print_level >= 1:
            print(f"Minimizing {name} from {x0}")
        result = minimize(fun, x0[free], jac=has_gradient, method="L-BFGS-B",
            bounds=bounds[free], options=dict(maxiter=self.max_iterations, ftol=self.ftol, gtol=self.gtol))

        best = full(result.x)
        best_value, infeasible = penalized(result.x)
        if infeasible:
            raise DomainError(f"The {name} fit did not reach a point where the model is defined (last point {best})")

        cov, errors = self.get_uncertainty(lambda p: penalized(p)[0], result.x, free, name)
        fit_result = FitResult(best, errors, fixed, best_value, name, converged=result.success,
            message=result.message, n_iterations=result.nit, n_evaluations=result.nfev, cov=cov)

        if result.status == 1:
            raise ConvergenceFailure(f"The {name} fit did not converge in {self.max_iterations} iterations: {result.message}", fit_result)
        if not result.success and self.print_level >= 0:
            warnings.warn(f"The {name} fit terminated abnormally: {result.message}")
        if self.print_level >= 1:
            print(fit_result)
        return fit_result

    def make_feasible(self, x0, free):
        """Shrink the free amplitudes of x0 until the normalization budget is satisfied"""
        x = np.copy(x0)
        shrink = np.copy(free)
        shrink[3:] = False
        for _ in range(200):
            if normalization_radicand(x) > 0:
                return x
            x[shrink] *= 0.9
        raise DomainError(f"No feasible starting point near {x0}; the fixed amplitudes exceed the normalization budget")

    def get_uncertainty(self, func, free_params, free, name):
        """Covariance of the free parameters from the Hessian of the -2 log L scale objective, and
        the per-parameter errors with zeros for fixed parameters."""
        errors = np.zeros(len(free))
        hessian = np.atleast_2d(Hessian(func)(free_params))
        if not np.all(np.isfinite(hessian)):
            warnings.warn(f"The {name} Hessian is not finite; uncertainties are unavailable")
            errors[free] = np.nan
            return None, errors
        try:
            cov = np.linalg.pinv(hessian / 2)
        except np.linalg.LinAlgError:
            warnings.warn(f"The {name} Hessian inversion did not converge")
            errors[free] = np.nan
            return None, errors

        variances = np.diagonal(cov)
        if np.any(variances < 0):
            warnings.warn(f"The {name} covariance has negative variances; the minimum may be a saddle point")
        with np.errstate(invalid="ignore"):
            errors[free] = np.sqrt(variances)
        return cov, errors
