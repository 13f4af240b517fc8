import numpy as np
from ..errors import ConfigurationError
from ..histogram import UniformAxis
from ..settings import (DEFAULT_BOUNDS, DEFAULT_N_BINS, DEFAULT_RANGE, MAX_ITERATIONS, MAX_REFITS,
    N_PARAMS, PARAMETER_NAMES, REFIT_RATIO)

class FitSettings:
    def __init__(self):
        """
        Create a fit settings object with the default binning, bounds and re-fit policy, and all
        four parameters free.
        """
        self.n_bins = DEFAULT_N_BINS
        self.angle_range = DEFAULT_RANGE
        self.bounds = [DEFAULT_BOUNDS] * N_PARAMS
        self.fixed = [None] * N_PARAMS
        self.guess = [0.] * N_PARAMS
        self.print_level = 0
        self.refit_ratio = REFIT_RATIO
        self.max_refits = MAX_REFITS
        self.max_iterations = MAX_ITERATIONS
        self.strict = False
        self.n_workers = 1

    def finalize(self):
        """
        Check that the settings describe a fit that can be run. Raises a ConfigurationError if the
        axis is invalid, a bound is inverted, or every parameter is fixed.
        """
        self.axis()
        for name, (lo, hi) in zip(PARAMETER_NAMES, self.bounds):
            if not lo < hi:
                raise ConfigurationError(f"The bounds of {name} must satisfy lo < hi (got [{lo}, {hi}])")
        if np.all([value is not None for value in self.fixed]):
            raise ConfigurationError("All parameters are fixed; there is nothing to fit")
        if self.refit_ratio <= 0:
            raise ConfigurationError(f"The re-fit ratio must be positive (got {self.refit_ratio})")
        if self.max_refits < 0:
            raise ConfigurationError(f"The number of re-fits cannot be negative (got {self.max_refits})")
        if self.max_iterations < 1:
            raise ConfigurationError(f"The iteration budget must be positive (got {self.max_iterations})")

    def param_index(self, name):
        if name not in PARAMETER_NAMES:
            raise ConfigurationError(f"The parameter {name} is not one of {PARAMETER_NAMES}")
        return PARAMETER_NAMES.index(name)

    def axis(self):
        """The UniformAxis used to bin cos(theta)"""
        return UniformAxis(self.n_bins, *self.angle_range)

    def fixed_mask(self):
        return np.array([value is not None for value in self.fixed])

    def initial_params(self):
        """The neutral starting point of the chi2 fit, with fixed parameters at their fixed values"""
        return np.array([
            guess if fixed is None else fixed for (guess, fixed) in zip(self.guess, self.fixed)
        ], dtype=float)

    def set_binning(self, n_bins, lo=-1, hi=1):
        """
        Set the histogram binning used by the chi2 fit.
        # Arguments:
        * n_bins: number of bins
        * lo, hi (optional): the cos(theta) range. Default [-1, 1]
        """
        self.n_bins = n_bins
        self.angle_range = (lo, hi)

    def fix_param(self, name, value):
        """
        Fix a parameter so the minimizer holds it constant.
        # Arguments:
        * name: one of "c2", "c4", "c6", "phi2"
        * value: the value to fix it to. Pass None to free the parameter.
        """
        self.fixed[self.param_index(name)] = value

    def free_param(self, name):
        self.fix_param(name, None)

    def fix_phi2(self, phi2):
        """Fix the phase of the c2 term (radians)"""
        self.fix_param("phi2", phi2)

    def set_bounds(self, name, lo, hi):
        """
        Set the box constraint of a parameter. The default is [-0.5, 1.5] for every parameter,
        including phi2.
        """
        self.bounds[self.param_index(name)] = (lo, hi)

    def set_initial(self, name, value):
        """Set the starting value of a free parameter for the first chi2 fit. Default 0."""
        self.guess[self.param_index(name)] = value

    def set_print_level(self, print_level):
        """-1: quiet (also suppresses warnings), 0: normal, 1: verbose"""
        self.print_level = print_level

    def set_refit_policy(self, ratio=REFIT_RATIO, max_refits=MAX_REFITS):
        """
        Set when the chi2 fit is redone. If chi2(chi2 params) / chi2(logl params) exceeds `ratio`,
        the chi2 fit is restarted from the logl params, at most `max_refits` times.
        """
        self.refit_ratio = ratio
        self.max_refits = max_refits

    def set_max_iterations(self, max_iterations):
        self.max_iterations = max_iterations

    def set_strict(self, strict=True):
        """Raise errors for events outside the axis and for empty bins instead of skipping them"""
        self.strict = strict

    def set_workers(self, n_workers):
        """Number of threads used to evaluate the likelihood"""
        self.n_workers = n_workers
