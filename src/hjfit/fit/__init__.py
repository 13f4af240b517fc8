"""Fit the angular model with a binned chi2 and an unbinned likelihood, and reconcile the two

The Fitter runs the chi2 fit, seeds the likelihood fit with it, and redoes the chi2 fit from the
likelihood parameters if the chi2 fit landed in a much worse minimum.
"""

from .fitter import Fitter, FitRun
from .fit_settings import FitSettings
from .fit_result import FitResult
from .minimizer import BoundedMinimizer
from .objectives import Chi2Objective, NegLogLikelihoodObjective
