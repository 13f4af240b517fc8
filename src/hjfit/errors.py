"""Exceptions raised by hjfit. All of them are recoverable by the caller."""


class FitError(Exception):
    """Base class of all hjfit errors"""


class DomainError(FitError):
    """The model is undefined at the requested point, or an input lies outside the axis."""


class DegenerateBinError(FitError):
    """A histogram bin with zero variance was included in a chi2 sum."""

    def __init__(self, message, bins=()):
        super().__init__(message)
        self.bins = tuple(bins)


class ConvergenceFailure(FitError):
    """The minimizer ran out of iterations. `result` holds the best point found."""

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


class ConfigurationError(FitError):
    """Invalid axis, bounds, or parameter configuration."""
