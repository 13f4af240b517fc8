from .events import EventSample
from .histogram import UniformAxis, WeightedHistogram
from .model import intensity, intensity_gradient, normalization_coefficient, sample_angles
from .errors import FitError, DomainError, DegenerateBinError, ConvergenceFailure, ConfigurationError
from .settings import *
from . import fit, io

__version__ = "0.1.0"
