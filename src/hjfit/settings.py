# Names of the fit parameters, in the order they are stored in parameter vectors
PARAMETER_NAMES = ("c2", "c4", "c6", "phi2")
N_PARAMS = len(PARAMETER_NAMES)

# Box constraint applied to every parameter, including the phase phi2
DEFAULT_BOUNDS = (-0.5, 1.5)

# Default binning of cos(theta)
DEFAULT_N_BINS = 20
DEFAULT_RANGE = (-1, 1)

# If chi2(chi2 params) / chi2(logl params) exceeds this, the chi2 fit is redone from the logl params
REFIT_RATIO = 2.0
MAX_REFITS = 1

# Iteration budget of the minimizer
MAX_ITERATIONS = 1000

# Objective value returned for points where the model is undefined
PENALTY = 1e10

# Number of events per partial sum in the likelihood
CHUNK_SIZE = 65536
