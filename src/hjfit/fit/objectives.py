"""
Objective functions of the angular fit. Both return values on the -2 log L scale, so that a change
of one unit corresponds to one standard deviation.
"""

import math, warnings
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from ..errors import DegenerateBinError
from ..model import intensity, intensity_gradient, is_feasible
from ..settings import CHUNK_SIZE

class Chi2Objective:
    """Binned least squares between the normalized histogram and the model evaluated at bin centers"""
    name = "chi2"

    def __init__(self, histogram, strict=False):
        """
        # Arguments
        * histogram: a WeightedHistogram. It is normalized with its own total weight if it has not
        been normalized already.
        * strict: set to True to raise a DegenerateBinError if any bin has zero variance. Otherwise
        such bins are excluded from the sum and listed in `excluded_bins`.
        """
        self.histogram = histogram
        variances = histogram.density_variances()
        self.mask = variances > 0
        self.excluded_bins = np.flatnonzero(~self.mask)

        if not np.any(self.mask):
            raise DegenerateBinError("Every bin of the histogram has zero variance", self.excluded_bins)
        if len(self.excluded_bins) > 0:
            message = f"Bins {list(self.excluded_bins)} have zero variance and are excluded from chi2"
            if strict:
                raise DegenerateBinError(message, self.excluded_bins)
            warnings.warn(message)

        self.xs = histogram.axis.centers()[self.mask]
        self.ys = histogram.densities()[self.mask]
        self.variances = variances[self.mask]

    def n_bins(self):
        """Number of bins which enter the sum"""
        return len(self.xs)

    def __call__(self, params):
        if not is_feasible(params):
            return np.inf
        model = intensity(self.xs, params)
        return np.sum((self.ys - model)**2 / self.variances)

    def gradient(self, params):
        if not is_feasible(params):
            return np.full(len(params), np.nan)
        residuals = self.ys - intensity(self.xs, params)
        return -2 * intensity_gradient(self.xs, params) @ (residuals / self.variances)


class NegLogLikelihoodObjective:
    """
    Unbinned -2 sum_e w_e log I(x_e; c) over a weighted EventSample.

    The sum is split into contiguous chunks. Each chunk is reduced with numpy's pairwise summation
    and the partial sums are combined with math.fsum, so event order only affects the result at
    the level of rounding. With n_workers > 1 the chunks are evaluated on a thread pool.
    """
    name = "logl"

    def __init__(self, sample, n_workers=1, chunk_size=CHUNK_SIZE):
        self.sample = sample
        self.n_workers = n_workers
        self.chunks = [
            (sample.evt_angles[start:start + chunk_size], sample.evt_weights[start:start + chunk_size])
            for start in range(0, len(sample), chunk_size)
        ]
        # Created on first use and kept until close()
        self.pool = None

    def _map(self, func):
        if self.n_workers > 1 and len(self.chunks) > 1:
            if self.pool is None:
                self.pool = ThreadPoolExecutor(max_workers=self.n_workers)
            return list(self.pool.map(func, self.chunks))
        return [func(chunk) for chunk in self.chunks]

    def close(self):
        """Shut down the worker threads. The objective can still be evaluated afterwards; a new pool
        is started if needed."""
        if self.pool is not None:
            self.pool.shutdown()
            self.pool = None

    def __call__(self, params):
        if not is_feasible(params):
            return np.inf

        def partial_sum(chunk):
            angles, weights = chunk
            values = intensity(angles, params)
            if not np.all(values > 0):
                return -np.inf
            return np.sum(weights * np.log(values))

        partials = self._map(partial_sum)
        if not np.all(np.isfinite(partials)):
            return np.inf
        return -2 * math.fsum(partials)

    def gradient(self, params):
        if not is_feasible(params):
            return np.full(len(params), np.nan)

        def partial_gradient(chunk):
            angles, weights = chunk
            with np.errstate(divide="ignore", invalid="ignore"):
                return intensity_gradient(angles, params) @ (weights / intensity(angles, params))

        partials = self._map(partial_gradient)
        if len(partials) == 0:
            return np.zeros(len(params))
        return -2 * np.array([math.fsum(component) for component in np.transpose(partials)])
