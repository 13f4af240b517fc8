import numpy as np
import warnings
from .errors import ConfigurationError, DomainError

class UniformAxis:
    """`n_bins` equal-width bins spanning [lo, hi]"""
    def __init__(self, n_bins, lo=-1, hi=1):
        if int(n_bins) != n_bins or n_bins < 1:
            raise ConfigurationError(f"The number of bins must be a positive integer (got {n_bins})")
        if not (np.isfinite(lo) and np.isfinite(hi)) or lo >= hi:
            raise ConfigurationError(f"The axis range must satisfy lo < hi (got [{lo}, {hi}])")
        self.n_bins = int(n_bins)
        self.lo = float(lo)
        self.hi = float(hi)

    @property
    def width(self):
        return (self.hi - self.lo) / self.n_bins

    def edges(self):
        return np.linspace(self.lo, self.hi, self.n_bins + 1)

    def centers(self):
        return self.lo + (np.arange(self.n_bins) + 0.5) * self.width

    def contains(self, x):
        return (x >= self.lo) & (x <= self.hi)

    def index(self, x):
        """Bin index of x. Values equal to hi belong to the last bin. x must lie inside the axis."""
        indices = np.floor((np.asarray(x, dtype=float) - self.lo) / self.width).astype(int)
        return np.clip(indices, 0, self.n_bins - 1)

    def __eq__(self, other):
        if not isinstance(other, UniformAxis):
            return NotImplemented
        return (self.n_bins, self.lo, self.hi) == (other.n_bins, other.lo, other.hi)

    def __repr__(self):
        return f"UniformAxis({self.n_bins}, {self.lo}, {self.hi})"


class WeightedHistogram:
    """A histogram which tracks the sum of weights, the sum of squared weights and the raw number
    of entries in each bin.
    # Fields
    * `axis`: the UniformAxis
    * `sum_w`, `sum_w2`, `counts`: per-bin accumulators. These are only modified by `accumulate`
    and `fill`.
    * `total_weight`: the weight used to normalize the histogram. None until `normalize` is called.
    * `n_rejected`: number of events which fell outside the axis and were not accumulated
    """
    def __init__(self, axis):
        self.axis = axis
        self.sum_w = np.zeros(axis.n_bins)
        self.sum_w2 = np.zeros(axis.n_bins)
        self.counts = np.zeros(axis.n_bins, dtype=np.uint64)
        self.total_weight = None
        self.n_rejected = 0

    def from_sample(sample, axis, strict=False):
        """Build a histogram of the angles in an EventSample"""
        hist = WeightedHistogram(axis)
        hist.fill(sample.evt_angles, sample.evt_weights, strict=strict)
        return hist

    def from_arrays(axis, sum_w, sum_w2, counts=None):
        """Build a histogram from already accumulated bin contents"""
        hist = WeightedHistogram(axis)
        sum_w = np.asarray(sum_w, dtype=float)
        sum_w2 = np.asarray(sum_w2, dtype=float)
        if sum_w.shape != (axis.n_bins,) or sum_w2.shape != (axis.n_bins,):
            raise ConfigurationError(f"Expected {axis.n_bins} bins of content")
        if np.any(sum_w2 < 0):
            raise DomainError("Sums of squared weights cannot be negative")
        hist.sum_w[:] = sum_w
        hist.sum_w2[:] = sum_w2
        if counts is not None:
            hist.counts[:] = np.asarray(counts, dtype=np.uint64)
        return hist

    def accumulate(self, angle, weight=1, strict=False):
        """
        Add one event to the histogram.
        # Arguments
        * angle: cos(theta) of the event
        * weight: the event weight
        * strict: set to True to raise a DomainError for an angle outside the axis. Otherwise the
        event is skipped.
        """
        if not self.axis.contains(angle):
            if strict:
                raise DomainError(f"Angle {angle} is outside of [{self.axis.lo}, {self.axis.hi}]")
            self.n_rejected += 1
            return
        i = self.axis.index(angle)
        self.sum_w[i] += weight
        self.sum_w2[i] += weight*weight
        self.counts[i] += 1

    def fill(self, angles, weights=None, strict=False):
        """Vectorized `accumulate` over arrays of angles and weights"""
        angles = np.asarray(angles, dtype=float)
        if weights is None:
            weights = np.ones_like(angles)
        weights = np.asarray(weights, dtype=float)

        inside = self.axis.contains(angles)
        n_outside = len(angles) - np.sum(inside)
        if n_outside > 0:
            if strict:
                raise DomainError(f"{n_outside} angles are outside of [{self.axis.lo}, {self.axis.hi}]")
            warnings.warn(f"Skipped {n_outside} events outside of [{self.axis.lo}, {self.axis.hi}]")
            self.n_rejected += int(n_outside)

        indices = self.axis.index(angles[inside])
        n_bins = self.axis.n_bins
        self.sum_w += np.bincount(indices, weights=weights[inside], minlength=n_bins)
        self.sum_w2 += np.bincount(indices, weights=weights[inside]**2, minlength=n_bins)
        self.counts += np.bincount(indices, minlength=n_bins).astype(np.uint64)

    def normalize(self, total_weight=None):
        """
        Set the normalization so that densities are sum_w / (total_weight * width) and their
        variances sum_w2 / (total_weight * width)^2. The raw sums are not modified, so normalizing
        twice with the same total weight gives the same densities.
        # Arguments
        * total_weight (optional): defaults to the sum of all accumulated weights
        """
        if total_weight is None:
            total_weight = np.sum(self.sum_w)
        if not np.isfinite(total_weight) or total_weight <= 0:
            raise DomainError(f"Cannot normalize a histogram to total weight {total_weight}")
        self.total_weight = float(total_weight)
        return self

    def scale(self):
        if self.total_weight is None:
            self.normalize()
        return 1 / (self.total_weight * self.axis.width)

    def densities(self):
        return self.sum_w * self.scale()

    def density_variances(self):
        return self.sum_w2 * self.scale()**2

    def density_errors(self):
        return np.sqrt(self.density_variances())

    def entries(self):
        """Total number of accumulated events. This is a sample size diagnostic, not a weight."""
        return int(np.sum(self.counts))

    def to_record(self):
        """A list of [density, density error, raw count] per bin, in bin order"""
        return [
            [float(d), float(e), int(n)]
            for (d, e, n) in zip(self.densities(), self.density_errors(), self.counts)
        ]

    def __repr__(self):
        return f"WeightedHistogram({self.axis}, {self.entries()} entries)"
