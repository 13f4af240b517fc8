import numpy as np
from .errors import DomainError

class EventSample:
    """A weighted sample of reconstructed events.
    # Fields
    * `evt_angles`: cos(theta) of each event, in [-1, 1]
    * `evt_weights`: the weight of each event
    Both arrays are read-only. To cut the sample, use `EventSample.retain(mask)`, which keeps the
    two arrays in sync.
    """
    def __init__(self, angles, weights=None):
        """Create the sample from an array of angles and (optionally) an array of weights. Weights
        default to one."""
        angles = np.array(angles, dtype=float).reshape(-1)
        if weights is None:
            weights = np.ones_like(angles)
        else:
            weights = np.array(weights, dtype=float).reshape(-1)
        if len(angles) != len(weights):
            raise DomainError(f"Got {len(angles)} angles but {len(weights)} weights")
        if not np.all(np.isfinite(angles)) or not np.all(np.isfinite(weights)):
            raise DomainError("Event angles and weights must be finite")

        self.evt_angles = angles
        self.evt_weights = weights
        self._freeze()

    def _freeze(self):
        self.evt_angles.flags.writeable = False
        self.evt_weights.flags.writeable = False

    def concatenate(samples):
        """Join several EventSamples into one"""
        if len(samples) == 0:
            return EventSample([], [])
        return EventSample(
            np.concatenate([s.evt_angles for s in samples]),
            np.concatenate([s.evt_weights for s in samples]),
        )

    def retain(self, mask):
        """Keep only the events where `mask` is True"""
        self.evt_angles = np.array(self.evt_angles[mask])
        self.evt_weights = np.array(self.evt_weights[mask])
        self._freeze()

    def total_weight(self):
        return np.sum(self.evt_weights)

    def entries(self):
        return len(self.evt_angles)

    def __len__(self):
        return len(self.evt_angles)

    def __repr__(self):
        return f"EventSample({self.entries()} events, total weight {self.total_weight():.6g})"
