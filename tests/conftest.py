import numpy as np
import pytest
from hjfit import EventSample, sample_angles

# Generating parameters of the synthetic sample. phi2 is fixed to zero in the fits that use it.
TRUTH = np.array([0.4, 0.2, 0.05, 0.0])


@pytest.fixture(scope="session")
def truth():
    return TRUTH


@pytest.fixture(scope="session")
def synthetic_sample():
    """100k weighted events drawn from the model at TRUTH. Weights are independent of the angle."""
    rng = np.random.default_rng(20240611)
    angles = sample_angles(TRUTH, 100_000, rng)
    weights = rng.uniform(0.5, 1.5, size=len(angles))
    return EventSample(angles, weights)


@pytest.fixture
def small_sample():
    rng = np.random.default_rng(7)
    angles = sample_angles(TRUTH, 2_000, rng)
    weights = rng.uniform(0.5, 1.5, size=len(angles))
    return EventSample(angles, weights)
