"""
The angular intensity model: the squared modulus of an even Legendre expansion of degree 6,
whose zeroth coefficient is fixed by normalization.
"""

import numpy as np
from .errors import DomainError
from .settings import DEFAULT_RANGE

def legendre_polynomials(x):
    """Returns P2, P4 and P6 evaluated at `x`"""
    x = np.asarray(x, dtype=float)
    x2 = x*x
    x4 = x2*x2
    x6 = x4*x2

    p2 = 1.5*x2 - 0.5
    p4 = 4.375*x4 - 3.75*x2 + 0.375
    p6 = 14.4375*x6 - 19.6875*x4 + 6.5625*x2 - 0.3125
    return p2, p4, p6

def normalization_radicand(params):
    """Returns 0.5 - (c2^2/5 + c4^2/9 + c6^2/13). The model is only defined where this is non-negative."""
    c2, c4, c6 = params[0], params[1], params[2]
    return 0.5 - (0.2*c2**2 + (1./9.)*c4**2 + (1./13.)*c6**2)

def normalization_coefficient(params, strict=False):
    """
    Get c0, the coefficient of P0 which makes the intensity integrate to one on [-1, 1].
    # Arguments
    * params: the parameter vector (c2, c4, c6, phi2)
    * strict: set to True to raise a DomainError when the normalization cannot be satisfied.
    Otherwise nan is returned.
    """
    radicand = normalization_radicand(params)
    if radicand < 0:
        if strict:
            raise DomainError(f"The amplitudes {tuple(params[:3])} exceed the normalization budget (radicand {radicand})")
        return np.nan
    return np.sqrt(radicand)

def is_feasible(params):
    return normalization_radicand(params) >= 0

def intensity(x, params):
    """
    Evaluate the intensity I(x; c) = |c0 + c2 e^(i phi2) P2(x) + c4 P4(x) + c6 P6(x)|^2
    # Arguments
    * x: cos(theta), scalar or array
    * params: the parameter vector (c2, c4, c6, phi2)
    # Returns
    * The intensity, with the same shape as x. Nan if the parameters are outside the normalization
    budget.
    """
    c2, c4, c6, phi2 = params
    p2, p4, p6 = legendre_polynomials(x)
    c0 = normalization_coefficient(params)

    amplitude = c0 + c2*np.exp(1j*phi2)*p2 + c4*p4 + c6*p6
    return amplitude.real**2 + amplitude.imag**2

def intensity_gradient(x, params):
    """
    Derivatives of the intensity with respect to (c2, c4, c6, phi2), including the dependence of c0
    on the amplitudes. Returns an array of shape (4,) + shape(x).
    """
    c2, c4, c6, phi2 = params
    p2, p4, p6 = legendre_polynomials(x)
    c0 = normalization_coefficient(params)
    cos_phi = np.cos(phi2)
    sin_phi = np.sin(phi2)

    real = c0 + c2*cos_phi*p2 + c4*p4 + c6*p6
    imag = c2*sin_phi*p2

    with np.errstate(divide="ignore", invalid="ignore"):
        dc0 = np.array([-0.2*c2, -c4/9., -c6/13.]) / c0

    grad = np.empty((4,) + np.shape(real))
    grad[0] = 2*real*(dc0[0] + cos_phi*p2) + 2*imag*sin_phi*p2
    grad[1] = 2*real*(dc0[1] + p4)
    grad[2] = 2*real*(dc0[2] + p6)
    grad[3] = 2*c2*p2*(imag*cos_phi - real*sin_phi)
    return grad

def sample_angles(params, n, rng=None, angle_range=DEFAULT_RANGE):
    """
    Draw `n` angles distributed according to the intensity by accept / reject.
    # Arguments
    * params: the parameter vector (c2, c4, c6, phi2)
    * n: number of angles
    * rng (optional): a numpy Generator or seed
    * angle_range (optional): the range to draw from. Default [-1, 1]
    """
    rng = np.random.default_rng(rng)
    lo, hi = angle_range
    normalization_coefficient(params, strict=True)

    grid = np.linspace(lo, hi, 2001)
    envelope = 1.05 * np.max(intensity(grid, params))

    samples = []
    n_found = 0
    while n_found < n:
        xs = rng.uniform(lo, hi, size=max(2 * (n - n_found), 1024))
        keep = rng.uniform(0, envelope, size=len(xs)) < intensity(xs, params)
        samples.append(xs[keep])
        n_found += np.sum(keep)
    return np.concatenate(samples)[:n]
