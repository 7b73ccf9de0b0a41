"""
Growth mapping

Maps the kernel-weighted neighborhood potential U to a signed growth rate:

    G(U) = 2 * exp(-0.5 * ((U - mu) / sigma)^2) - 1

G is +1 at U == mu and tends to -1 far from it, crossing zero at
mu +/- sigma * sqrt(2 ln 2).
"""

import math
import numpy as np


# Distance from mu (in units of sigma) where growth crosses zero
ZERO_CROSSING = math.sqrt(2.0 * math.log(2.0))


def bell(x, center, width):
    """Gaussian bell curve"""
    return np.exp(-0.5 * ((x - center) / width) ** 2)


def growth(U, mu, sigma):
    """Growth mapping: neighborhood potential -> growth rate in (-1, 1]"""
    return 2.0 * bell(U, mu, sigma) - 1.0


def smoothstep(x, low, high):
    """Hermite step between low and high (GLSL smoothstep semantics)."""
    t = np.clip((np.asarray(x, dtype=np.float64) - low) / (high - low), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)
