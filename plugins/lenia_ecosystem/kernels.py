"""
Lenia kernel model

The kernel is a radial weighting over the disc of radius R around a cell.
Each shell is the smooth bump (4r(1-r))^2 on the normalized distance
r = dist / R; multi-ring kernels split [0, 1) into len(beta) shells, each
scaled by its beta weight.

The neighborhood bound is derived from R (ceil(R) cells in each direction)
and the weights are precomputed once per species. Two convolution backends
share that table:

- KernelFFT: table wrapped onto the torus and pre-transformed with rfft2,
  so a step costs one forward/inverse FFT pair per channel.
- DirectKernel: scipy.ndimage.convolve in "wrap" mode over the same table.

Both give toroidal (wrap-around) boundaries.
"""

import math
import numpy as np
from scipy import ndimage

from .exceptions import ConfigurationError


# Denominator floor for degenerate kernels (weight sum ~ 0)
KERNEL_EPSILON = 1e-4

CONVOLUTION_METHODS = ("fft", "direct")


def kernel_shell(r):
    """Smooth unimodal bump (4r(1-r))^2 on [0, 1], zero outside."""
    r = np.asarray(r, dtype=np.float64)
    inside = (r >= 0.0) & (r <= 1.0)
    return np.where(inside, (4.0 * r * (1.0 - r)) ** 2, 0.0)


def kernel_weight(r, beta=(1.0,)):
    """Multi-ring kernel weight at normalized distance r.

    With B = len(beta), shell k covers r in [k/B, (k+1)/B) and carries
    weight beta[k]. beta=(1.0,) is the single ring peaking at r=0.5.
    """
    r = np.asarray(r, dtype=np.float64)
    beta = np.asarray(beta, dtype=np.float64)
    B = len(beta)
    Br = B * r
    idx = np.clip(np.floor(Br).astype(np.int64), 0, B - 1)
    w = beta[idx] * kernel_shell(Br - idx)
    return np.where((r >= 0.0) & (r <= 1.0), w, 0.0)


def kernel_table(R, beta=(1.0,)):
    """Raw (unnormalized) kernel weights on integer offsets within the disc.

    Returns a (2n+1, 2n+1) array with n = ceil(R); offsets farther than R
    from the center are zero.
    """
    if not R > 0:
        raise ConfigurationError(f"Kernel radius must be positive, got {R!r}")
    n = max(0, int(math.ceil(R)))
    y, x = np.ogrid[-n:n + 1, -n:n + 1]
    D = np.sqrt(x * x + y * y) / R
    K = kernel_weight(D, beta)
    K[D > 1] = 0
    return K


def normalized_table(R, beta=(1.0,)):
    """Kernel table divided by its sum (epsilon-guarded)."""
    K = kernel_table(R, beta)
    return K / max(K.sum(), KERNEL_EPSILON)


class KernelFFT:
    """Precomputed FFT of the normalized kernel for one grid shape."""

    method = "fft"

    def __init__(self, R, shape, beta=(1.0,)):
        self.R = R
        self.beta = tuple(beta)
        self.shape = tuple(shape)
        self.table = normalized_table(R, beta)

        # Wrap offsets onto the torus so center lands at (0, 0); np.add.at
        # accumulates offsets that alias when the kernel exceeds the grid.
        h, w = self.shape
        n = self.table.shape[0] // 2
        offsets = np.arange(-n, n + 1)
        padded = np.zeros(self.shape, dtype=np.float64)
        np.add.at(padded, np.ix_(offsets % h, offsets % w), self.table)
        self._kernel_fft = np.fft.rfft2(padded)

    def potential(self, world):
        """Kernel-weighted neighborhood average U for a 2D density array."""
        world_fft = np.fft.rfft2(world)
        return np.fft.irfft2(world_fft * self._kernel_fft, s=self.shape)


class DirectKernel:
    """Spatial convolution with the precomputed table (wrapped edges)."""

    method = "direct"

    def __init__(self, R, shape, beta=(1.0,)):
        self.R = R
        self.beta = tuple(beta)
        self.shape = tuple(shape)
        self.table = normalized_table(R, beta)

    def potential(self, world):
        return ndimage.convolve(world, self.table, mode="wrap")


def build_kernel(R, shape, beta=(1.0,), method="fft"):
    """Create a convolution backend for a species on a grid of ``shape``."""
    if method == "fft":
        return KernelFFT(R, shape, beta)
    if method == "direct":
        return DirectKernel(R, shape, beta)
    raise ConfigurationError(
        f"Unknown convolution method: {method!r}. "
        f"Supported: {list(CONVOLUTION_METHODS)}")
