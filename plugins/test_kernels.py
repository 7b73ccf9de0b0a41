#!/usr/bin/env python3
"""
Tests for the kernel model and growth mapping.

Verifies:
1. Shell and multi-ring weights
2. Disc-shaped table with bound derived from R
3. FFT and direct backends agree, both wrap around the torus
4. Degenerate kernels stay finite
5. Growth function symmetry and zero crossings
"""

import math

import numpy as np
import pytest
from scipy import ndimage

from lenia_ecosystem.exceptions import ConfigurationError
from lenia_ecosystem.growth import ZERO_CROSSING, growth, smoothstep
from lenia_ecosystem.kernels import (
    DirectKernel, KernelFFT, build_kernel, kernel_shell, kernel_table,
    kernel_weight, normalized_table,
)


def test_kernel_shell():
    assert kernel_shell(0.5) == pytest.approx(1.0), "Shell peaks at r = 0.5"
    assert kernel_shell(0.0) == 0.0
    assert kernel_shell(1.0) == 0.0
    assert kernel_shell(1.2) == 0.0, "Zero outside [0, 1]"
    assert kernel_shell(0.25) == pytest.approx(0.5625)


def test_multi_ring_weights():
    beta = (1.0, 0.5)
    assert kernel_weight(0.25, beta) == pytest.approx(1.0), "First shell peak"
    assert kernel_weight(0.75, beta) == pytest.approx(0.5), "Second shell scaled by beta"
    assert kernel_weight(0.5, beta) == pytest.approx(0.0), "Shell boundary"
    assert kernel_weight(0.5) == pytest.approx(1.0), "Single ring by default"


def test_table_is_disc():
    R = 5
    K = kernel_table(R)
    assert K.shape == (11, 11), f"Bound should be ceil(R): {K.shape}"
    y, x = np.ogrid[-5:6, -5:6]
    outside = np.sqrt(x * x + y * y) > R
    assert np.all(K[outside] == 0), "Offsets beyond R carry no weight"
    assert K[5, 5] == 0.0, "Center has zero shell weight"
    assert K.max() > 0

    assert kernel_table(4.5).shape == (11, 11), "Non-integer R rounds the bound up"
    assert normalized_table(R).sum() == pytest.approx(1.0)


def test_invalid_radius_rejected():
    for R in (0, -3):
        with pytest.raises(ConfigurationError):
            kernel_table(R)
    with pytest.raises(ConfigurationError):
        build_kernel(5, (16, 16), method="gpu")


def test_fft_matches_direct():
    rng = np.random.default_rng(0)
    world = rng.random((32, 40))
    fft = KernelFFT(6, world.shape)
    direct = DirectKernel(6, world.shape)
    assert np.allclose(fft.potential(world), direct.potential(world), atol=1e-10), \
        "FFT and direct convolution should agree"


def test_boundary_wraps():
    """A blob at the right edge is felt at the left edge."""
    world = np.zeros((32, 32))
    world[14:19, 30:32] = 1.0
    kernel = KernelFFT(6, world.shape)

    wrapped = kernel.potential(world)
    direct = ndimage.convolve(world, kernel.table, mode="wrap")
    unwrapped = ndimage.convolve(world, kernel.table, mode="constant")

    assert wrapped[16, 0] > 0.01, f"Left edge should see the blob: {wrapped[16, 0]}"
    assert wrapped[16, 0] == pytest.approx(direct[16, 0])
    assert unwrapped[16, 0] == 0.0, "Non-wrapped reference sees nothing"


def test_uniform_field_potential():
    """U of a constant field equals the constant, even when R exceeds the grid."""
    for shape in ((16, 16), (8, 8)):
        world = np.full(shape, 0.3)
        U = KernelFFT(10, shape).potential(world)
        assert np.allclose(U, 0.3), f"Kernel mass lost on grid {shape}"


def test_degenerate_kernel_finite():
    """Zero weight sum uses the epsilon denominator instead of dividing by 0."""
    K = normalized_table(0.5)
    assert np.all(np.isfinite(K))
    assert K.sum() == 0.0
    U = KernelFFT(0.5, (8, 8)).potential(np.ones((8, 8)))
    assert np.all(np.isfinite(U))
    assert np.allclose(U, 0.0)


def test_growth_symmetry():
    mu, sigma = 0.15, 0.015
    assert growth(mu, mu, sigma) == pytest.approx(1.0), "G(mu) is the maximum"
    for k in (0.3, 1.0, 2.5, 7.0):
        lo = growth(mu - k * sigma, mu, sigma)
        hi = growth(mu + k * sigma, mu, sigma)
        assert lo == pytest.approx(hi), f"G not symmetric at k={k}"
        assert -1.0 < lo <= 1.0
    assert abs(growth(mu + ZERO_CROSSING * sigma, mu, sigma)) < 1e-12
    assert ZERO_CROSSING == pytest.approx(math.sqrt(2 * math.log(2)))
    assert growth(0.0, mu, sigma) == pytest.approx(-1.0), "Far from mu -> decay"


def test_smoothstep():
    assert smoothstep(0.2, 0.5, 1.5) == 0.0
    assert smoothstep(2.0, 0.5, 1.5) == 1.0
    assert smoothstep(1.0, 0.5, 1.5) == pytest.approx(0.5)
    assert smoothstep(0.6, 0.5, 1.5) == pytest.approx(0.028)


if __name__ == "__main__":
    print("\n=== Testing Kernel Model ===\n")

    test_kernel_shell()
    test_multi_ring_weights()
    test_table_is_disc()
    test_invalid_radius_rejected()
    test_fft_matches_direct()
    test_boundary_wraps()
    test_uniform_field_potential()
    test_degenerate_kernel_finite()
    test_growth_symmetry()
    test_smoothstep()

    print("\n✓ All tests passed!\n")
