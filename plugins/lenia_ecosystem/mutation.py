"""
Bounded Random-Walk Mutation

While mutation mode is active every species tunable drifts a little each
tick and is clamped back into a viable range, so novel stable creatures can
emerge without manual tuning:

    value += (u - 0.5) * speed * scale      u ~ U[0, 1)
    value = clamp(value, low, high)

The drifting record is a working copy. Catalog entries are never touched;
switching mutation off hands back the record it started from.
"""

import numpy as np

from .exceptions import ConfigurationError


# Viable range per tunable (organism remains alive-ish within these)
MUTATION_BOUNDS = {
    "R": (5.0, 20.0),
    "T": (5.0, 20.0),
    "mu": (0.05, 0.3),
    "sigma": (0.005, 0.05),
}

# Step size per unit of mutation speed
MUTATION_SCALE = {
    "R": 0.5,
    "T": 0.5,
    "mu": 0.005,
    "sigma": 0.0005,
}


def mutate(params, speed=1.0, rng=None):
    """One bounded random-walk step for every tunable.

    Args:
        params: SpeciesParams to start from
        speed: Multiplier on the per-tick step size (>= 0)
        rng: numpy Generator

    Returns:
        New SpeciesParams (the input is left unchanged)
    """
    if speed < 0:
        raise ConfigurationError(f"Mutation speed must be >= 0, got {speed!r}")
    rng = rng if rng is not None else np.random.default_rng()
    values = {}
    for key, (low, high) in MUTATION_BOUNDS.items():
        value = getattr(params, key) + (rng.random() - 0.5) * speed * MUTATION_SCALE[key]
        values[key] = min(high, max(low, value))
    # Clamped values are always valid, so skip re-validation
    return params.model_copy(update=values)


class MutationModel:
    """Working copy of one species that random-walks while active."""

    def __init__(self, speed=1.0, rng=None):
        if speed < 0:
            raise ConfigurationError(f"Mutation speed must be >= 0, got {speed!r}")
        self.speed = speed
        self.rng = rng if rng is not None else np.random.default_rng()
        self._base = None
        self._working = None

    @property
    def active(self):
        return self._working is not None

    @property
    def base(self):
        return self._base

    @property
    def working(self):
        return self._working

    def start(self, base):
        """Begin drifting from ``base`` (a SpeciesParams)."""
        self._base = base
        self._working = base
        return self._working

    def step(self):
        """Advance the walk one tick. Returns the drifted record."""
        if not self.active:
            return None
        self._working = mutate(self._working, self.speed, self.rng)
        return self._working

    def stop(self):
        """Discard the drifted copy. Returns the record mutation started from."""
        base = self._base
        self._base = None
        self._working = None
        return base
