"""
Lenia - Continuous Cellular Automaton Engine

A continuous generalization of Conway's Game of Life where:
- States are continuous [0, 1] instead of binary
- Neighborhoods use smooth kernel functions instead of discrete counts
- Growth/decay is governed by a Gaussian growth function
- Time steps are fractional for smooth evolution

One tick reads the current buffer and writes the next one:

    U    = K * A                     (toroidal convolution, K sums to 1)
    next = clip(A + G(U) * dt / T, 0, 1) * trail

Reference: Bert Chan, "Lenia - Biology of Artificial Life" (2020)
"""

import logging
import numpy as np

from .creatures import creature_size, get_template
from .engine_base import LeniaEngineBase
from .exceptions import ConfigurationError
from .growth import growth
from .kernels import build_kernel
from .species import SpeciesRegistry

logger = logging.getLogger(__name__)

SEED_TYPES = ("circles", "gaussian", "creature")


def check_speed(speed):
    if not speed > 0:
        raise ConfigurationError(f"speed must be positive, got {speed!r}")
    return float(speed)


def check_trail(trail):
    if not 0.0 < trail <= 1.0:
        raise ConfigurationError(f"trail must be in (0, 1], got {trail!r}")
    return float(trail)


class Lenia(LeniaEngineBase):

    engine_name = "lenia"
    engine_label = "Lenia"
    channels = 1

    def __init__(self, width=256, height=256, species="orbium", registry=None,
                 speed=1.0, trail=1.0, method="fft", rng=None):
        """
        Args:
            width, height: Grid dimensions in cells
            species: Registry id of the species to run
            registry: SpeciesRegistry (default catalog if None)
            speed: dt multiplier (dt = 1.0 * speed)
            trail: Per-step fade applied after the update (1.0 disables)
            method: Convolution backend, "fft" or "direct"
            rng: numpy Generator used for seeding
        """
        self.speed = check_speed(speed)
        self.trail = check_trail(trail)
        self.method = method
        self.registry = registry if registry is not None else SpeciesRegistry.default()
        params = self.registry.get(species)

        super().__init__(width, height, rng)
        self.species_id = species
        self.params = params
        self._kernel = build_kernel(params.R, self.field.shape, params.beta, method)
        logger.debug("Lenia %dx%d species=%s method=%s",
                     width, height, species, method)

    @property
    def dt(self):
        return 1.0 * self.speed

    @property
    def kernel(self):
        return self._kernel

    def potential(self, world=None):
        """Neighborhood potential U of a 2D array (current buffer by default)."""
        if world is None:
            world = self.field.current[0]
        return self._kernel.potential(world)

    def growth(self, U):
        """Growth mapping: maps neighborhood potential to growth rate [-1, 1]"""
        return growth(U, self.params.mu, self.params.sigma)

    def step(self):
        """Advance one time step. Returns the world state."""
        current = self.field.current[0]
        nxt = self.field.next[0]
        G = self.growth(self.potential(current))
        np.clip(current + G * (self.dt / self.params.T), 0.0, 1.0, out=nxt)
        if self.trail != 1.0:
            nxt *= self.trail
        self.field.swap()
        self.generation += 1
        self.time += self.dt
        return self.world

    # -- Species / parameters -------------------------------------------------

    def species_ids(self):
        return [self.species_id]

    def species_params(self):
        return [self.params]

    def apply_species(self, channel, params):
        """Swap in a new parameter record; the kernel is rebuilt only if R or beta changed."""
        if channel != 0:
            raise ConfigurationError(f"Lenia has one channel, got {channel}")
        if params.R != self.params.R or params.beta != self.params.beta:
            self._kernel = build_kernel(params.R, self.field.shape, params.beta, self.method)
        self.params = params

    def select_species(self, species_id):
        """Run a registry species (unknown ids raise ConfigurationError)."""
        params = self.registry.get(species_id)
        self.apply_species(0, params)
        self.species_id = species_id
        logger.info("Selected species %r (%s)", species_id, params.name)
        return params

    def set_parameters(self, record, species_id="custom"):
        """Register a {R, T, mu, sigma} record as ``species_id`` and run it."""
        base = {"name": "Custom", "beta": self.params.beta, "color": self.params.color}
        base.update(dict(record))
        self.registry.upsert(species_id, base)
        return self.select_species(species_id)

    def set_params(self, mu=None, sigma=None, T=None, R=None, beta=None,
                   speed=None, trail=None, **_kw):
        """Update parameters. Rebuilds kernel if R or kernel shape changes.

        Invalid values raise ConfigurationError and leave the engine as it was.
        """
        changes = {k: v for k, v in
                   (("mu", mu), ("sigma", sigma), ("T", T), ("R", R), ("beta", beta))
                   if v is not None}
        params = self.params.replace(**changes) if changes else self.params
        speed = check_speed(speed) if speed is not None else self.speed
        trail = check_trail(trail) if trail is not None else self.trail
        self.apply_species(0, params)
        self.speed = speed
        self.trail = trail

    def get_params(self):
        return {
            "species": self.species_id,
            "mu": self.params.mu,
            "sigma": self.params.sigma,
            "R": self.params.R,
            "T": self.params.T,
            "beta": self.params.beta,
            "speed": self.speed,
            "trail": self.trail,
        }

    # -- Seeding ---------------------------------------------------------------

    def seed(self, seed_type="circles", **kwargs):
        """Seed the world based on type string."""
        if seed_type == "creature":
            self.field.clear()
            self.place_creature(**kwargs)
        elif seed_type in ("circles", "gaussian"):
            self.randomize(seed_type, **kwargs)
        else:
            raise ConfigurationError(
                f"Unknown seed type: {seed_type!r}. Supported: {list(SEED_TYPES)}")
        self.generation = 0
        self.time = 0.0

    def place_creature(self, template="orbium", x=0.5, y=0.5, size=None, scale=1.0):
        """Inject a creature template sized for the active species."""
        if size is None:
            size = creature_size(self.params.R)
        patch = get_template(template).generate(size)
        self.inject(patch, x, y, scale)
        return patch
