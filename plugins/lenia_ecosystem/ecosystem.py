"""
Multi-Species Lenia Ecosystem

Each channel is one species with its own kernel and growth bell. On top of
the per-species Lenia growth, species interact through an N x N matrix M
where M[i, j] is the signed effect of species j on species i:

    loss_i  = rho_i * sum_j max(0, -M[i, j]) * rho_j
    gain_i  = rho_i * sum_j max(0,  M[i, j]) * rho_j * benefit_factor
    crowd   = smoothstep(sum_j rho_j, low, high) * crowding
    next_i  = clip(rho_i + G_i * dt / T_i + gain_i - loss_i - crowd * rho_i, 0, 1)
    next_i *= decay_i

Growth sees the kernel neighborhood (U_i) while the interaction terms use
the same-cell densities rho. That asymmetry is part of the model: species
grow from what surrounds them but only eat what overlaps them.

Default chain (prey -> predator -> apex):

    M = [[ 0,        -p,        0 ],
         [ 0.5 * b,   0,       -p ],
         [ 0,         0.3 * b,  0 ]]
"""

import logging
import numpy as np
from pydantic import ValidationError

from .config import EcosystemSettings
from .creatures import paint_ring, ring_profile
from .engine_base import LeniaEngineBase
from .exceptions import ConfigurationError
from .growth import growth, smoothstep
from .kernels import build_kernel
from .lenia import check_speed
from .presets import ECOSYSTEM_ORDER, TROPHIC_EFFICIENCY
from .species import SpeciesRegistry

logger = logging.getLogger(__name__)

SEED_TYPES = ("ecosystem", "circles", "gaussian")

# (channel, region center x, y, cluster count) for seed_ecosystem
SEED_REGIONS = (
    (0, 0.25, 0.5, 3),   # prey - left
    (1, 0.5, 0.5, 2),    # predator - center
    (2, 0.75, 0.5, 1),   # apex - right
)


class InteractionMatrix:
    """Validated N x N species interaction matrix (zero diagonal)."""

    def __init__(self, values):
        values = np.array(values, dtype=np.float64)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise ConfigurationError(
                f"Interaction matrix must be square, got shape {values.shape}")
        if not np.all(np.isfinite(values)):
            raise ConfigurationError("Interaction matrix entries must be finite")
        if np.any(np.diag(values) != 0):
            raise ConfigurationError(
                "Interaction matrix diagonal must be 0 "
                "(self-interaction lives in the growth function)")
        values.setflags(write=False)
        self.values = values
        self.positive = np.maximum(values, 0.0)
        self.negative = np.maximum(-values, 0.0)

    @classmethod
    def from_strengths(cls, predation, benefit, efficiencies=TROPHIC_EFFICIENCY):
        """Trophic chain where species k+1 eats species k.

        The consumer gains ``benefit * efficiency`` per link and the consumed
        species loses ``predation``. N = len(efficiencies) + 1.
        """
        n = len(efficiencies) + 1
        values = np.zeros((n, n))
        for k, efficiency in enumerate(efficiencies):
            values[k, k + 1] = -predation
            values[k + 1, k] = benefit * efficiency
        return cls(values)

    @property
    def size(self):
        return self.values.shape[0]

    def __getitem__(self, index):
        return self.values[index]

    def __repr__(self):
        return f"InteractionMatrix({self.values.tolist()!r})"


class Ecosystem(LeniaEngineBase):

    engine_name = "ecosystem"
    engine_label = "Ecosystem"
    channels = 3

    def __init__(self, width=256, height=256, species=None, registry=None,
                 settings=None, matrix=None, speed=1.0, method="fft", rng=None):
        """
        Args:
            width, height: Grid dimensions in cells
            species: Registry ids, one per channel (prey, predator, apex by default)
            registry: SpeciesRegistry (ecosystem catalog if None)
            settings: EcosystemSettings (defaults if None)
            matrix: Interaction matrix (N x N); built from the settings'
                predation/benefit strengths if None
            speed: dt multiplier (dt = settings.dt * speed)
            method: Convolution backend, "fft" or "direct"
            rng: numpy Generator used for seeding
        """
        self.registry = registry if registry is not None else SpeciesRegistry.ecosystem()
        ids = list(species) if species is not None else list(ECOSYSTEM_ORDER)
        if not ids:
            raise ConfigurationError("Ecosystem needs at least one species")
        params = [self.registry.get(sid) for sid in ids]
        self.settings = settings if settings is not None else EcosystemSettings()
        self.speed = check_speed(speed)
        self.channels = len(ids)
        self._check_decay(self.settings)
        if matrix is None:
            self.interaction = self._default_matrix(self.settings)
        else:
            self.interaction = self._check_matrix(matrix)
        self.method = method

        super().__init__(width, height, rng)
        self._ids = ids
        self._params = params
        self._kernels = [build_kernel(p.R, self.field.shape, p.beta, method)
                         for p in params]
        logger.debug("Ecosystem %dx%d species=%s method=%s",
                     width, height, ids, method)

    # -- Validation ------------------------------------------------------------

    def _check_decay(self, settings):
        if len(settings.decay) != self.channels:
            raise ConfigurationError(
                f"Need one decay factor per species ({self.channels}), "
                f"got {len(settings.decay)}")

    def _check_matrix(self, matrix):
        if not isinstance(matrix, InteractionMatrix):
            matrix = InteractionMatrix(matrix)
        if matrix.size != self.channels:
            raise ConfigurationError(
                f"Interaction matrix is {matrix.size}x{matrix.size}, "
                f"expected {self.channels}x{self.channels}")
        return matrix

    def _default_matrix(self, settings):
        efficiencies = TROPHIC_EFFICIENCY[:self.channels - 1]
        if len(efficiencies) != self.channels - 1:
            raise ConfigurationError(
                f"No default trophic chain for {self.channels} species; "
                f"pass an interaction matrix")
        return InteractionMatrix.from_strengths(
            settings.predation, settings.benefit, efficiencies)

    # -- Update ----------------------------------------------------------------

    @property
    def dt(self):
        return self.settings.dt * self.speed

    def potentials(self):
        """Neighborhood potential U per channel, (C, H, W)."""
        current = self.field.current
        return np.stack([k.potential(current[i]) for i, k in enumerate(self._kernels)])

    def step(self):
        """Advance one time step. Returns the world state."""
        s = self.settings
        rho = self.field.current
        U = self.potentials()
        G = np.stack([growth(U[i], p.mu, p.sigma) for i, p in enumerate(self._params)])
        rate = np.array([self.dt / p.T for p in self._params])[:, None, None]

        gain = rho * np.einsum("ij,jhw->ihw", self.interaction.positive, rho) * s.benefit_factor
        loss = rho * np.einsum("ij,jhw->ihw", self.interaction.negative, rho)
        crowd = smoothstep(rho.sum(axis=0), s.crowding_low, s.crowding_high) * s.crowding

        nxt = self.field.next
        np.clip(rho + G * rate + gain - loss - crowd * rho, 0.0, 1.0, out=nxt)
        nxt *= np.asarray(s.decay)[:, None, None]

        self.field.swap()
        self.generation += 1
        self.time += self.dt
        return self.world

    # -- Species / parameters ----------------------------------------------------

    def species_ids(self):
        return list(self._ids)

    def species_params(self):
        return list(self._params)

    def channel_of(self, species):
        """Channel index for a species id (ints pass through)."""
        if isinstance(species, (int, np.integer)):
            if not 0 <= species < self.channels:
                raise ConfigurationError(f"No channel {species}")
            return int(species)
        try:
            return self._ids.index(species)
        except ValueError:
            raise ConfigurationError(
                f"Species {species!r} is not in this ecosystem: {self._ids}") from None

    def apply_species(self, channel, params):
        channel = self.channel_of(channel)
        old = self._params[channel]
        if params.R != old.R or params.beta != old.beta:
            self._kernels[channel] = build_kernel(
                params.R, self.field.shape, params.beta, self.method)
        self._params[channel] = params

    def select_species(self, channel, species_id):
        """Run registry species ``species_id`` on ``channel``."""
        channel = self.channel_of(channel)
        params = self.registry.get(species_id)
        self.apply_species(channel, params)
        self._ids[channel] = species_id
        logger.info("Channel %d now runs %r", channel, species_id)
        return params

    def set_parameters(self, channel, record, species_id=None):
        """Register a {R, T, mu, sigma} record and run it on ``channel``.

        Each channel gets its own registry entry (``custom_<channel>`` by
        default), so editing one channel never rewrites another's record.
        """
        channel = self.channel_of(channel)
        if species_id is None:
            species_id = f"custom_{channel}"
        current = self._params[channel]
        base = {"name": "Custom", "beta": current.beta, "color": current.color}
        base.update(dict(record))
        self.registry.upsert(species_id, base)
        return self.select_species(channel, species_id)

    def set_interaction(self, predation=None, benefit=None):
        """Rebuild the trophic chain from new shared strengths."""
        self.set_params(predation=predation, benefit=benefit)

    def set_matrix(self, matrix):
        """Use an explicit N x N interaction matrix."""
        self.interaction = self._check_matrix(matrix)

    def set_params(self, **params):
        """Update ecosystem settings (dt, predation, benefit, crowding, decay...).

        Invalid values raise ConfigurationError and leave the engine as it was.
        """
        speed = params.get("speed")
        speed = check_speed(speed) if speed is not None else self.speed
        changes = {k: v for k, v in params.items()
                   if v is not None and k in EcosystemSettings.model_fields}
        if not changes:
            self.speed = speed
            return
        try:
            settings = EcosystemSettings.model_validate(
                {**self.settings.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid ecosystem settings: {e}") from e
        self._check_decay(settings)
        strengths_changed = ("predation" in changes or "benefit" in changes)
        if strengths_changed:
            self.interaction = self._default_matrix(settings)
        self.settings = settings
        self.speed = speed

    def get_params(self):
        params = self.settings.model_dump()
        params["speed"] = self.speed
        params["species"] = self.species_ids()
        params["interaction"] = self.interaction.values.tolist()
        return params

    # -- Seeding / painting --------------------------------------------------------

    def seed(self, seed_type="ecosystem", **kwargs):
        """Seed the world based on type string."""
        if seed_type == "ecosystem":
            self.seed_ecosystem(**kwargs)
        elif seed_type in ("circles", "gaussian"):
            self.randomize(seed_type, **kwargs)
        else:
            raise ConfigurationError(
                f"Unknown seed type: {seed_type!r}. Supported: {list(SEED_TYPES)}")
        self.generation = 0
        self.time = 0.0

    def seed_ecosystem(self, regions=SEED_REGIONS, noise=5 / 255):
        """Ring-shaped clusters of each species in separate regions."""
        self.field.clear()
        Y, X = np.ogrid[:self.height, :self.width]
        for channel, rx, ry, count in regions:
            if channel >= self.channels:
                continue
            world = self.field.current[channel]
            for _ in range(count):
                cx = self.width * (rx + (self.rng.random() - 0.5) * 0.3)
                cy = self.height * (ry + (self.rng.random() - 0.5) * 0.6)
                outer = 15 + self.rng.random() * 10
                dist = np.sqrt((X - cx) ** 2 + (Y - cy) ** 2)
                value = ring_profile(dist, outer * 0.4, outer * 0.7, outer * 0.3) * (200 / 255)
                value = value + (self.rng.random(self.field.shape) - 0.5) * 2 * noise
                world += np.where(dist < outer * 1.2, value, 0.0)
            np.clip(world, 0.0, 1.0, out=world)

    def paint(self, x, y, radius=20, intensity=0.7, channel=0):
        """Paint a species (channel index or id) with the ring brush."""
        paint_ring(self.field, x, y, radius, intensity, self.channel_of(channel))
