"""
Abstract Base Class for Lenia Engines

Both engines (single-species Lenia and the multi-species ecosystem) own a
double-buffered FieldState and implement this interface, so the simulation
loop can drive either one interchangeably.
"""

from abc import ABC, abstractmethod
import numpy as np

from .creatures import inject, paint_stroke
from .field import FieldState


class LeniaEngineBase(ABC):
    """Base class for density-field engines."""

    engine_name = ""   # e.g. "lenia", "ecosystem"
    engine_label = ""  # e.g. "Lenia", "Ecosystem"
    channels = 1

    def __init__(self, width=256, height=256, rng=None):
        # Raises FieldAllocationError before any other state is built
        self.field = FieldState(width, height, self.channels)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.generation = 0
        self.time = 0.0

    @property
    def width(self):
        return self.field.width

    @property
    def height(self):
        return self.field.height

    @property
    def world(self):
        """Current buffer, (C, H, W)."""
        return self.field.current

    @abstractmethod
    def step(self):
        """Advance one time step. Returns the current buffer."""

    def step_n(self, n):
        """Advance n steps. Returns final state."""
        for _ in range(n):
            self.step()
        return self.world

    @abstractmethod
    def set_params(self, **params):
        """Update engine parameters."""

    @abstractmethod
    def get_params(self):
        """Return dict of current parameter values."""

    @abstractmethod
    def seed(self, seed_type="random", **kwargs):
        """Seed the world based on type string."""

    # -- Species access (used by mutation) -----------------------------------

    @abstractmethod
    def species_params(self):
        """List of active SpeciesParams, one per channel."""

    @abstractmethod
    def apply_species(self, channel, params):
        """Run ``channel`` with ``params`` (kernel rebuilt if needed)."""

    @abstractmethod
    def species_ids(self):
        """Registry id of each channel's species."""

    # -- Perturbation --------------------------------------------------------

    def paint(self, x, y, radius=20, intensity=0.8, channel=0):
        """Paint matter at normalized (x, y). Default: quadratic falloff disc."""
        paint_stroke(self.field, x, y, radius, intensity, channel)

    def inject(self, patch, x, y, scale=1.0, channel=0):
        """Max-overlay a density patch at normalized (x, y)."""
        inject(self.field, patch, x, y, scale, channel)

    def randomize(self, style="circles", **kwargs):
        self.field.randomize(style, rng=self.rng, **kwargs)

    def clear(self):
        """Clear the world."""
        self.field.clear()
        self.generation = 0
        self.time = 0.0

    # -- Read-only views -----------------------------------------------------

    def channel_labels(self):
        """One unique label per channel.

        The species id, or ``"<id>#<channel>"`` when several channels run
        the same species.
        """
        ids = self.species_ids()
        return [sid if ids.count(sid) == 1 else f"{sid}#{channel}"
                for channel, sid in enumerate(ids)]

    def get_population_stats(self):
        """Mean density per channel, keyed by channel label (insertion order = channel order)."""
        means = self.field.channel_means()
        return {label: float(m) for label, m in zip(self.channel_labels(), means)}

    @property
    def stats(self):
        """Return current world statistics."""
        world = self.world
        return {
            "generation": self.generation,
            "time": self.time,
            "mass": float(world.sum()),
            "mean": float(world.mean()),
            "max": float(world.max()),
            "alive_pct": float((world > 0.01).sum()) / world.size * 100,
        }

    def snapshot(self, as_uint8=False):
        """Flat row-major copy of the field plus species metadata."""
        return {
            "width": self.width,
            "height": self.height,
            "channels": self.channels,
            "data": self.field.to_flat(as_uint8),
            "species": [
                {"id": sid, "name": p.name, "color": p.color}
                for sid, p in zip(self.species_ids(), self.species_params())
            ],
            "generation": self.generation,
            "time": self.time,
        }
