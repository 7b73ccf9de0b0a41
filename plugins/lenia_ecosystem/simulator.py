"""
Simulation - headless driver for a Lenia engine

Owns one engine (single-species Lenia or the multi-species ecosystem) and
everything around the per-tick math: fixed-rate scheduling, pause and
manual stepping, mutation mode, perturbation hooks (paint, creature
injection, reseed, audio) and the read-only views for renderers and
statistics.

Every operation that touches the field runs under one re-entrant lock, so
painting from a UI or audio thread can never interleave with a step.

Usage:
    from lenia_ecosystem.simulator import Simulation
    sim = Simulation(width=128, height=128, species="orbium", seed=1)
    sim.advance(0.016)          # wall-clock seconds since the last call
    frame = sim.snapshot()      # flat row-major densities + species metadata
"""

import logging
import math
import threading
import time
import numpy as np

from .audio import AudioDrive
from .config import SimulationConfig
from .creatures import creature_size, get_template
from .ecosystem import Ecosystem
from .exceptions import ConfigurationError
from .lenia import Lenia
from .mutation import MutationModel
from .species import SpeciesRegistry

logger = logging.getLogger(__name__)


def create_engine(config, registry=None, rng=None):
    """Build the engine a SimulationConfig describes."""
    if config.mode == "ecosystem":
        return Ecosystem(
            config.width, config.height,
            registry=registry if registry is not None else SpeciesRegistry.ecosystem(),
            settings=config.ecosystem, speed=config.speed, method=config.method, rng=rng)
    return Lenia(
        config.width, config.height, species=config.species,
        registry=registry if registry is not None else SpeciesRegistry.default(),
        speed=config.speed, trail=config.trail, method=config.method, rng=rng)


class Simulation:
    """Fixed-rate simulation loop around one engine.

    Args:
        config: SimulationConfig (built from ``overrides`` if None)
        registry: SpeciesRegistry for the engine (catalog default if None)
        seed_world: Seed the field on construction
        **overrides: SimulationConfig fields, applied on top of ``config``
    """

    def __init__(self, config=None, registry=None, seed_world=True, **overrides):
        if config is None:
            config = SimulationConfig.build(**overrides)
        elif overrides:
            config = SimulationConfig.build(**{**config.model_dump(), **overrides})
        self.config = config
        self.rng = np.random.default_rng(config.seed)
        self.engine = create_engine(config, registry, self.rng)
        self.tick_rate = config.tick_rate
        self.max_ticks_per_update = config.max_ticks_per_update

        # Fixed-rate tick accumulator (seconds of unsimulated wall time)
        self.paused = False
        self._accumulator = 0.0
        self.ticks = 0

        self.mutation_speed = config.mutation_speed
        self._mutators = None

        self.audio = AudioDrive(rng=self.rng)
        self._lock = threading.RLock()

        if seed_world:
            self.engine.seed()
        logger.info("Simulation ready: %s %dx%d", self.engine.engine_label,
                    self.engine.width, self.engine.height)

    @property
    def lock(self):
        return self._lock

    # -----------------------------------------------------------------------
    # Scheduling
    # -----------------------------------------------------------------------

    def advance(self, elapsed):
        """Run the ticks owed for ``elapsed`` wall-clock seconds.

        Ticks happen at ``tick_rate`` Hz; at most ``max_ticks_per_update``
        run per call and any larger backlog is dropped. No-op while paused.
        Returns the number of ticks performed.
        """
        if self.paused:
            return 0
        self._accumulator += max(0.0, float(elapsed))
        n = int(math.floor(self._accumulator * self.tick_rate + 1e-9))
        if n > self.max_ticks_per_update:
            n = self.max_ticks_per_update
            self._accumulator = 0.0
        else:
            self._accumulator = max(0.0, self._accumulator - n / self.tick_rate)
        for _ in range(n):
            self._tick()
        return n

    def step(self):
        """One tick on demand (works while paused). Returns the field."""
        self._tick()
        return self.engine.world

    def run(self, n):
        """Headless batch: ``n`` ticks."""
        for _ in range(n):
            self._tick()
        return self.engine.world

    def _tick(self):
        with self._lock:
            if self._mutators is not None:
                for channel, mutator in enumerate(self._mutators):
                    self.engine.apply_species(channel, mutator.step())
            self.engine.step()
            self.ticks += 1

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False
        self._accumulator = 0.0

    def toggle_pause(self):
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    # -----------------------------------------------------------------------
    # Parameters and mutation
    # -----------------------------------------------------------------------

    @property
    def mutation_active(self):
        return self._mutators is not None

    def set_mutation(self, enabled):
        """Switch mutation mode.

        On: every species random-walks from its current parameters.
        Off: drift is discarded and each channel reverts to its registry entry.
        """
        with self._lock:
            if enabled and self._mutators is None:
                self._mutators = []
                for params in self.engine.species_params():
                    mutator = MutationModel(self.mutation_speed, self.rng)
                    mutator.start(params)
                    self._mutators.append(mutator)
                logger.info("Mutation on (speed %.2f)", self.mutation_speed)
            elif not enabled and self._mutators is not None:
                for mutator in self._mutators:
                    mutator.stop()
                self._mutators = None
                registry = self.engine.registry
                for channel, species_id in enumerate(self.engine.species_ids()):
                    self.engine.apply_species(channel, registry.get(species_id))
                logger.info("Mutation off, parameters reverted")

    def set_mutation_speed(self, speed):
        if speed < 0:
            raise ConfigurationError(f"Mutation speed must be >= 0, got {speed!r}")
        with self._lock:
            self.mutation_speed = speed
            for mutator in self._mutators or ():
                mutator.speed = speed

    def _restart_mutator(self, channel):
        if self._mutators is not None:
            self._mutators[channel].start(self.engine.species_params()[channel])

    def set_parameters(self, record, channel=0, species_id=None):
        """Run a plain {R, T, mu, sigma[, name, description]} record.

        The record is validated, stored in the registry ("custom" for
        Lenia, "custom_<channel>" per ecosystem channel unless
        ``species_id`` is given) and activated on ``channel``.
        """
        with self._lock:
            if isinstance(self.engine, Ecosystem):
                channel = self.engine.channel_of(channel)
                params = self.engine.set_parameters(channel, record, species_id)
            elif species_id is None:
                params = self.engine.set_parameters(record)
            else:
                params = self.engine.set_parameters(record, species_id)
            self._restart_mutator(channel)
            return params

    # -----------------------------------------------------------------------
    # Preset gallery
    # -----------------------------------------------------------------------

    def load_preset(self, gallery, preset_id, channel=0):
        """Run a gallery preset on ``channel`` (unknown ids raise ConfigurationError)."""
        record = gallery.load(preset_id)
        if record is None:
            raise ConfigurationError(f"Unknown preset: {preset_id!r}")
        logger.info("Loading preset %r", preset_id)
        return self.set_parameters(record, channel)

    def save_preset(self, gallery, preset_id, name=None, description="", channel=0):
        """Store the parameters running on ``channel`` in the gallery."""
        with self._lock:
            if isinstance(self.engine, Ecosystem):
                channel = self.engine.channel_of(channel)
            params = self.engine.species_params()[channel]
        gallery.save(preset_id, {
            "name": name if name is not None else params.name,
            "R": params.R, "T": params.T, "mu": params.mu, "sigma": params.sigma,
            "description": description,
        })
        return gallery.load(preset_id)

    def select_species(self, species_id, channel=0):
        with self._lock:
            if isinstance(self.engine, Ecosystem):
                channel = self.engine.channel_of(channel)
                params = self.engine.select_species(channel, species_id)
            else:
                params = self.engine.select_species(species_id)
            self._restart_mutator(channel)
            return params

    def set_params(self, **params):
        """Engine runtime parameters (speed/trail or ecosystem settings)."""
        with self._lock:
            self.engine.set_params(**params)

    def get_params(self):
        with self._lock:
            return self.engine.get_params()

    # -----------------------------------------------------------------------
    # Perturbation hooks
    # -----------------------------------------------------------------------

    def paint(self, x, y, radius=20, intensity=0.8, channel=0):
        with self._lock:
            self.engine.paint(x, y, radius, intensity, channel)

    def inject_creature(self, template="orbium", x=0.5, y=0.5, size=None,
                        scale=1.0, channel=0):
        """Max-overlay a creature template, sized for the channel's species."""
        with self._lock:
            if isinstance(self.engine, Ecosystem):
                channel = self.engine.channel_of(channel)
            if size is None:
                size = creature_size(self.engine.species_params()[channel].R)
            patch = get_template(template).generate(size)
            self.engine.inject(patch, x, y, scale, channel)
            return patch

    def randomize(self, style=None, **kwargs):
        """Reseed the field (engine default style if None)."""
        with self._lock:
            if style is None:
                self.engine.seed(**kwargs)
            else:
                self.engine.seed(style, **kwargs)

    def clear(self):
        with self._lock:
            self.engine.clear()

    def feed_audio(self, energy, beat, channel=None):
        """Audio sample: a beat drops one energy-scaled paint stroke."""
        with self._lock:
            return self.audio.feed(self.engine, energy, beat, channel)

    # -----------------------------------------------------------------------
    # Read-only views
    # -----------------------------------------------------------------------

    def snapshot(self, as_uint8=False):
        with self._lock:
            return self.engine.snapshot(as_uint8)

    def get_population_stats(self):
        with self._lock:
            return self.engine.get_population_stats()

    @property
    def stats(self):
        with self._lock:
            return {**self.engine.stats, "ticks": self.ticks,
                    "mutation": self.mutation_active}


class BackgroundSimulation(threading.Thread):
    """Background thread that continuously advances a Simulation.

    Keeps the latest snapshot available so a renderer can grab it without
    waiting on a step.
    """

    def __init__(self, simulation, target_fps=30):
        super().__init__(daemon=True)
        self.simulation = simulation
        self._frame_lock = threading.Lock()
        self._latest = None
        self._stop_event = threading.Event()
        self._last_time = None
        self._target_fps = target_fps  # Background loop target framerate

    def run(self):
        logger.info("Background simulation thread started")
        while not self._stop_event.is_set():
            now = time.perf_counter()
            if self._last_time is None:
                dt = 1.0 / self._target_fps
            else:
                dt = now - self._last_time
            dt = max(0.001, min(dt, 0.1))
            self._last_time = now

            try:
                self.simulation.advance(dt)
                frame = self.simulation.snapshot()
                with self._frame_lock:
                    self._latest = frame
            except Exception:
                logger.exception("Background simulation error")

            elapsed = time.perf_counter() - now
            sleep_time = max(0, (1.0 / self._target_fps) - elapsed)
            if sleep_time > 0:
                self._stop_event.wait(sleep_time)
        logger.info("Background simulation thread stopped")

    def get_latest_snapshot(self):
        """Return the most recent snapshot dict or None."""
        with self._frame_lock:
            return self._latest

    def stop(self, timeout=None):
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout)
