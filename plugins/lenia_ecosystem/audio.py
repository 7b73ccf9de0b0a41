"""
Audio-reactive perturbation

The host does the audio analysis; the engine only receives a smoothed
energy scalar in [0, 1] and a beat edge. Each beat drops one paint stroke
whose size and strength follow the current energy.
"""

import logging
import numpy as np

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class AudioDrive:
    """Turns (energy, beat) samples into paint strokes on an engine.

    Args:
        min_radius: Stroke radius at zero energy (cells)
        max_radius: Stroke radius at full energy (cells)
        base_intensity: Stroke intensity at zero energy
        gain: Extra intensity per unit of energy
        rng: numpy Generator for stroke placement
    """

    def __init__(self, min_radius=8.0, max_radius=30.0, base_intensity=0.3,
                 gain=0.5, rng=None):
        if not 0 < min_radius <= max_radius:
            raise ConfigurationError(
                f"Need 0 < min_radius <= max_radius, got {min_radius}, {max_radius}")
        if base_intensity < 0 or gain < 0:
            raise ConfigurationError("Audio intensity and gain must be >= 0")
        self.min_radius = min_radius
        self.max_radius = max_radius
        self.base_intensity = base_intensity
        self.gain = gain
        self.rng = rng if rng is not None else np.random.default_rng()
        self.energy = 0.0
        self.beats = 0

    def stroke_for(self, energy):
        """(radius, intensity) of the stroke a beat at ``energy`` produces."""
        energy = min(1.0, max(0.0, float(energy)))
        radius = self.min_radius + (self.max_radius - self.min_radius) * energy
        intensity = min(1.0, self.base_intensity + self.gain * energy)
        return radius, intensity

    def feed(self, engine, energy, beat, channel=None):
        """Consume one audio sample. Paints on ``engine`` when ``beat`` is set.

        Returns the stroke as (x, y, radius, intensity, channel), or None.
        """
        self.energy = min(1.0, max(0.0, float(energy)))
        if not beat:
            return None
        radius, intensity = self.stroke_for(self.energy)
        x, y = self.rng.random(), self.rng.random()
        if channel is None:
            channel = int(self.rng.integers(engine.channels))
        engine.paint(x, y, radius, intensity, channel)
        self.beats += 1
        logger.debug("Beat %d: stroke r=%.1f i=%.2f at (%.2f, %.2f) ch=%s",
                     self.beats, radius, intensity, x, y, channel)
        return x, y, radius, intensity, channel
