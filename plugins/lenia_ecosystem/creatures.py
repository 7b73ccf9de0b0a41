"""
Creature templates and field brushes

Templates are closed-form, deterministic density patches (rings, twin
blobs, segmented bodies, bilateral tentacles) paired with the species
parameters they were tuned for. They only seed or inject content; the
simulation never modifies them.

Brushes write into the current buffer of a FieldState:
- inject: max-overlay of a patch (non-destructive)
- paint_stroke: additive disc with quadratic falloff
- paint_ring: additive ring-with-core, the ecosystem's species brush
Positions are normalized [0, 1] with the origin at the top-left; targets
outside the field are skipped rather than wrapped.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy import ndimage

from .exceptions import ConfigurationError
from .species import SpeciesParams


# Source cells at or below this are left out of inject()
INJECT_THRESHOLD = 0.01

# Default patch side per unit of kernel radius
CREATURE_SCALE = 1.5


def _centered_grid(size, cx, cy):
    y, x = np.ogrid[:size, :size]
    return (x - cx).astype(np.float64), (y - cy).astype(np.float64)


def _orbium(size):
    dx, dy = _centered_grid(size, size / 2, size / 2)
    dist = np.sqrt(dx * dx + dy * dy)
    r1 = size * 0.35
    r2 = size * 0.15
    # Ring with an inner void
    return np.where(dist < r1, np.exp(-((dist - r2) / (r1 * 0.3)) ** 2), 0.0)


def _geminium(size):
    offset = size * 0.15
    r = size * 0.25
    pattern = np.zeros((size, size))
    for cx in (size / 2 - offset, size / 2 + offset):
        dx, dy = _centered_grid(size, cx, size / 2)
        d = np.sqrt(dx * dx + dy * dy)
        blob = np.where(d < r, np.exp(-(d / (r * 0.5)) ** 2), 0.0)
        pattern = np.maximum(pattern, blob)
    return pattern


def _trilobite(size):
    segments = 5
    pattern = np.zeros((size, size))
    for s in range(segments):
        sy = (s + 0.5) * (size * 0.8) / segments + size * 0.1
        seg_r = (size * 0.15) * (1 - abs(s - segments / 2) / segments)
        dx, dy = _centered_grid(size, size / 2, sy)
        dist = np.sqrt(dx * dx + dy * dy)
        seg = np.where(dist < seg_r, np.exp(-(dist / (seg_r * 0.6)) ** 2), 0.0)
        pattern = np.maximum(pattern, seg)
    return pattern


def _scutium(size):
    dx, dy = _centered_grid(size, size / 2, size / 2)
    dx, dy = dx / size, dy / size
    # Shield: wider at the bottom, pointed at the top
    r = 0.35 - dy * 0.15
    dist = np.abs(dx) / r
    y_dist = np.abs(dy) / 0.35
    edge = 1 - np.maximum(dist, y_dist)
    return np.where((dist < 1) & (y_dist < 1), np.clip(edge, 0, 1) ** 1.5, 0.0)


def _pulsar(size):
    dx, dy = _centered_grid(size, size / 2, size / 2)
    dist = np.sqrt(dx * dx + dy * dy)
    angle = np.arctan2(dy, dx)
    r1 = size * 0.2
    r2 = size * 0.35
    wave = np.sin(angle * 6) * 0.5 + 0.5
    ring = wave * np.exp(-((dist - (r1 + r2) / 2) / ((r2 - r1) * 0.4)) ** 2)
    core = np.exp(-(dist / (r1 * 0.5)) ** 2) * 0.5
    pattern = np.where((dist >= r1) & (dist <= r2), ring, 0.0)
    return np.where(dist < r1, core, pattern)


def _swimmer(size):
    dx, dy = _centered_grid(size, size / 2, size * 0.4)
    dx, dy = np.broadcast_arrays(dx, dy)
    dist = np.sqrt(dx * dx + dy * dy)

    bell_r = size * 0.3
    pattern = np.where((dy < 0) & (dist < bell_r),
                       np.exp(-(dist / (bell_r * 0.6)) ** 2), 0.0)

    spacing = size * 0.15
    width = size * 0.05
    in_body = (dy > 0) & (dy < size * 0.5)
    falloff = 1 - dy / (size * 0.5)
    for t in (-1, 0, 1):
        tx = t * spacing
        wave = np.sin(dy * 0.3 + t * 0.5) * width * 0.3
        adjusted = np.abs(dx - tx - wave)
        hit = in_body & (np.abs(dx - tx) < width) & (adjusted < width)
        tentacle = np.exp(-(adjusted / (width * 0.6)) ** 2) * falloff * 0.7
        pattern = np.where(hit, np.maximum(pattern, tentacle), pattern)
    return pattern


@dataclass(frozen=True)
class CreatureTemplate:
    """Named pattern generator plus its tuned species parameters."""

    key: str
    name: str
    description: str
    params: dict
    generator: Callable

    def generate(self, size=64):
        """Square (size, size) density patch in [0, 1]."""
        size = int(size)
        if size <= 0:
            raise ConfigurationError(f"Pattern size must be positive, got {size}")
        return np.clip(self.generator(size), 0.0, 1.0)

    def species(self):
        return SpeciesParams.from_record(
            {**self.params, "name": self.name, "description": self.description})


TEMPLATES = {
    "orbium": CreatureTemplate(
        "orbium", "Orbium", "A smooth, spherical glider that moves diagonally",
        {"R": 13, "T": 10, "mu": 0.15, "sigma": 0.015}, _orbium),
    "geminium": CreatureTemplate(
        "geminium", "Geminium", "Twins that orbit each other",
        {"R": 10, "T": 10, "mu": 0.14, "sigma": 0.014}, _geminium),
    "trilobite": CreatureTemplate(
        "trilobite", "Trilobite", "A segmented crawler with bilateral symmetry",
        {"R": 15, "T": 12, "mu": 0.13, "sigma": 0.013}, _trilobite),
    "scutium": CreatureTemplate(
        "scutium", "Scutium", "A defensive shield that pulses while moving",
        {"R": 12, "T": 8, "mu": 0.16, "sigma": 0.016}, _scutium),
    "pulsar": CreatureTemplate(
        "pulsar", "Pulsar", "A stationary creature that breathes in place",
        {"R": 10, "T": 10, "mu": 0.145, "sigma": 0.0145}, _pulsar),
    "swimmer": CreatureTemplate(
        "swimmer", "Swimmer", "A jellyfish that propels itself through pulsing",
        {"R": 14, "T": 11, "mu": 0.135, "sigma": 0.0135}, _swimmer),
}


def get_template(name):
    try:
        return TEMPLATES[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown creature template: {name!r}. "
            f"Known: {sorted(TEMPLATES)}") from None


def creature_size(R):
    """Default patch side for a species with kernel radius R."""
    return max(3, int(round(CREATURE_SCALE * R)))


# ---------------------------------------------------------------------------
# Brushes
# ---------------------------------------------------------------------------

def inject(field, patch, x, y, scale=1.0, channel=0):
    """Composite a patch centered at normalized (x, y) by per-cell max.

    Args:
        field: FieldState to write into (current buffer)
        patch: 2D array of densities
        x, y: Normalized center position in [0, 1]
        scale: Resize factor applied to the patch (bilinear)
        channel: Target channel
    """
    if not scale > 0:
        raise ConfigurationError(f"scale must be positive, got {scale!r}")
    patch = np.asarray(patch, dtype=np.float64)
    if scale != 1.0:
        patch = ndimage.zoom(patch, scale, order=1)
    patch = np.clip(patch, 0.0, 1.0)

    ph, pw = patch.shape
    top = int(np.floor(y * field.height)) - ph // 2
    left = int(np.floor(x * field.width)) - pw // 2

    # Overlap of the patch with the field (no wrap)
    ty0, tx0 = max(top, 0), max(left, 0)
    ty1, tx1 = min(top + ph, field.height), min(left + pw, field.width)
    if ty0 >= ty1 or tx0 >= tx1:
        return
    src = patch[ty0 - top:ty1 - top, tx0 - left:tx1 - left]
    dst = field.current[channel, ty0:ty1, tx0:tx1]
    mask = src > INJECT_THRESHOLD
    dst[mask] = np.maximum(dst[mask], src[mask])


def _brush_window(field, x, y, radius):
    """In-bounds window around a normalized point, plus distances."""
    if not radius > 0:
        raise ConfigurationError(f"Brush radius must be positive, got {radius!r}")
    px = int(np.floor(x * field.width))
    py = int(np.floor(y * field.height))
    r = int(np.ceil(radius))
    y0, y1 = max(py - r, 0), min(py + r + 1, field.height)
    x0, x1 = max(px - r, 0), min(px + r + 1, field.width)
    if y0 >= y1 or x0 >= x1:
        return None, None
    Y, X = np.ogrid[y0:y1, x0:x1]
    dist = np.sqrt((X - px) ** 2 + (Y - py) ** 2)
    return (slice(y0, y1), slice(x0, x1)), dist


def paint_stroke(field, x, y, radius=20, intensity=0.8, channel=0):
    """Additive circular brush: intensity * (1 - dist/radius)^2."""
    window, dist = _brush_window(field, x, y, radius)
    if window is None:
        return
    influence = np.clip(1.0 - dist / radius, 0, 1) ** 2 * intensity
    block = field.current[channel][window]
    np.clip(block + influence, 0.0, 1.0, out=block)


def ring_profile(dist, inner, center, width):
    """Ring at ``center`` with a soft core inside ``inner`` (max of both)."""
    ring = np.exp(-((np.abs(dist - center) / width) ** 2) * 1.5)
    core = np.where(dist < inner, np.exp(-((dist / inner) ** 2) * 2) * 0.5, 0.0)
    return np.maximum(ring, core)


def paint_ring(field, x, y, radius=20, intensity=0.7, channel=0):
    """Additive ring-shaped brush used to paint ecosystem species."""
    window, dist = _brush_window(field, x, y, radius)
    if window is None:
        return
    value = ring_profile(dist, radius * 0.4, radius * 0.7, radius * 0.3) * intensity
    value[dist > radius] = 0.0
    block = field.current[channel][window]
    np.clip(block + value, 0.0, 1.0, out=block)
