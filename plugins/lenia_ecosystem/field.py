"""
Double-buffered density field

Holds two (C, H, W) float64 grids of density values in [0, 1]. The update
step reads ``current`` and writes ``next``; ``swap()`` then exchanges their
roles without copying. Addressing is toroidal: coordinates wrap modulo the
field size, matching the wrap-around convolution.
"""

import numpy as np

from .exceptions import ConfigurationError, FieldAllocationError


RANDOMIZE_STYLES = ("circles", "gaussian")

# Default blob count for randomize(): 5 to 15 inclusive (integers() is half-open)
BLOB_COUNT = (5, 16)
# Blob radius range as a fraction of the smaller field side
BLOB_RADIUS = (0.04, 0.12)


class FieldState:
    """Current/next density buffers for a W x H field with C channels."""

    def __init__(self, width, height, channels=1):
        if width <= 0 or height <= 0 or channels <= 0:
            raise FieldAllocationError(
                f"Field needs positive dimensions, got "
                f"{width}x{height} with {channels} channel(s)")
        try:
            self._buffers = (
                np.zeros((channels, height, width), dtype=np.float64),
                np.zeros((channels, height, width), dtype=np.float64),
            )
        except (MemoryError, ValueError) as e:
            raise FieldAllocationError(
                f"Could not allocate {width}x{height}x{channels} field") from e
        self.width = int(width)
        self.height = int(height)
        self.channels = int(channels)
        self._front = 0

    @property
    def shape(self):
        """Per-channel grid shape (H, W)."""
        return (self.height, self.width)

    @property
    def current(self):
        return self._buffers[self._front]

    @property
    def next(self):
        return self._buffers[1 - self._front]

    def swap(self):
        """Exchange current/next roles (no copy)."""
        self._front = 1 - self._front

    # -- Cell access ---------------------------------------------------------

    def get(self, channel, x, y):
        return float(self.current[channel, y % self.height, x % self.width])

    def set(self, channel, x, y, value):
        self.current[channel, y % self.height, x % self.width] = min(1.0, max(0.0, value))

    def accumulate(self, channel, x, y, value):
        yy, xx = y % self.height, x % self.width
        total = self.current[channel, yy, xx] + value
        self.current[channel, yy, xx] = min(1.0, max(0.0, total))

    def clear(self):
        """Zero the field (both buffers, so a swap cannot bring back old state)."""
        for buf in self._buffers:
            buf[:] = 0.0

    # -- Seeding -------------------------------------------------------------

    def randomize(self, style="circles", n_blobs=None, noise=0.0,
                  channel=None, rng=None):
        """Fill the current buffer with random blobs.

        Args:
            style: "circles" (hard discs with random per-pixel intensity,
                summed) or "gaussian" (smooth blobs with noise texture)
            n_blobs: Blobs per channel; random in BLOB_COUNT if None
            noise: Amplitude of additive uniform per-pixel noise
            channel: Channel to fill; all channels if None
            rng: numpy Generator
        """
        if style not in RANDOMIZE_STYLES:
            raise ConfigurationError(
                f"Unknown randomize style: {style!r}. "
                f"Supported: {list(RANDOMIZE_STYLES)}")
        if noise < 0:
            raise ConfigurationError(f"noise must be >= 0, got {noise!r}")
        rng = rng if rng is not None else np.random.default_rng()
        channels = range(self.channels) if channel is None else [channel]

        side = min(self.width, self.height)
        Y, X = np.ogrid[:self.height, :self.width]
        for c in channels:
            world = self.current[c]
            world[:] = 0.0
            count = n_blobs if n_blobs is not None else int(rng.integers(*BLOB_COUNT))
            for _ in range(count):
                cx = rng.random() * self.width
                cy = rng.random() * self.height
                radius = max(1.0, side * rng.uniform(*BLOB_RADIUS))
                dist = np.sqrt((X - cx) ** 2 + (Y - cy) ** 2)
                if style == "circles":
                    intensity = rng.uniform(55 / 255, 1.0, size=self.shape)
                    world += np.where(dist < radius, intensity, 0.0)
                else:
                    peak = rng.uniform(0.5, 1.0)
                    blob = np.exp(-0.5 * (dist / (radius * 0.5)) ** 2) * peak
                    texture = rng.random(self.shape) * 0.4 + 0.6
                    world += blob * texture
            if noise > 0:
                world += rng.random(self.shape) * noise
            np.clip(world, 0.0, 1.0, out=world)

    # -- Read-only views -----------------------------------------------------

    def channel_means(self):
        """Mean density per channel (sum / pixel count)."""
        return self.current.mean(axis=(1, 2))

    def to_flat(self, as_uint8=False):
        """Row-major flat copy of the current buffer, C values per cell.

        Layout is [y][x][c]; values in [0, 1] or [0, 255] with as_uint8.
        """
        hwc = np.moveaxis(self.current, 0, -1)
        if as_uint8:
            return np.round(hwc * 255.0).astype(np.uint8).ravel()
        return hwc.ravel().copy()
