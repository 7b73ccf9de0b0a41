"""
Preset Gallery - save and load interesting parameter combinations

Presets are a mapping of id -> {name, R, T, mu, sigma, description, created}
where ``created`` is a millisecond timestamp. The gallery lives in memory
and, when given a path, is mirrored to a JSON file after every change.
Import merges by id (imported entries overwrite existing ones); export
emits the whole mapping verbatim.
"""

import copy
import json
import logging
import time
from pathlib import Path

from .exceptions import ConfigurationError, PresetLimitError
from .presets import DEFAULT_GALLERY
from .species import SpeciesParams

logger = logging.getLogger(__name__)

MAX_PRESETS = 20

PRESET_FIELDS = ("name", "R", "T", "mu", "sigma", "description")


def _now_ms():
    return int(time.time() * 1000)


class PresetGallery:
    """Named parameter presets with optional JSON file persistence.

    Args:
        path: JSON file to load from and write to (in-memory only if None)
        max_presets: Capacity; saving a new id beyond it raises PresetLimitError
        clock: Callable returning a millisecond timestamp
    """

    def __init__(self, path=None, max_presets=MAX_PRESETS, clock=_now_ms):
        self.path = Path(path) if path is not None else None
        self.max_presets = max_presets
        self._clock = clock
        self._presets = self._read()
        if not self._presets:
            self._install_defaults()

    # -- Storage -------------------------------------------------------------

    def _read(self):
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load presets from {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Preset file {self.path} must hold a JSON object")
        logger.info("Loaded %d presets from %s", len(data), self.path)
        return data

    def _write(self):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.export(), encoding="utf-8")

    def _install_defaults(self):
        created = self._clock()
        for preset_id, record in DEFAULT_GALLERY.items():
            self._presets[preset_id] = {**record, "created": created}
        self._write()

    # -- Operations ----------------------------------------------------------

    def save(self, preset_id, params):
        """Store a {name, R, T, mu, sigma[, description]} record under ``preset_id``.

        Parameters are validated like any species record. Overwriting an
        existing id is always allowed; a new id beyond capacity is not.
        """
        if len(self._presets) >= self.max_presets and preset_id not in self._presets:
            raise PresetLimitError(f"Maximum {self.max_presets} presets reached")
        if isinstance(params, SpeciesParams):
            params = params.model_dump()
        species = SpeciesParams.from_record(params)
        record = {
            "name": params.get("name", preset_id),
            "R": species.R,
            "T": species.T,
            "mu": species.mu,
            "sigma": species.sigma,
            "description": params.get("description", ""),
            "created": self._clock(),
        }
        self._presets[preset_id] = record
        self._write()
        logger.debug("Saved preset %r", preset_id)
        return dict(record)

    def load(self, preset_id):
        """Preset record for ``preset_id``, or None if there is none."""
        record = self._presets.get(preset_id)
        return dict(record) if record is not None else None

    def delete(self, preset_id):
        if self._presets.pop(preset_id, None) is not None:
            self._write()

    def all(self):
        """All presets as [{id, ...record}], newest first."""
        items = sorted(self._presets.items(),
                       key=lambda item: item[1].get("created", 0), reverse=True)
        return [{"id": preset_id, **record} for preset_id, record in items]

    def export(self):
        """Full mapping as indented JSON."""
        return json.dumps(self._presets, indent=2)

    def import_json(self, text):
        """Merge presets from a JSON mapping. Returns the number imported."""
        try:
            imported = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid preset JSON: {e}") from e
        if not isinstance(imported, dict) or not all(
                isinstance(v, dict) for v in imported.values()):
            raise ConfigurationError("Invalid preset JSON: expected an object of objects")
        self._presets.update(copy.deepcopy(imported))
        self._write()
        logger.info("Imported %d presets", len(imported))
        return len(imported)

    def to_species(self, preset_id):
        """Validated SpeciesParams for a stored preset."""
        record = self._presets.get(preset_id)
        if record is None:
            raise ConfigurationError(f"Unknown preset: {preset_id!r}")
        return SpeciesParams.from_record(
            {k: record[k] for k in PRESET_FIELDS if k in record})

    def __contains__(self, preset_id):
        return preset_id in self._presets

    def __len__(self):
        return len(self._presets)
