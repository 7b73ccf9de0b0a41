"""
Species parameters and registry

A species is the parameter set that defines one automaton's dynamics:
kernel radius R, time scale T, growth center mu, growth width sigma and
optional kernel shell weights beta. Records are validated on creation, so
an invalid radius or width is rejected when it is assigned, never clamped
into range behind the caller's back.

The registry replaces a shared mutable species table: the engine receives
one at construction and custom entries are added with ``upsert``.
"""

import logging
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .presets import ECOSYSTEM_SPECIES, SPECIES

logger = logging.getLogger(__name__)


class SpeciesParams(BaseModel):
    """Immutable parameter record for one species."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    R: float = Field(gt=0, description="Kernel radius in cells")
    T: float = Field(gt=0, description="Time-scale divisor")
    mu: float = Field(ge=0.0, le=1.0, description="Growth center")
    sigma: float = Field(gt=0, description="Growth width")
    beta: Tuple[float, ...] = (1.0,)
    name: str = "Custom"
    description: str = ""
    color: Tuple[float, float, float] = (1.0, 1.0, 1.0)

    @field_validator("beta")
    @classmethod
    def _check_beta(cls, beta):
        if len(beta) == 0:
            raise ValueError("beta needs at least one shell weight")
        if any(b < 0 for b in beta):
            raise ValueError("beta weights must be non-negative")
        return beta

    @classmethod
    def from_record(cls, record):
        """Validate a plain mapping (preset, config, UI record).

        Raises ConfigurationError instead of pydantic's ValidationError.
        """
        if isinstance(record, cls):
            return record
        try:
            return cls.model_validate(dict(record))
        except (ValidationError, TypeError) as e:
            raise ConfigurationError(f"Invalid species parameters: {e}") from e

    def replace(self, **changes):
        """Validated copy with some fields changed."""
        return self.from_record({**self.model_dump(), **changes})

    def as_record(self):
        """Plain {R, T, mu, sigma} record (preset layout)."""
        return {"R": self.R, "T": self.T, "mu": self.mu, "sigma": self.sigma}


class SpeciesRegistry:
    """Named species catalog with explicit custom-species lifecycle."""

    def __init__(self, catalog=None):
        self._species = {}
        for species_id, record in (catalog or {}).items():
            self.upsert(species_id, record)

    @classmethod
    def default(cls):
        """Registry seeded with the single-species catalog."""
        return cls(SPECIES)

    @classmethod
    def ecosystem(cls):
        """Registry seeded with the prey/predator/apex catalog."""
        return cls(ECOSYSTEM_SPECIES)

    def get(self, species_id):
        try:
            return self._species[species_id]
        except KeyError:
            raise ConfigurationError(
                f"Unknown species: {species_id!r}. "
                f"Known: {sorted(self._species)}") from None

    def upsert(self, species_id, params):
        """Insert or replace a species; returns the validated record."""
        params = SpeciesParams.from_record(params)
        self._species[species_id] = params
        logger.debug("Registered species %r: %s", species_id, params.as_record())
        return params

    def clone(self, source_id, new_id, **overrides):
        """Copy an entry under a new id, optionally changing fields."""
        params = self.get(source_id)
        if overrides:
            params = params.replace(**overrides)
        return self.upsert(new_id, params)

    def remove(self, species_id):
        self.get(species_id)
        del self._species[species_id]

    def ids(self):
        return list(self._species)

    def items(self):
        return list(self._species.items())

    def __contains__(self, species_id):
        return species_id in self._species

    def __iter__(self):
        return iter(self._species)

    def __len__(self):
        return len(self._species)
