"""
Simulation configuration

Validated settings for a headless run or an embedding host. Values can come
from keyword arguments or a JSON file; anything invalid surfaces as a
ConfigurationError before an engine is built.
"""

import json
import logging
from pathlib import Path
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class EcosystemSettings(BaseModel):
    """Interaction strengths and time scale of the multi-species step."""

    model_config = ConfigDict(extra="forbid")

    dt: float = Field(default=0.5, gt=0, description="Integration step")
    predation: float = Field(default=0.15, ge=0.0, description="Loss per unit of consumer density")
    benefit: float = Field(default=0.12, ge=0.0, description="Gain per unit of consumed density")
    benefit_factor: float = Field(default=1.0, ge=0.0)
    crowding_low: float = 0.5
    crowding_high: float = 1.5
    crowding: float = Field(default=0.1, ge=0.0, description="Crowding penalty coefficient")
    decay: Tuple[float, ...] = (0.9995, 0.9993, 0.9990)

    @field_validator("decay")
    @classmethod
    def _check_decay(cls, decay):
        if any(not 0.0 < d <= 1.0 for d in decay):
            raise ValueError("decay factors must be in (0, 1]")
        return decay

    @model_validator(mode="after")
    def _check_crowding_range(self):
        if self.crowding_high <= self.crowding_low:
            raise ValueError("crowding_high must exceed crowding_low")
        return self


class SimulationConfig(BaseModel):
    """Top-level run configuration."""

    model_config = ConfigDict(extra="forbid")

    width: int = Field(default=256, gt=0)
    height: int = Field(default=256, gt=0)
    mode: Literal["lenia", "ecosystem"] = "lenia"
    species: str = "orbium"
    speed: float = Field(default=1.0, gt=0, description="dt multiplier")
    trail: float = Field(default=1.0, gt=0.0, le=1.0, description="Per-step fade (1 = off)")
    tick_rate: float = Field(default=60.0, gt=0, description="Ticks per second")
    max_ticks_per_update: int = Field(default=4, ge=1)
    mutation_speed: float = Field(default=1.0, ge=0.0)
    method: Literal["fft", "direct"] = "fft"
    seed: Optional[int] = None
    ecosystem: EcosystemSettings = Field(default_factory=EcosystemSettings)

    @classmethod
    def build(cls, **values):
        """Validate keyword settings, raising ConfigurationError."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(path):
    """Read a SimulationConfig from a JSON file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must hold a JSON object")
    config = SimulationConfig.build(**data)
    logger.info("Loaded config from %s", path)
    return config
