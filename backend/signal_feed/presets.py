"""Engine presets loaded from presets.yaml.

Supports:
- Selecting one of the built-in presets by name
- Deep overrides of any EngineConfig field on top of that preset
- No YAML file = canonical preset, no overrides

Example:

    preset: conservative
    overrides:
      candle_trap:
        require_sweep: true
      voting:
        strong_votes: 6
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from signal_core.models.config import EngineConfig, get_preset, list_presets

logger = logging.getLogger(__name__)


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge `overrides` into a copy of `base`."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class PresetFile(BaseModel):
    """Top-level presets.yaml configuration."""

    preset: str = "canonical"
    overrides: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate(self):
        available = list_presets()
        if self.preset not in available:
            raise ValueError(f"preset must be one of {available}, got '{self.preset}'")
        return self

    def build_engine_config(self) -> EngineConfig:
        """Resolve the preset and apply overrides.

        Raises:
            pydantic.ValidationError: If an override does not fit EngineConfig.
        """
        base = get_preset(self.preset)
        if not self.overrides:
            return base
        merged = deep_merge(base.model_dump(), self.overrides)
        return EngineConfig.model_validate(merged)


def load_preset_file(path: Path | str | None = None) -> PresetFile:
    """Load presets.yaml.

    Falls back to defaults (canonical, no overrides) if the path is empty
    or the file doesn't exist.
    """
    if not path:
        return PresetFile()

    config_path = Path(path)
    if not config_path.exists():
        logger.info("No presets file found at %s, using canonical preset", config_path)
        return PresetFile()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    preset_file = PresetFile(**raw)
    logger.info(
        "Loaded presets file: preset=%s, %d override section(s)",
        preset_file.preset,
        len(preset_file.overrides),
    )
    return preset_file


def load_engine_config(
    preset: str = "canonical",
    presets_file: Path | str | None = None,
) -> tuple[str, EngineConfig]:
    """Resolve the engine rule set for the feed.

    A presets file, when present, wins over the `preset` argument.

    Returns:
        (preset name, EngineConfig)
    """
    if presets_file and Path(presets_file).exists():
        preset_file = load_preset_file(presets_file)
        return preset_file.preset, preset_file.build_engine_config()
    return preset, get_preset(preset)
