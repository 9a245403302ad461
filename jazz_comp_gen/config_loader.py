"""
Configuration loader for renderer, humanizer and cost-weight presets.

The in-code presets (RENDERER_PRESETS, HUMANIZER_PRESETS, CostWeights())
are the defaults. YAML files under ../configs add or override presets
without touching code:

    configs/renderer_presets.yaml
    configs/humanizer_presets.yaml
    configs/cost_weights.yaml

Each YAML preset is a mapping of dataclass fields. An optional `base` key
names an in-code preset to start from. Unknown fields are rejected.
"""

from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union
import logging

import yaml

from .humanizer import HUMANIZER_PRESETS, HumanizerConfig
from .piano_renderer import RENDERER_PRESETS, RendererConfig
from .voice_leading import CostWeights

logger = logging.getLogger(__name__)

T = TypeVar("T")

RENDERER_FILE = "renderer_presets.yaml"
HUMANIZER_FILE = "humanizer_presets.yaml"
COST_WEIGHTS_FILE = "cost_weights.yaml"


class ConfigLoadError(Exception):
    """Raised when configuration loading fails."""
    pass


def _build_dataclass(cls: Type[T], values: Dict[str, Any], base: Optional[T] = None, source: str = "") -> T:
    """Instantiate `cls` from a field mapping, optionally on top of `base`."""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigLoadError(f"Unknown {cls.__name__} fields in {source}: {', '.join(unknown)}")
    if isinstance(values.get("accent_pattern"), list):
        values = dict(values, accent_pattern=tuple(values["accent_pattern"]))
    try:
        if base is not None:
            return replace(base, **values)
        return cls(**values)
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"Invalid {cls.__name__} in {source}: {e}")


class ConfigLoader:
    """
    Loads preset YAML files with caching.

    Attributes:
        config_dir: Directory holding the YAML files
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        if config_dir is None:
            # Default to jazz_comp_gen/../configs
            self.config_dir = Path(__file__).parent.parent / "configs"
        else:
            self.config_dir = Path(config_dir)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Load (and cache) one YAML file from the config directory.

        Raises:
            ConfigLoadError: If the file is missing, unreadable or not a mapping
        """
        if filename in self._cache:
            return self._cache[filename]

        path = self.config_dir / filename
        if not path.exists():
            raise ConfigLoadError(f"Configuration file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}")
        except OSError as e:
            raise ConfigLoadError(f"Failed to read configuration file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top of {path}")
        self._cache[filename] = data
        logger.debug(f"Loaded {len(data)} entries from {path}")
        return data

    def _entry(self, filename: str, name: str) -> Dict[str, Any]:
        data = self._load_yaml(filename)
        if name not in data:
            raise ConfigLoadError(f"Preset '{name}' not found in {filename}")
        entry = data[name] or {}
        if not isinstance(entry, dict):
            raise ConfigLoadError(f"Preset '{name}' in {filename} is not a mapping")
        return dict(entry)

    # ---- renderer -----------------------------------------------------------

    def list_renderer_presets(self) -> List[str]:
        return sorted(self._load_yaml(RENDERER_FILE))

    def load_renderer_config(self, name: str) -> RendererConfig:
        """
        Renderer preset from YAML.

        Example YAML:
            late_night:
              base: ballad
              velocity_center: 58
        """
        entry = self._entry(RENDERER_FILE, name)
        base_name = entry.pop("base", None)
        base = None
        if base_name is not None:
            if base_name not in RENDERER_PRESETS:
                raise ConfigLoadError(f"Renderer preset '{name}' has unknown base '{base_name}'")
            base = RENDERER_PRESETS[base_name]
        return _build_dataclass(RendererConfig, entry, base, f"{RENDERER_FILE}:{name}")

    # ---- humanizer ----------------------------------------------------------

    def list_humanizer_presets(self) -> List[str]:
        return sorted(self._load_yaml(HUMANIZER_FILE))

    def load_humanizer_config(self, name: str) -> HumanizerConfig:
        entry = self._entry(HUMANIZER_FILE, name)
        base_name = entry.pop("base", None)
        base = None
        if base_name is not None:
            if base_name not in HUMANIZER_PRESETS:
                raise ConfigLoadError(f"Humanizer preset '{name}' has unknown base '{base_name}'")
            base = HUMANIZER_PRESETS[base_name]
        return _build_dataclass(HumanizerConfig, entry, base, f"{HUMANIZER_FILE}:{name}")

    # ---- cost weights -------------------------------------------------------

    def list_cost_profiles(self) -> List[str]:
        return sorted(self._load_yaml(COST_WEIGHTS_FILE))

    def load_cost_weights(self, profile: str = "default") -> CostWeights:
        """Cost weights profile; fields not listed keep their defaults."""
        entry = self._entry(COST_WEIGHTS_FILE, profile)
        return _build_dataclass(CostWeights, entry, None, f"{COST_WEIGHTS_FILE}:{profile}")

    def clear_cache(self) -> None:
        """Force the next load to re-read the files."""
        self._cache.clear()
        logger.debug("Configuration cache cleared")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_default_loader: Optional[ConfigLoader] = None


def get_config_loader(config_dir: Optional[Union[str, Path]] = None) -> ConfigLoader:
    """
    Shared loader for the default config directory.

    Passing a directory returns a fresh, unshared loader.
    """
    global _default_loader
    if config_dir is not None:
        return ConfigLoader(config_dir)
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def load_renderer_config(name: str) -> RendererConfig:
    return get_config_loader().load_renderer_config(name)


def load_humanizer_config(name: str) -> HumanizerConfig:
    return get_config_loader().load_humanizer_config(name)


def load_cost_weights(profile: str = "default") -> CostWeights:
    return get_config_loader().load_cost_weights(profile)
