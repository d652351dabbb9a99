"""
Configuration management for the beat-sync analysis package.

Loads YAML configuration with ``${ENV_VAR}`` interpolation and merges it
over built-in defaults, so a config file only needs the keys it changes.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from beatsync.utils.errors import ConfigurationError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

# Keys checked by ConfigManager.validate(); everything else is free-form.
CONFIG_SCHEMA: Dict[str, Dict[str, Any]] = {
    "audio.target_sample_rate": {"type": int, "required": True},
    "audio.max_file_size": {"type": int, "required": True},
    "audio.supported_formats": {"type": list},
    "analysis.energy.rate": {"type": int},
    "analysis.sections.min_section_duration": {"type": (int, float)},
    "analysis.drums.fft_size": {"type": int},
    "analysis.drums.hop_size": {"type": int},
    "logging.level": {"type": str},
    "performance.max_workers": {"type": int},
}


class ConfigManager:
    """
    Holds a configuration dictionary and offers dot-notation access.

    Example:
        config = ConfigManager.from_file(Path("config/config.yaml"))
        config.get("analysis.drums.fft_size", default=2048)
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from a YAML file.

        Raises:
            ConfigurationError: If the file is missing or not valid YAML
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path),
            )

        try:
            with open(file_path, "r") as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path),
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                config_key=str(file_path),
            )

        return cls(_interpolate(config_dict))

    def get(self, key: str, default: Any = None, required: bool = False) -> Any:
        """
        Get a value by dot-notation key ("analysis.drums.hop_size").

        Raises:
            ConfigurationError: If ``required`` and the key is absent
        """
        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key,
                    )
                return default
        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Return a whole section as a dict (empty if absent or not a mapping)."""
        value = self.get(key, default={})
        return value if isinstance(value, dict) else {}

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key, creating intermediate sections."""
        parts = key.split(".")
        current = self._config
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value

    def merged_over(self, defaults: Dict[str, Any]) -> "ConfigManager":
        """Return a new manager with this config deep-merged over ``defaults``."""
        return ConfigManager(_deep_merge(copy.deepcopy(defaults), self._config))

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Dict[str, Any]]) -> None:
        """
        Validate against a ``{key: {"type": ..., "required": bool}}`` schema.

        Raises:
            ConfigurationError: On a missing required key or a type mismatch
        """
        for key, rules in schema.items():
            value = self.get(key)
            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}", config_key=key
                    )
                continue

            expected = rules.get("type")
            # bool is an int subclass; never accept it for numeric settings
            if expected and (
                not isinstance(value, expected)
                or (isinstance(value, bool) and expected is not bool)
            ):
                names = (
                    " or ".join(t.__name__ for t in expected)
                    if isinstance(expected, tuple)
                    else expected.__name__
                )
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {names}, "
                    f"got {type(value).__name__}",
                    config_key=key,
                )


def _interpolate(value: Any) -> Any:
    """Recursively replace ``${VAR}`` with environment values (unknown vars kept)."""
    if isinstance(value, dict):
        return {k: _interpolate(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate(v) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(
            lambda m: os.environ.get(m.group(1), m.group(0)), value
        )
    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to defaults.

    Args:
        config_path: Optional path. When None, tries "config/config.yaml",
            "config.yaml" and the project-root config directory.

    Returns:
        Dict[str, Any]: Validated configuration dictionary
    """
    if config_path is None:
        default_paths = [
            Path("config/config.yaml"),
            Path("config.yaml"),
            Path(__file__).parent.parent.parent / "config" / "config.yaml",
        ]
        for path in default_paths:
            if path.exists():
                config_path = str(path)
                break

    if config_path is None:
        manager = ConfigManager(get_default_config())
    else:
        manager = ConfigManager.from_file(Path(config_path)).merged_over(
            get_default_config()
        )

    manager.validate(CONFIG_SCHEMA)
    return manager.to_dict()


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "audio": {
            "supported_formats": [".wav", ".aif", ".aiff", ".flac", ".mp3", ".ogg"],
            "max_file_size": 524288000,  # 500MB
            "target_sample_rate": 44100,
        },
        "analysis": {
            "energy": {
                "rate": 10,
                "smoothing_radius": 2,
            },
            "sections": {
                "change_threshold": 0.15,
                "min_section_duration": 4.0,
                "edge_window": 15.0,
                "high_energy": 0.7,
                "medium_energy": 0.4,
                "drop_delta": 0.25,
                "breakdown_delta": -0.2,
                "fallback_bars": 8,
                "bars_per_phrase": 4,
                "phrase_min_spacing": 2.0,
            },
            "drums": {
                "fft_size": 2048,
                "hop_size": 512,
                "warmup_frames": 10,
                "pattern_beats": 16,
            },
            "beats": {
                "strength_window": 2048,
                "downbeat_std_factor": 0.3,
                "beats_per_bar": 4,
            },
        },
        "logging": {
            "level": "INFO",
            "format": "text",
        },
        "performance": {
            "max_workers": 4,
        },
    }
