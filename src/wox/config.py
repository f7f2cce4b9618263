"""
Configuration for the wox command line driver.

Settings are read from a YAML mapping, for example::

    prompt: "wox> "
    max_errors: 50
    show_source: false
    recursion_limit: 5000
    log_level: DEBUG

Every key is optional; missing keys keep their defaults.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a configuration file or mapping is invalid."""


@dataclass
class WoxConfig:
    """Driver settings."""
    prompt: str = "> "
    max_errors: int = 20                    # DiagnosticCollector ceiling
    show_source: bool = True                # Quote the offending line under each diagnostic
    recursion_limit: Optional[int] = None   # None keeps the interpreter default
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        if not isinstance(self.prompt, str):
            raise ConfigError("prompt must be a string")
        if isinstance(self.max_errors, bool) or not isinstance(self.max_errors, int) or self.max_errors < 1:
            raise ConfigError("max_errors must be a positive integer")
        if not isinstance(self.show_source, bool):
            raise ConfigError("show_source must be true or false")
        if self.recursion_limit is not None and (
            isinstance(self.recursion_limit, bool)
            or not isinstance(self.recursion_limit, int)
            or self.recursion_limit < 100
        ):
            raise ConfigError("recursion_limit must be an integer of at least 100")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        self.log_level = self.log_level.upper()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WoxConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        if not isinstance(data, dict):
            raise ConfigError(f"configuration must be a mapping, not {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(map(str, unknown))}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Union[str, Path]) -> WoxConfig:
    """
    Load a WoxConfig from a YAML file.

    An empty file gives the default configuration.

    Raises:
        FileNotFoundError: if the file does not exist
        ConfigError: if the YAML is malformed or the settings are invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as fp:
        try:
            data = yaml.safe_load(fp) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
    return WoxConfig.from_dict(data)


def save_config(config: WoxConfig, path: Union[str, Path]) -> None:
    """Write a WoxConfig as YAML."""
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config.to_dict(), fp, sort_keys=False)
