"""
Configuration Module for the docintake Document Ingestion Pipeline.

Settings are layered: ``config/settings.yaml`` holds the defaults and an
optional site file (``--config`` on the CLI, or ``DOCINTAKE_CONFIG`` in
the environment) is merged over them section by section, so a site file
only needs the keys it changes.

Relative ``paths.*`` entries are resolved against the project root.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULTS_PATH = Path(__file__).parent / "settings.yaml"
PROJECT_ROOT = Path(__file__).parent.parent
ENV_CONFIG_PATH = "DOCINTAKE_CONFIG"

REQUIRED_SECTIONS = ("paths", "database", "storage", "worker")


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


class ConfigurationManager:
    """
    Process-wide configuration for the ingestion pipeline.

    Attributes:
        config_path (Optional[Path]): Site file merged over the defaults.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("worker.max_retries")
        3
        >>> config.set("paths.storage_root", "/srv/docintake")
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Load the configuration once per process.

        Args:
            config_path: Site file merged over the defaults. Falls back to
                ``$DOCINTAKE_CONFIG``. Ignored once the singleton exists.
        """
        if self._initialized:
            return

        config_path = config_path or os.environ.get(ENV_CONFIG_PATH)
        self.config_path = Path(config_path) if config_path else None

        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Read defaults, merge the site file and validate.

        Raises:
            FileNotFoundError: If a configuration file doesn't exist.
            ValueError: If a required section is missing.
            yaml.YAMLError: If a configuration file is invalid.
        """
        config = _read_yaml(DEFAULTS_PATH)
        if self.config_path is not None:
            _deep_merge(config, _read_yaml(self.config_path))

        self._config = config
        self._validate()
        self._resolve_paths()

    def _validate(self) -> None:
        missing = [section for section in REQUIRED_SECTIONS if not isinstance(self._config.get(section), dict)]
        if missing:
            raise ValueError(f"Missing configuration section(s): {', '.join(missing)}")

        if int(self.get("worker.max_workers", 1)) < 1:
            raise ValueError("worker.max_workers must be at least 1")

    def _resolve_paths(self) -> None:
        for key, value in self._config['paths'].items():
            if value and not Path(value).is_absolute():
                self._config['paths'][key] = str(PROJECT_ROOT / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example:
            >>> config.get("storage.processed_dir")
            'processed'
            >>> config.get("nonexistent.key", "default_value")
            'default_value'
        """
        value = self._config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Override one value at runtime; intermediate sections are created.

        Used by the CLI for flag overrides and by tests to isolate storage
        locations.
        """
        keys = key.split('.')
        section = self._config
        for k in keys[:-1]:
            if not isinstance(section.get(k), dict):
                section[k] = {}
            section = section[k]
        section[keys[-1]] = value

    def update(self, values: Dict[str, Any]) -> None:
        """Merge a nested mapping of overrides into the configuration."""
        _deep_merge(self._config, copy.deepcopy(values))

    def get_all(self) -> Dict[str, Any]:
        """Deep copy of the effective configuration."""
        return copy.deepcopy(self._config)

    def reload(self) -> None:
        """Reload from disk, discarding runtime overrides."""
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next access reloads (used by tests)."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ``ConfigurationManager().get(key, default)``."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
