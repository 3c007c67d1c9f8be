"""
Configuration management for toolgate.

This module provides a singleton Config class that loads configuration from
config.yaml. The bundled default config ships inside the package, so the
library always has a usable configuration even before the user creates one.
"""

import os
from pathlib import Path
from typing import Any, Dict

import yaml

# Bundled default; used when no user or local config exists.
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

USER_CONFIG_PATH = Path.home() / ".config" / "toolgate" / "config.yaml"

_MISSING = object()


class Config:
    """
    Singleton configuration class that loads and manages application config.
    """

    _instance = None
    _config_data: Dict[str, Any] = {}

    def __new__(cls) -> 'Config':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not self._config_data:  # Only load if not already loaded
            self._load_config()

    def _load_config(self, path: str | None = None) -> None:
        """
        Load configuration from a YAML file.

        Args:
            path: Optional path to config file. If None, uses default resolution.
        """
        resolved = self._resolve_config_path(path)

        with open(resolved) as f:
            self._config_data = yaml.safe_load(f) or {}

    def _resolve_config_path(self, path: str | None) -> Path:
        """
        Resolve the config file path.

        Order: explicit arg > $TOOLGATE_CONFIG > ~/.config/toolgate/config.yaml
        > ./config.yaml > bundled default. An explicit path (argument or
        environment variable) that does not exist is an error.
        """
        explicit = path or os.environ.get("TOOLGATE_CONFIG")
        if explicit:
            resolved = Path(explicit).expanduser()
            if not resolved.exists():
                raise FileNotFoundError(f"Config file not found: {resolved}")
            return resolved

        for candidate in (USER_CONFIG_PATH, Path("config.yaml")):
            if candidate.exists():
                return candidate

        return DEFAULT_CONFIG_PATH

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Args:
            key: Dot-separated key path (e.g., "tools.no_confirmation")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config_data

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def __getitem__(self, key: str) -> Any:
        """Get configuration value by key."""
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        """Check if key exists in configuration."""
        return self.get(key, _MISSING) is not _MISSING

    def data(self) -> Dict[str, Any]:
        """Get the full configuration data dictionary."""
        return self._config_data.copy()

    def reload(self, path: str | None = None) -> None:
        """
        Reload configuration from file.

        Args:
            path: Optional path to config file
        """
        self._config_data.clear()
        self._load_config(path)


# Global config instance
config = Config()
