"""
Configuration management for the RO train design server.

Values come from YAML files in config/ (or the directory named by
RO_TRAIN_CONFIG_DIR), merged in file-name order, then from
RO_TRAIN_ environment variables. A double underscore in a variable
name separates nesting levels:

    RO_TRAIN_SOLVER__ITERATION_LIMIT=80  ->  solver.iteration_limit = 80
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
import logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "RO_TRAIN_"
CONFIG_DIR_ENV = "RO_TRAIN_CONFIG_DIR"

# Project root is the parent of the package directory
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overlay into a copy of base; nested sections merge key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def coerce_env_value(raw: str) -> Any:
    """Parse an environment string as bool, int or float, else keep it."""
    lowered = raw.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    if raw.lstrip('-').isdigit():
        return int(raw)
    try:
        return float(raw)
    except ValueError:
        return raw


class ConfigLoader:
    """Loads YAML defaults plus environment overrides, on first access."""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Args:
            config_dir: Directory containing config files. Defaults to
                       $RO_TRAIN_CONFIG_DIR, then config/ in the project root.
        """
        if config_dir is None:
            config_dir = os.environ.get(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR
        self.config_dir = Path(config_dir)
        self._config: Dict[str, Any] = {}
        self._loaded = False

    def _resolve_files(self, config_files: Optional[List[Union[str, Path]]]) -> List[Path]:
        if config_files is not None:
            return [self.config_dir / f if isinstance(f, str) else Path(f) for f in config_files]
        found = sorted(self.config_dir.glob("*.yaml"))
        if not found:
            logger.warning(f"No config files found in {self.config_dir}")
        return found

    def load(self, config_files: Optional[List[Union[str, Path]]] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML files and the environment.

        Args:
            config_files: Names (relative to config_dir) or paths to load.
                         If None, loads every .yaml file in config_dir.

        Returns:
            Merged configuration dictionary.
        """
        for path in self._resolve_files(config_files):
            if not path.exists():
                logger.warning(f"Config file not found: {path}")
                continue
            logger.debug(f"Loading config from {path}")
            with open(path, 'r', encoding='utf-8') as f:
                section = yaml.safe_load(f) or {}
            self._config = deep_merge(self._config, section)

        self._apply_env_overrides()
        self._loaded = True
        return self._config

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "solver.iteration_limit")
            default: Returned when any part of the path is missing

        Returns:
            Configuration value or default.
        """
        self._ensure_loaded()
        node: Any = self._config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def _apply_env_overrides(self) -> None:
        for env_key, raw in os.environ.items():
            if not env_key.startswith(ENV_PREFIX) or env_key == CONFIG_DIR_ENV:
                continue

            path = env_key[len(ENV_PREFIX):].lower().split('__')
            value = coerce_env_value(raw)
            logger.debug(f"Overriding {'.'.join(path)} with {value!r} from environment")

            section = self._config
            for part in path[:-1]:
                if not isinstance(section.get(part), dict):
                    section[part] = {}
                section = section[part]
            section[path[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return a deep copy of the full configuration."""
        self._ensure_loaded()
        return copy.deepcopy(self._config)


# Global configuration instance
_config_loader = ConfigLoader()


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by dot-notation key from the global loader."""
    return _config_loader.get(key, default)


def get_full_config() -> Dict[str, Any]:
    """Return the merged global configuration."""
    return _config_loader.to_dict()
