"""Configuration management utilities for htbtui."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values

from .exceptions import ConfigError
from .gateway.client import HTB_API_URL

__all__ = [
    "deep_merge",
    "get_default_config",
    "load_config",
    "load_dotenv_config",
    "load_env_config",
    "load_global_config",
    "load_yaml_config",
    "merge_config",
    "require_api_key",
]

logger = logging.getLogger(__name__)

_ENV_TO_CONFIG_KEY = {
    "HTB_API_KEY": ("api", "key"),
    "HTB_API_URL": ("api", "base_url"),
}


def merge_config(
    cli_args: Dict[str, Any],
    env_config: Dict[str, Any],
    dotenv_config: Dict[str, Any],
    file_config: Dict[str, Any],
    defaults: Dict[str, Any],
) -> Dict[str, Any]:
    """Merge configuration dictionaries honoring precedence order."""
    merged = defaults.copy()
    deep_merge(merged, file_config)
    deep_merge(merged, dotenv_config)
    deep_merge(merged, env_config)
    deep_merge(merged, _drop_none(cli_args))
    return merged


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> None:
    """Recursively merge ``overlay`` into ``base`` in place."""
    for key, value in overlay.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            base[key] = dict(base[key])
            deep_merge(base[key], value)
        else:
            base[key] = value


def load_yaml_config(yaml_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from ``htbtui.yaml`` or return an empty dict."""
    path = yaml_path or Path("htbtui.yaml")
    if not path.exists():
        return {}

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Failed to load %s: %s", path, exc)
        return {}

    return data if isinstance(data, dict) else {}


def load_global_config() -> Dict[str, Any]:
    """Load user-level configuration from standard locations."""
    try:
        home = Path.home()
    except (OSError, RuntimeError):
        return {}

    for candidate in (
        home / ".htbtui" / "config.yaml",
        home / ".config" / "htbtui" / "config.yaml",
    ):
        if candidate.exists():
            return load_yaml_config(candidate)
    return {}


def load_dotenv_config(dotenv_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the API settings from a ``.env`` file."""
    path = dotenv_path or Path(".env")
    if not path.exists():
        return {}
    return _map_env(dotenv_values(path))


def load_env_config() -> Dict[str, Any]:
    """Load supported variables from the current environment."""
    return _map_env(os.environ)


def get_default_config() -> Dict[str, Any]:
    """Return a fresh copy of htbtui's default configuration."""
    return {
        "api": {
            "key": None,
            "base_url": HTB_API_URL,
            "per_page": 100,
            "timeout": 30.0,
            "enrich_concurrency": 5,
        },
        "view": {
            "filter": "none",
            "sort": "difficulty",
        },
        "tui": {
            "tick_interval": 1.0,
            "refresh_interval": 0,
            "mouse": True,
        },
        "logging": {
            "level": "INFO",
            "logs_dir": Path.home() / ".htbtui" / "logs",
            "retention_days": 7,
            "max_sessions": 20,
        },
    }


def load_config(
    cli_args: Optional[Dict[str, Any]] = None,
    config_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """Build the effective configuration from every source."""
    file_config = (
        load_yaml_config(config_path)
        if config_path
        else (load_yaml_config() or load_global_config())
    )
    return merge_config(
        cli_args or {},
        load_env_config(),
        load_dotenv_config(),
        file_config,
        get_default_config(),
    )


def require_api_key(config: Dict[str, Any]) -> str:
    """Return the configured API key or raise ConfigError."""
    key = (config.get("api") or {}).get("key")
    if not key or not str(key).strip():
        raise ConfigError(
            "No API key configured. Set HTB_API_KEY in the environment or a .env "
            "file, or add api.key to htbtui.yaml."
        )
    return str(key).strip()


def _map_env(values: Any) -> Dict[str, Any]:
    config: Dict[str, Any] = {}
    for env_key, (section, key) in _ENV_TO_CONFIG_KEY.items():
        value = values.get(env_key)
        if value:
            config.setdefault(section, {})[key] = value
    return config


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, dict):
            nested = _drop_none(value)
            if nested:
                cleaned[key] = nested
        elif value is not None:
            cleaned[key] = value
    return cleaned
