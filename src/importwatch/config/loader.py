"""Configuration loading and caching.

Handles:
- YAML file parsing
- Merging system, user and project files
- Environment variable overrides
- Conversion from dict to the typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from importwatch.config.paths import get_config_paths
from importwatch.config.schema import Config, LoggingConfig, WatchConfig

# importwatch.logging may not be set up yet when config loads
_log = logging.getLogger("importwatch.config")

_cached_config: Config | None = None

ENV_LOG = "IMPORTWATCH_LOG"
ENV_POLL_INTERVAL = "IMPORTWATCH_POLL_INTERVAL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Parse a YAML mapping; missing, unreadable or invalid files yield {}."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested dicts merge key by key, lists and scalars are replaced, and a None
    in ``override`` leaves the base value alone.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Fold configs left to right; later ones win."""
    merged: dict[str, Any] = {}
    for config in configs:
        if config:
            merged = deep_merge(merged, config)
    return merged


def env_overrides() -> dict[str, Any]:
    """Config dict built from IMPORTWATCH_* environment variables."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get(ENV_LOG)
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    interval = os.environ.get(ENV_POLL_INTERVAL)
    if interval:
        try:
            overrides.setdefault("watch", {})["poll_interval"] = float(interval)
        except ValueError:
            _log.warning("Ignoring %s=%r: not a number", ENV_POLL_INTERVAL, interval)

    return overrides


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to a typed Config."""
    watch_data = data.get("watch") or {}
    dependency_dirs = watch_data.get("dependency_dirs") or []
    watch = WatchConfig(
        poll_interval=float(watch_data.get("poll_interval", 1.0)),
        dependency_dirs=[str(d) for d in dependency_dirs if isinstance(d, (str, Path))],
        include_stdlib=bool(watch_data.get("include_stdlib", False)),
        project_root=watch_data.get("project_root"),
    )

    log_data = data.get("logging") or {}
    verbose = log_data.get("verbose")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=int(verbose) if verbose is not None else None,
        file=log_data.get("file"),
    )

    known_keys = {"watch", "logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(watch=watch, logging=logging_config, extra=extra)


def load_config(project_root: str | Path | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest first): environment, project file, user file,
    system file.

    Args:
        project_root: Directory holding ``.importwatch/config.yaml``.
        reload: Ignore the cached global config.

    Returns:
        Merged Config. Only the global config (no project_root) is cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs))
    if project_root is not None and config.watch.project_root is None:
        config.watch.project_root = str(project_root)

    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """The cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Forget the cached config."""
    global _cached_config
    _cached_config = None
