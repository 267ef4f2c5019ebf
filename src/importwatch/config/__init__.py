"""Configuration management for importwatch.

Layered YAML configuration:
- System-level config (/etc/importwatch/ or %PROGRAMDATA%)
- User-level config (~/.config/importwatch/ or %APPDATA%)
- Project-level config (<project_root>/.importwatch/)
- Environment variable overrides (highest priority)

Example usage:
    from importwatch.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.watch.poll_interval)
"""

from importwatch.config.loader import (
    deep_merge,
    get_config,
    load_config,
    merge_configs,
    reset_config,
)
from importwatch.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from importwatch.config.schema import Config, LoggingConfig, WatchConfig

__all__ = [
    "Config",
    "LoggingConfig",
    "WatchConfig",
    "load_config",
    "get_config",
    "reset_config",
    "deep_merge",
    "merge_configs",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
