"""Configuration schema dataclasses for importwatch.

All fields have defaults so partial configs from several files merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class WatchConfig:
    """How files are watched and which ones are off limits.

    Example config.yaml:
        watch:
          poll_interval: 0.5
          include_stdlib: false
          dependency_dirs:
            - ./vendor
    """

    poll_interval: float = 1.0  # Seconds between polling cycles
    dependency_dirs: list[str] = field(default_factory=list)  # Extra unwatchable roots
    include_stdlib: bool = False  # Allow watching the standard library
    project_root: str | None = None  # Default: current working directory


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path

    @property
    def configured(self) -> bool:
        return self.level is not None or self.verbose is not None or bool(self.file)


@dataclass
class Config:
    """Root configuration object."""

    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are kept for callers
    extra: dict[str, Any] = field(default_factory=dict)
