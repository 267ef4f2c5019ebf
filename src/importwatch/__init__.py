"""importwatch: drop stale modules from sys.modules as soon as their source changes.

Tracks which watched modules import which, and when a file changes evicts it
and every tracked module that depends on it, so the next import loads fresh
code without restarting the process.
"""

__version__ = "0.1.0"

from importwatch.config import Config, LoggingConfig, WatchConfig, load_config
from importwatch.dispatch import cascade_invalidate
from importwatch.eligibility import default_dependency_roots, is_trackable
from importwatch.errors import (
    ImportWatchError,
    InconsistentState,
    Ineligible,
    InvalidPath,
    ResolutionError,
    SessionConflict,
)
from importwatch.graph import DependencyGraph, Node
from importwatch.host import ModuleHost, SysModulesHost
from importwatch.logging import get_logger, setup_logging
from importwatch.session import (
    WatchSession,
    active_session,
    start,
    stop,
    stop_watching,
    watch,
)
from importwatch.watching import FileChangeEvent, PollingWatcher

__all__ = [
    # Entry points
    "start",
    "stop",
    "watch",
    "stop_watching",
    "active_session",
    "WatchSession",
    # Graph
    "Node",
    "DependencyGraph",
    "cascade_invalidate",
    "is_trackable",
    "default_dependency_roots",
    # Collaborators
    "ModuleHost",
    "SysModulesHost",
    "PollingWatcher",
    "FileChangeEvent",
    # Errors
    "ImportWatchError",
    "InvalidPath",
    "Ineligible",
    "SessionConflict",
    "InconsistentState",
    "ResolutionError",
    # Config and logging
    "Config",
    "WatchConfig",
    "LoggingConfig",
    "load_config",
    "get_logger",
    "setup_logging",
]
