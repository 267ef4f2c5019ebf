"""Exceptions raised by importwatch.

InvalidPath, Ineligible and SessionConflict are reported synchronously to the
caller of ``start()`` and leave the session untouched. InconsistentState means
the watcher and the dependency graph disagree and is never recoverable.
"""

from __future__ import annotations

from dataclasses import dataclass


class ImportWatchError(Exception):
    """Base class for all importwatch errors."""


@dataclass(eq=False)
class InvalidPath(ImportWatchError, ValueError):
    """Raised when a path passed to ``start()`` is not absolute."""

    path: str

    def __str__(self) -> str:
        return f"The watcher only works on absolute paths - {self.path} is not absolute"


@dataclass(eq=False)
class Ineligible(ImportWatchError, ValueError):
    """Raised when asked to track a built-in module or a dependency file."""

    path: str

    def __str__(self) -> str:
        return (
            f"Cannot watch '{self.path}': built-in modules and files in "
            "dependency directories are not watchable"
        )


@dataclass(eq=False)
class SessionConflict(ImportWatchError):
    """Raised when an explicit session would be widened to watch everything."""

    watched: list[str]

    def __str__(self) -> str:
        return (
            f"Already watching {len(self.watched)} file(s) ({', '.join(self.watched)}). "
            "You can only watch more files."
        )


@dataclass(eq=False)
class InconsistentState(ImportWatchError, RuntimeError):
    """Raised when a change notification arrives for a path with no graph node."""

    path: str

    def __str__(self) -> str:
        return f"Unexpected - watching {self.path} that does not exist in the dependency graph"


@dataclass(eq=False)
class ResolutionError(ImportWatchError, ImportError):
    """Raised by a module host when a module name has no source file."""

    name: str
    reason: str = "no file origin"

    def __str__(self) -> str:
        return f"Cannot resolve module '{self.name}': {self.reason}"
