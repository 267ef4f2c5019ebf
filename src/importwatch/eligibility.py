"""Decides which module paths belong to the watchable application surface.

Built-in modules (names such as ``sys`` or ``os.path`` that carry no directory
component) and anything under a dependency root (site-packages, the standard
library, a project virtualenv, importwatch itself) are never watched.
"""

from __future__ import annotations

import os
import site
import sysconfig
from collections.abc import Iterable
from pathlib import Path

VENV_DIRNAME = ".venv"

# Never watched, whatever roots a session is given
PACKAGE_DIR = Path(__file__).resolve().parent

_SEPARATORS = tuple({"/", os.sep, os.altsep or "/"})


def is_builtin_name(path: str | Path) -> bool:
    """True for strings that name a module rather than a file."""
    text = str(path)
    if any(sep in text for sep in _SEPARATORS):
        return False
    return not text.startswith(".")


def default_dependency_roots(
    project_root: str | Path | None = None,
    *,
    include_stdlib: bool = False,
    extra: Iterable[str | Path] = (),
) -> tuple[Path, ...]:
    """Directories whose files are treated as third-party dependencies.

    The importwatch package directory is always one of them.

    Args:
        project_root: Project directory; its ``.venv`` is excluded. Defaults
            to the current working directory.
        include_stdlib: When True the standard library is watchable.
        extra: Additional directories to exclude.

    Returns:
        Resolved, de-duplicated roots.
    """
    candidates: list[Path] = []

    site_dirs = list(getattr(site, "getsitepackages", lambda: [])())
    user_site = getattr(site, "getusersitepackages", lambda: None)()
    if user_site:
        site_dirs.append(user_site)
    candidates.extend(Path(p) for p in site_dirs)

    if not include_stdlib:
        paths = sysconfig.get_paths()
        for key in ("stdlib", "platstdlib"):
            if paths.get(key):
                candidates.append(Path(paths[key]))
        # Frozen or relocated interpreters may report a different prefix
        candidates.append(Path(os.__file__).parent)

    candidates.append(PACKAGE_DIR)

    root = Path(project_root) if project_root else Path.cwd()
    candidates.append(root / VENV_DIRNAME)
    candidates.extend(Path(p) for p in extra)

    roots: list[Path] = []
    for candidate in candidates:
        resolved = candidate.expanduser().resolve()
        if resolved not in roots:
            roots.append(resolved)
    return tuple(roots)


def _is_under(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def is_trackable(
    path: str | Path,
    dependency_roots: Iterable[Path] | None = None,
) -> bool:
    """Whether ``path`` may become a node of the dependency graph.

    Args:
        path: A module file path or a bare module name.
        dependency_roots: Excluded directories; defaults to
            ``default_dependency_roots()``.

    Returns:
        False for built-in names, paths under a dependency root and
        importwatch's own files.
    """
    if is_builtin_name(path):
        return False

    roots = default_dependency_roots() if dependency_roots is None else dependency_roots
    candidate = Path(path)
    if not candidate.is_absolute():
        # Relative paths are rejected later as InvalidPath, not here
        return True
    candidate = Path(os.path.normpath(candidate))
    if _is_under(candidate, PACKAGE_DIR):
        return False
    return not any(_is_under(candidate, Path(root)) for root in roots)
