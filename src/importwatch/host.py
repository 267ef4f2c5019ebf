"""Bridge between importwatch and Python's import system.

``SysModulesHost`` treats ``sys.modules`` as the module cache and observes
imports through a wrapper around ``builtins.__import__``. The wrapper is
installed at most once per process; sessions only swap the listener it
forwards to.

``importlib.import_module`` and ``importlib.reload`` bypass
``builtins.__import__`` and are therefore not observed.
"""

from __future__ import annotations

import builtins
import importlib
import importlib.util
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import ModuleType
from typing import Any, Protocol

from importwatch.errors import ResolutionError
from importwatch.logging import TRACE, get_logger

log = get_logger("host")


class LoadListener(Protocol):
    """Receives ``(requested_path, dependent_path)`` for every observed import."""

    def tracks(self, dependent_path: Path) -> bool:
        """Cheap pre-check so imports from untracked modules are not resolved."""
        ...

    def on_load(self, requested_path: Path, dependent_path: Path) -> None: ...


class ModuleHost(Protocol):
    """What a WatchSession needs from the module system."""

    def resolve(self, name: str, package: str | None = None) -> Path: ...

    def is_cached(self, path: Path) -> bool: ...

    def evict(self, path: Path) -> list[str]: ...

    def cached_paths(self) -> list[Path]: ...

    def install_hook(self, listener: LoadListener) -> None: ...

    def remove_hook(self, listener: LoadListener) -> None: ...


def normalize_path(file_attr: str | Path) -> Path:
    """Canonical key for a module file: resolved, with ``.pyc`` mapped to ``.py``."""
    path = Path(file_attr)
    if path.suffix == ".pyc":
        path = path.with_suffix(".py")
    return path.resolve()


def module_path(module: ModuleType | None) -> Path | None:
    """Source path of a loaded module, or None for built-ins and namespaces."""
    file_attr = getattr(module, "__file__", None)
    if not file_attr:
        return None
    try:
        return normalize_path(file_attr)
    except (OSError, RuntimeError):
        return None


def _package_of(module_globals: Mapping[str, Any]) -> str | None:
    package = module_globals.get("__package__")
    if package is not None:
        return package
    name = module_globals.get("__name__")
    if not name:
        return None
    if "__path__" in module_globals:
        return name
    return name.rpartition(".")[0]


HOOK_ATTR = "__importwatch_hook__"


def installed_hook(import_func: Any = None) -> ImportHook | None:
    """The ImportHook whose wrapper is ``import_func`` (default: the current
    ``builtins.__import__``), following ``__wrapped__`` through outer wrappers.

    The wrapper carries its hook as an attribute, so a hook installed by an
    earlier copy of this module (after a reload) is still found.
    """
    func = builtins.__import__ if import_func is None else import_func
    seen: set[int] = set()
    while func is not None and id(func) not in seen:
        seen.add(id(func))
        hook = getattr(func, HOOK_ATTR, None)
        if hook is not None:
            return hook
        func = getattr(func, "__wrapped__", None)
    return None


class ImportHook:
    """The process-wide ``builtins.__import__`` wrapper.

    ``install()`` looks for a marked wrapper on ``builtins.__import__``, so
    neither calling it again nor a second ImportHook ever wraps twice.
    """

    def __init__(self, host: SysModulesHost | None = None) -> None:
        self.listener: LoadListener | None = None
        self._host = host
        self._original: Any = None
        self._wrapper = self._make_wrapper()

    @property
    def installed(self) -> bool:
        return builtins.__import__ is self._wrapper

    def install(self) -> bool:
        """Install the wrapper once per process.

        Returns False when it is already installed, was installed before and
        has since been wrapped by another hook, or another ImportHook already
        wraps ``builtins.__import__``.
        """
        if self.installed or self._original is not None:
            return False
        existing = installed_hook()
        if existing is not None:
            log.debug("Another import hook already wraps __import__")
            return False
        self._original = builtins.__import__
        builtins.__import__ = self._wrapper
        log.debug("Installed import hook")
        return True

    def _make_wrapper(self) -> Any:
        hook = self

        def watched_import(
            name: str,
            globals: dict[str, Any] | None = None,
            locals: dict[str, Any] | None = None,
            fromlist: Sequence[str] | None = (),
            level: int = 0,
        ) -> Any:
            listener = hook.listener
            if listener is not None and globals:
                hook._observe(listener, name, globals, fromlist or (), level)
            return hook._original(name, globals, locals, fromlist, level)

        setattr(watched_import, HOOK_ATTR, hook)
        return watched_import

    def _observe(
        self,
        listener: LoadListener,
        name: str,
        module_globals: Mapping[str, Any],
        fromlist: Sequence[str],
        level: int,
    ) -> None:
        dependent_file = module_globals.get("__file__")
        if not dependent_file:
            return
        dependent_path = normalize_path(dependent_file)
        if not listener.tracks(dependent_path):
            return

        host = self._host or default_host()
        package = _package_of(module_globals) if level else None
        request = "." * level + name
        try:
            target = host.absolute_name(request, package)
            listener.on_load(host.resolve(target), dependent_path)
        except ResolutionError as e:
            log.log(TRACE, "Not recording %s from %s: %s", request, dependent_path, e)
            return

        for item in host.submodule_candidates(target, fromlist):
            try:
                listener.on_load(host.resolve(item), dependent_path)
            except ResolutionError:
                continue


class SysModulesHost:
    """ModuleHost backed by ``sys.modules`` and ``importlib``."""

    def __init__(self, hook: ImportHook | None = None) -> None:
        self._hook = hook
        self._listening_on: ImportHook | None = None

    @property
    def hook(self) -> ImportHook:
        return self._hook or installed_hook() or _import_hook

    def absolute_name(self, request: str, package: str | None = None) -> str:
        if not request.startswith("."):
            return request
        try:
            return importlib.util.resolve_name(request, package)
        except (ImportError, ValueError) as e:
            raise ResolutionError(request, str(e)) from e

    def resolve(self, name: str, package: str | None = None) -> Path:
        """Map a module name to its source file.

        Raises:
            ResolutionError: For built-ins, namespace packages and names the
                import system cannot find.
        """
        absolute = self.absolute_name(name, package)
        module = sys.modules.get(absolute)
        if module is not None:
            path = module_path(module)
            if path is None:
                raise ResolutionError(absolute, "built-in or namespace module")
            return path

        try:
            spec = importlib.util.find_spec(absolute)
        except (ImportError, ValueError) as e:
            raise ResolutionError(absolute, str(e)) from e
        if spec is None:
            raise ResolutionError(absolute, "not found")
        if not spec.has_location or not spec.origin:
            raise ResolutionError(absolute, "built-in or namespace module")
        return normalize_path(spec.origin)

    def submodule_candidates(self, target: str, fromlist: Sequence[str]) -> list[str]:
        """Names in ``from target import ...`` that may be submodules."""
        if not fromlist:
            return []
        module = sys.modules.get(target)
        if module is not None and not hasattr(module, "__path__"):
            return []
        candidates: list[str] = []
        for item in fromlist:
            if item == "*":
                continue
            if module is not None:
                attr = getattr(module, item, None)
                if attr is not None and not isinstance(attr, ModuleType):
                    continue
            candidates.append(f"{target}.{item}")
        return candidates

    def _names_for(self, path: Path) -> list[str]:
        return [
            name
            for name, module in list(sys.modules.items())
            if module is not None and module_path(module) == path
        ]

    def is_cached(self, path: Path) -> bool:
        return bool(self._names_for(path))

    def evict(self, path: Path) -> list[str]:
        """Drop every ``sys.modules`` entry loaded from ``path``.

        ``__main__`` is never evicted. The module is also detached from its
        parent package so ``from package import module`` re-imports it.

        Returns:
            The evicted module names.
        """
        evicted: list[str] = []
        for name in self._names_for(path):
            if name == "__main__":
                continue
            module = sys.modules.pop(name, None)
            evicted.append(name)
            parent_name, _, child = name.rpartition(".")
            parent = sys.modules.get(parent_name) if parent_name else None
            if parent is not None and getattr(parent, child, None) is module:
                delattr(parent, child)
        # Finders cache directory listings; a recreated file must be seen
        importlib.invalidate_caches()
        if evicted:
            log.debug("Evicted %s from sys.modules", ", ".join(evicted))
        return evicted

    def cached_paths(self) -> list[Path]:
        paths: list[Path] = []
        seen: set[Path] = set()
        for module in list(sys.modules.values()):
            path = module_path(module)
            if path is not None and path not in seen:
                seen.add(path)
                paths.append(path)
        return paths

    def install_hook(self, listener: LoadListener) -> None:
        hook = self.hook
        hook.install()
        hook.listener = listener
        self._listening_on = hook

    def remove_hook(self, listener: LoadListener) -> None:
        # The wrapper stays installed for the process lifetime
        hook = self._listening_on or self.hook
        if hook.listener is listener:
            hook.listener = None


_default_host: SysModulesHost | None = None
# A reload of this module keeps forwarding through the wrapper already in place
_import_hook = installed_hook() or ImportHook()


def default_host() -> SysModulesHost:
    global _default_host
    if _default_host is None:
        _default_host = SysModulesHost()
    return _default_host
