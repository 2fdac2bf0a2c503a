# Where: lambdasync/devserver/services/handler_provider.py
# What: Loads the developer's handler function and reloads it after edits.
# Why: Keep the gateway independent of how (and how often) modules are imported.
"""
Handler providers.

``ModuleHandlerProvider`` resolves a handler reference such as ``index.py``,
``src/app.py``, ``index`` or ``package.module:function`` relative to the
project directory, and re-imports the module when its source file changes.
"""

import importlib
import importlib.util
import logging
import os
import sys
import threading
from types import ModuleType
from typing import Callable, Optional, Protocol

from lambdasync.devserver.core.exceptions import HandlerLoadError

logger = logging.getLogger("devserver.handler_provider")

Handler = Callable[..., object]


class HandlerProvider(Protocol):
    def current(self) -> Handler:
        """Return the handler to invoke for the next request."""
        ...

    def reload(self) -> Handler:
        """Force a fresh load of the handler."""
        ...


class StaticHandlerProvider:
    """Provider for a handler object supplied directly (embedding, tests)."""

    def __init__(self, handler: Handler):
        if not callable(handler):
            raise HandlerLoadError(repr(handler), TypeError("handler is not callable"))
        self._handler = handler

    def current(self) -> Handler:
        return self._handler

    def reload(self) -> Handler:
        return self._handler


class SourceFileWatcher:
    """
    Watches a single source file for changes using modification time.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._last_mtime: Optional[int] = None
        self._lock = threading.RLock()

    def has_changed(self) -> bool:
        """
        Returns:
            True if the file was modified since the last update_mtime().
        """
        try:
            current_mtime = os.stat(self.file_path).st_mtime_ns
        except FileNotFoundError:
            logger.warning(f"Handler source not found: {self.file_path}")
            return False
        except OSError as e:
            logger.error(f"Error checking handler source {self.file_path}: {e}")
            return False

        with self._lock:
            return self._last_mtime is not None and current_mtime != self._last_mtime

    def update_mtime(self) -> None:
        try:
            mtime = os.stat(self.file_path).st_mtime_ns
        except OSError:
            mtime = None
        with self._lock:
            self._last_mtime = mtime


def strip_extension(ref: str) -> str:
    """Drop a trailing ``.py`` from a handler reference."""
    return ref[:-3] if ref.endswith(".py") else ref


def make_absolute_path(path: str, base_dir: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(base_dir, path))


class ModuleHandlerProvider:
    """
    Loads ``<module>.<function_name>`` from the project and reloads it on change.
    """

    def __init__(
        self,
        handler_ref: str,
        project_dir: str = ".",
        function_name: str = "handler",
        auto_reload: bool = True,
    ):
        self.project_dir = os.path.abspath(project_dir)
        self.auto_reload = auto_reload

        module_ref, sep, attr = handler_ref.partition(":")
        self.handler_ref = handler_ref
        self.module_ref = module_ref
        self.function_name = attr if sep else function_name

        self._lock = threading.RLock()
        self._module: Optional[ModuleType] = None
        self._handler: Optional[Handler] = None
        self._watcher: Optional[SourceFileWatcher] = None
        self._load_count = 0

    @property
    def load_count(self) -> int:
        """Number of successful (re)loads, mostly useful for diagnostics."""
        return self._load_count

    def _source_path(self) -> Optional[str]:
        """Path of the handler file when the reference names one."""
        ref = self.module_ref
        if ref.endswith(".py") or os.sep in ref or "/" in ref:
            return make_absolute_path(ref, self.project_dir)
        candidate = os.path.join(self.project_dir, f"{ref}.py")
        if os.path.isfile(candidate):
            return candidate
        return None

    def _ensure_project_on_path(self) -> None:
        # Handlers import their sibling modules the way the Lambda runtime allows.
        if self.project_dir not in sys.path:
            sys.path.insert(0, self.project_dir)

    def _import(self) -> ModuleType:
        self._ensure_project_on_path()
        source_path = self._source_path()

        if source_path is not None:
            if not os.path.isfile(source_path):
                raise HandlerLoadError(
                    self.handler_ref, FileNotFoundError(f"No such file: {source_path}")
                )
            module_name = strip_extension(os.path.basename(source_path))
            spec = importlib.util.spec_from_file_location(module_name, source_path)
            if spec is None or spec.loader is None:
                raise HandlerLoadError(
                    self.handler_ref, ImportError(f"Cannot import {source_path}")
                )
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except BaseException:
                sys.modules.pop(module_name, None)
                raise
            return module

        module_name = self.module_ref
        existing = sys.modules.get(module_name)
        if existing is not None and self._module is existing:
            return importlib.reload(existing)
        return importlib.import_module(module_name)

    def _load(self) -> Handler:
        try:
            module = self._import()
        except HandlerLoadError:
            raise
        except Exception as e:
            raise HandlerLoadError(self.handler_ref, e) from e
        except SystemExit as e:
            raise HandlerLoadError(self.handler_ref, RuntimeError(f"SystemExit({e.code})")) from e

        handler = getattr(module, self.function_name, None)
        if handler is None:
            raise HandlerLoadError(
                self.handler_ref,
                AttributeError(f"module '{module.__name__}' has no '{self.function_name}'"),
            )
        if not callable(handler):
            raise HandlerLoadError(
                self.handler_ref, TypeError(f"'{self.function_name}' is not callable")
            )

        module_file = getattr(module, "__file__", None)
        if module_file:
            self._watcher = SourceFileWatcher(module_file)
            self._watcher.update_mtime()

        self._module = module
        self._handler = handler
        self._load_count += 1
        logger.info(
            f"Loaded handler {module.__name__}.{self.function_name}",
            extra={"handler_file": module_file, "load_count": self._load_count},
        )
        return handler

    def reload(self) -> Handler:
        with self._lock:
            return self._load()

    def current(self) -> Handler:
        with self._lock:
            if self._handler is None:
                return self._load()
            if self.auto_reload and self._watcher is not None and self._watcher.has_changed():
                logger.info(f"Handler source changed, reloading {self.handler_ref}")
                return self._load()
            return self._handler
