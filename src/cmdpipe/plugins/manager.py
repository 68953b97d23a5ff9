"""Plugin discovery and loading.

Plugins come from two places: the ``cmdpipe.plugins`` entry-point group of
installed distributions, and single ``*.py`` files in a local directory
(``[plugins] local_dir``). Either kind can observe dispatch lifecycle
events and contribute handlers before a registry is frozen.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

import pluggy

from cmdpipe.domain.errors import ConfigurationError
from cmdpipe.plugins.hookspecs import CmdpipeHookSpec

if TYPE_CHECKING:
    from cmdpipe.services.registry import Registry

PROJECT_NAME = "cmdpipe"
ENTRY_POINT_GROUP = "cmdpipe.plugins"
LOCAL_MODULE_PREFIX = "cmdpipe_local_plugin_"

logger = logging.getLogger(__name__)


def _is_plugin_class(cls: type) -> bool:
    """Whether *cls* defines at least one ``@hookimpl`` method."""
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(member, marker, None) is not None
        for name, member in inspect.getmembers(cls, callable)
        if not name.startswith("_")
    )


class PluginManager:
    """Thin wrapper over ``pluggy.PluginManager`` with cmdpipe's discovery."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(CmdpipeHookSpec)
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then plugin files from *local_dir*.

        Returns the names of every registered plugin.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_entry_point_classes()
        if local_dir is not None and local_dir.is_dir():
            for py_file in sorted(local_dir.glob("*.py")):
                if not py_file.name.startswith("_"):
                    self._load_local_file(py_file)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        plugin_name = name or type(plugin).__name__
        self._pm.register(plugin, name=plugin_name)
        logger.debug("Registered plugin %s", plugin_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [name for name, _plugin in self._pm.list_name_plugin()]

    def contribute_handlers(self, registry: Registry) -> None:
        """Call every ``register_handlers`` implementation with *registry*.

        Implementations run in registration order. Configuration errors
        (duplicate handler, frozen registry) propagate; any other failure
        is logged and the next plugin still runs.
        """
        for impl in self._pm.hook.register_handlers.get_hookimpls():
            try:
                impl.function(registry=registry)
            except ConfigurationError:
                raise
            except Exception:
                logger.warning(
                    "Plugin %s failed to register handlers",
                    impl.plugin_name,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Discovery helpers
    # ------------------------------------------------------------------

    def _instantiate_entry_point_classes(self) -> None:
        # Entry points may name a class; hooks on an unbound class would
        # fail when called, so swap each for an instance.
        for name, plugin in list(self._pm.list_name_plugin()):
            if not inspect.isclass(plugin) or not _is_plugin_class(plugin):
                continue
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=name)
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)

    def _load_local_file(self, py_file: Path) -> None:
        module = self._import_file(py_file)
        if module is None:
            return
        for cls in self._plugin_classes(module):
            try:
                instance = cls()
            except Exception:
                logger.warning(
                    "Failed to instantiate %s from %s", cls.__name__, py_file, exc_info=True
                )
                continue
            self.register_plugin(instance, name=f"{module.__name__}.{cls.__name__}")

    @staticmethod
    def _import_file(py_file: Path) -> ModuleType | None:
        """Import *py_file* as a standalone module; None if it is broken."""
        module_name = f"{LOCAL_MODULE_PREFIX}{py_file.stem}"
        spec = importlib.util.spec_from_file_location(module_name, py_file)
        if spec is None or spec.loader is None:
            logger.warning("Cannot import local plugin %s", py_file)
            return None
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception:
            sys.modules.pop(module_name, None)
            logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
            return None
        return module

    @staticmethod
    def _plugin_classes(module: ModuleType) -> Iterator[type]:
        for _name, obj in inspect.getmembers(module, inspect.isclass):
            if obj.__module__ == module.__name__ and _is_plugin_class(obj):
                yield obj
