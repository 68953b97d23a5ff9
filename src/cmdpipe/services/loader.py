"""Import a registry from a ``package.module:attribute`` target.

Used by the CLI so that the same wiring the application builds at startup
can be checked or exercised from the command line.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from cmdpipe.domain.errors import ConfigurationError
from cmdpipe.services.dispatcher import Dispatcher
from cmdpipe.services.registry import Registry

if TYPE_CHECKING:
    from cmdpipe.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


def _import_attribute(target: str) -> Any:
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        msg = f"Target {target!r} must look like 'package.module:attribute'"
        raise ConfigurationError(msg)
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Cannot import {module_name!r}: {exc}"
        raise ConfigurationError(msg) from exc
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            msg = f"{module_name!r} has no attribute {attr_path!r}"
            raise ConfigurationError(msg) from exc
    return obj


def load_registry(target: str, *, plugin_manager: PluginManager | None = None) -> Registry:
    """Resolve *target* to a Registry.

    The attribute may be a Registry, a Dispatcher, or a zero-argument
    callable returning either. Plugins get to contribute handlers when the
    registry is still open.

    Raises:
        ConfigurationError: The target cannot be imported or does not
            produce a registry. Duplicate registrations from plugins also
            surface here.
    """
    obj = _import_attribute(target)
    if callable(obj) and not isinstance(obj, (Registry, Dispatcher, type)):
        obj = obj()
    if isinstance(obj, Dispatcher):
        obj = obj.registry
    if not isinstance(obj, Registry):
        msg = f"{target!r} resolved to {type(obj).__name__}, expected a Registry"
        raise ConfigurationError(msg)

    if plugin_manager is not None and not obj.is_frozen:
        plugin_manager.contribute_handlers(obj)
    logger.debug("Loaded registry from %s: %r", target, obj)
    return obj
