"""Plugin module import and instantiation.

A plugin module must export a top-level ``PLUGIN_CLASS`` naming a
:class:`~plughost.plugins.base.Plugin` subclass. Modules are imported
under a private ``plughost_plugin_<stem>_<digest>`` name so they never
shadow real packages or each other, and re-imported from scratch on
every load so that a reload picks up edited source.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType

from plughost.errors import LoadError
from plughost.plugins.base import ENTRY_POINT, Plugin
from plughost.plugins.discovery import INDEX_MODULE

MODULE_PREFIX = "plughost_plugin_"

logger = logging.getLogger(__name__)


def module_name_for(path: Path) -> str:
    """Private ``sys.modules`` key for the plugin at *path*.

    The digest of the resolved path keeps ``admin/admin.py`` and a
    sibling ``admin.py`` apart.
    """
    stem = path.parent.name if path.name == INDEX_MODULE else path.stem
    digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:8]
    return f"{MODULE_PREFIX}{stem}_{digest}"


def forget_module(module_name: str) -> None:
    """Drop *module_name* and its submodules from ``sys.modules``."""
    prefix = f"{module_name}."
    for name in [n for n in sys.modules if n == module_name or n.startswith(prefix)]:
        del sys.modules[name]


def import_plugin_module(path: Path) -> ModuleType:
    """Execute the module at *path* and return it.

    Package entry modules (``__init__.py``) are imported with their
    directory as the submodule search location so relative imports work.
    """
    module_name = module_name_for(path)
    # Previous import, helpers included, so edited source is re-executed.
    forget_module(module_name)

    search_locations = [str(path.parent)] if path.name == INDEX_MODULE else None
    spec = importlib.util.spec_from_file_location(
        module_name,
        path,
        submodule_search_locations=search_locations,
    )
    if spec is None or spec.loader is None:
        raise LoadError(path, "could not create module spec")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        forget_module(module_name)
        raise LoadError(path, f"import failed: {exc}") from exc
    return module


def import_plugin_class(path: Path) -> type[Plugin]:
    """Import *path* and return its ``PLUGIN_CLASS``."""
    module = import_plugin_module(path)
    plugin_cls = getattr(module, ENTRY_POINT, None)
    if plugin_cls is None:
        raise LoadError(path, f"module has no {ENTRY_POINT} attribute")
    if not inspect.isclass(plugin_cls) or not issubclass(plugin_cls, Plugin):
        raise LoadError(path, f"{ENTRY_POINT} is not a Plugin subclass")
    return plugin_cls


def instantiate_plugin(path: Path) -> Plugin:
    """Import *path*, instantiate its plugin class, and validate the name.

    Raises:
        LoadError: Import failed, the entry point is missing or invalid,
            the constructor raised, or the instance has no name.
    """
    plugin_cls = import_plugin_class(path)
    try:
        plugin = plugin_cls()
    except Exception as exc:
        raise LoadError(path, f"could not instantiate {plugin_cls.__name__}: {exc}") from exc

    if not isinstance(plugin.name, str) or not plugin.name.strip():
        raise LoadError(path, "plugin is missing required 'name' property")

    logger.debug("Instantiated plugin %s from %s", plugin.name, path)
    return plugin
