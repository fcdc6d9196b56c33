"""Extension layer — plugin discovery, lifecycle, and command sync.

Discovery: ``plugin.yml`` directories and single-file modules under the
plugin root. Each module exports ``PLUGIN_CLASS``.
INVARIANT: A broken plugin is logged and skipped, never fatal to the host.
"""

from plughost.plugins.base import Plugin
from plughost.plugins.hookspecs import hookimpl
from plughost.plugins.manager import PluginManager

__all__ = ["Plugin", "PluginManager", "hookimpl"]
