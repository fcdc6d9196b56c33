"""Locate ``plughost.toml``.

Lookup order: the ``PLUGHOST_CONFIG`` environment variable, then the
start directory and each of its parents, nearest first.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "plughost.toml"
CONFIG_ENV_VAR = "PLUGHOST_CONFIG"


def _candidates(start: Path) -> list[Path]:
    here = start.resolve()
    return [directory / CONFIG_FILENAME for directory in (here, *here.parents)]


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file in effect for *start* (default: cwd), if any.

    When ``PLUGHOST_CONFIG`` is set it is authoritative: a missing file
    there means no config, and the walk-up is skipped.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    return next((c for c in _candidates(start or Path.cwd()) if c.is_file()), None)
