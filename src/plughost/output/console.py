"""Rich console plumbing for human-readable output.

Renderers draw into an in-memory console so formatting stays a pure
``ServiceResult -> str`` step. Rich drops colour codes by itself when
the final output is not a terminal (pipes, CliRunner).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DEFAULT_WIDTH = 120

PLUGHOST_THEME = Theme(
    {
        "ph.ok": "bold green",
        "ph.error": "bold red",
        "ph.warning": "bold yellow",
        "ph.op": "bold cyan",
        "ph.key": "dim",
        "ph.name": "bold",
        "ph.path": "dim",
        "ph.enabled": "green",
        "ph.disabled": "yellow",
        "ph.command": "magenta",
    }
)

_STATE_STYLES = {True: "ph.enabled", False: "ph.disabled"}


def create_console(*, no_color: bool = False, width: int = DEFAULT_WIDTH) -> Console:
    """Return a themed Console writing to a fresh StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=PLUGHOST_THEME,
        no_color=no_color,
        highlight=False,
        width=width,
    )


def get_output(console: Console) -> str:
    """Everything rendered so far into a console from :func:`create_console`."""
    buffer = console.file
    if not isinstance(buffer, StringIO):
        msg = "console does not render to a StringIO buffer"
        raise TypeError(msg)
    return buffer.getvalue()


def style_for_state(enabled: bool) -> str:
    """Theme style for a plugin's enabled/disabled state."""
    return _STATE_STYLES[bool(enabled)]
