"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from plughost.output.console import create_console, get_output, style_for_state

if TYPE_CHECKING:
    from rich.console import Console

    from plughost.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult, summary: str = "") -> None:
    """Print the OK status line."""
    label = Text("OK", style="ph.ok")
    op = Text(f"  {result.op}", style="ph.op")
    if summary:
        console.print(label, op, Text(f"  {summary}", style="ph.key"))
    else:
        console.print(label, op)


def _render_warnings(console: Console, result: ServiceResult) -> None:
    for warning in result.warnings:
        console.print(Text("  ! ", style="ph.warning"), Text(warning))


def _state_text(enabled: bool) -> Text:
    return Text("enabled" if enabled else "disabled", style=style_for_state(enabled))


# ── Renderers ─────────────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"))
        console.print(Text(f"  {key}: ", style="ph.key"), Text(str(value)))


def _render_discover(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items: list[dict[str, Any]] = result.data.get("items", [])
    _status_line(console, result, f"{result.data.get('count', 0)} plugins")

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Name", style="ph.name")
    table.add_column("Kind")
    table.add_column("State")
    table.add_column("Version")
    if verbose:
        table.add_column("Entry", style="ph.path")

    for item in items:
        row: list[Any] = [
            item["name"],
            item["kind"],
            _state_text(item["enabled"]),
            item.get("version") or "-",
        ]
        if verbose:
            row.append(item["entry"])
        table.add_row(*row)

    if items:
        console.print(table)
    _render_warnings(console, result)


def _render_preview(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items: list[dict[str, Any]] = result.data.get("items", [])
    _status_line(console, result, f"{result.data.get('count', 0)} commands")

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Plugin", style="ph.name")
    table.add_column("State")
    table.add_column("Commands", style="ph.command")
    for item in items:
        table.add_row(
            item["name"],
            _state_text(item["enabled"]),
            ", ".join(item["commands"]) or "-",
        )

    if items:
        console.print(table)
    if verbose:
        console.print(json.dumps(result.data.get("commands", []), indent=2))
    _render_warnings(console, result)


def _render_remote(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items: list[dict[str, Any]] = result.data.get("items", [])
    _status_line(console, result, f"{result.data.get('count', 0)} commands")

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Command", style="ph.command")
    table.add_column("Description")
    for item in items:
        table.add_row(str(item["name"]), str(item.get("description", "")))

    if items:
        console.print(table)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    msg = result.error.message if result.error else "Unknown error"
    console.print(Text("ERROR", style="ph.error"), Text(f"  {result.op}: {msg}"))
    if verbose and result.error and result.error.detail:
        for key, value in result.error.detail.items():
            console.print(Text(f"  {key}: ", style="ph.key"), Text(str(value)))


_Renderer = Callable[..., None]

_OP_RENDERERS: dict[str, _Renderer] = {
    "discover": _render_discover,
    "preview": _render_preview,
    "remote": _render_remote,
}
