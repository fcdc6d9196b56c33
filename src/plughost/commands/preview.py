"""Command: show the command table plugins would register."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from plughost.commands._base import PlughostCommand

if TYPE_CHECKING:
    from plughost.commands._context import AppContext


@click.command(
    cls=PlughostCommand,
    examples="""\
  plughost preview
  plughost -v preview           # include the full wire payload
  plughost --json preview""",
)
@click.pass_obj
def preview(app: AppContext) -> None:
    """Import plugins and preview their merged command table (no init, no upload)."""
    from plughost.services.inspect import InspectService

    app.emit(InspectService(app.settings).preview())
