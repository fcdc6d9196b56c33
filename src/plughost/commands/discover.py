"""Command: list plugins found under the plugin root."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from plughost.commands._base import PlughostCommand

if TYPE_CHECKING:
    from plughost.commands._context import AppContext


@click.command(
    cls=PlughostCommand,
    examples="""\
  plughost discover
  plughost --plugin-dir ./bot/plugins discover
  plughost -v discover          # include entry module paths
  plughost --json discover""",
)
@click.pass_obj
def discover(app: AppContext) -> None:
    """List plugins under the plugin root without loading them."""
    from plughost.services.inspect import InspectService

    app.emit(InspectService(app.settings).discover())
