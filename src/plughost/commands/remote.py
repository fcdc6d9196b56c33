"""Command: list the live remote command table."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from plughost.commands._base import PlughostCommand

if TYPE_CHECKING:
    from plughost.commands._context import AppContext


@click.command(
    cls=PlughostCommand,
    examples="""\
  PLUGHOST_REGISTRY__TOKEN=... plughost remote
  plughost --json remote""",
)
@click.pass_obj
def remote(app: AppContext) -> None:
    """Fetch and list the commands currently registered remotely."""
    from plughost.services.inspect import InspectService

    app.emit(app.run(InspectService(app.settings).remote()))
