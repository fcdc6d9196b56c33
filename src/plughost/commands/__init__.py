"""Subcommand modules for plughost.

Provides register_commands() which uses deferred imports to keep
``plughost --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from plughost.commands.discover import discover
    from plughost.commands.preview import preview
    from plughost.commands.remote import remote

    cli.add_command(discover)
    cli.add_command(preview)
    cli.add_command(remote)
