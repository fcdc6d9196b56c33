"""Click command classes carrying an on-demand ``--examples`` flag.

``--help`` stays short; ``plughost <command> --examples`` prints worked
invocations and exits before the command body runs.
"""

from __future__ import annotations

from typing import Any

import click

EXAMPLES_HINT = "Run with --examples for usage examples."


class _ExamplesPrinter:
    """Eager option callback bound to one command's example text."""

    def __init__(self, examples: str) -> None:
        self.examples = examples

    def __call__(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)


class _ExamplesMixin:
    """Shared ``examples=`` keyword handling for commands and groups."""

    params: list[click.Parameter]
    epilog: str | None

    def _init_examples(self, examples: str | None) -> None:
        self.examples = examples
        if not examples:
            return
        self.params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=_ExamplesPrinter(examples),
                help="Show usage examples.",
            )
        )
        if not self.epilog:
            self.epilog = EXAMPLES_HINT


class PlughostCommand(_ExamplesMixin, click.Command):
    """Command accepting ``examples=`` in its decorator."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class PlughostGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands default to :class:`PlughostCommand`."""

    command_class = PlughostCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)
