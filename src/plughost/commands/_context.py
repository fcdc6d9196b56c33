"""Per-invocation state shared by every plughost command.

The root group builds one :class:`AppContext` and subcommands receive it
through ``@click.pass_obj``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, TypeVar

import click

from plughost.config.logging import configure_logging
from plughost.output.formatters import OutputSettings, format_result
from plughost.runtime import install_exception_handlers

if TYPE_CHECKING:
    from plughost.config.settings import PlughostSettings
    from plughost.services.result import ServiceResult

T = TypeVar("T")


class AppContext:
    """Settings, logging, and result emission for one CLI run."""

    def __init__(self, settings: PlughostSettings) -> None:
        self.settings = settings
        self.output = OutputSettings(
            json_output=settings.json_output,
            verbose=settings.verbose,
        )
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run an async service call on a fresh loop with failure logging installed."""

        async def _guarded() -> T:
            install_exception_handlers()
            return await coro

        return asyncio.run(_guarded())

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; failures go to stderr and end the process with status 1."""
        text = format_result(result, settings=self.output)
        click.echo(text, err=not result.ok)
        if not result.ok:
            raise SystemExit(1)
