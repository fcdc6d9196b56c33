"""Root CLI group for plughost with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from plughost import __version__
from plughost.commands import register_commands
from plughost.commands._base import PlughostGroup
from plughost.commands._context import AppContext
from plughost.config.settings import PlughostSettings


@click.group(cls=PlughostGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="plughost")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--plugin-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Override the plugin root directory.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    plugin_dir: Path | None,
) -> None:
    """plughost — inspect bot plugins and their registered commands."""
    ctx.ensure_object(dict)
    flags: dict[str, object] = {
        "json_output": json_output,
        "verbose": verbose,
        "log_json": log_json,
    }
    if plugin_dir is not None:
        flags["plugin_dir"] = plugin_dir
    settings = PlughostSettings.from_cli(config_path=config_path, **flags)
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
