"""Allow ``python -m plughost``."""

from plughost.cli import cli

cli()
