"""Rich/JSON output helpers.

The CLI renders ServiceResult for humans (Rich tables) or machines
(--json). The formatter layer adapts ServiceResult to the requested mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from plughost.output.renderers import render_result

if TYPE_CHECKING:
    from plughost.services.result import ServiceResult


class OutputSettings(BaseModel):
    """How a result should be rendered."""

    model_config = {"frozen": True}

    json_output: bool = False
    verbose: bool = False


def format_result(
    result: ServiceResult,
    *,
    settings: OutputSettings | None = None,
    json_output: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        settings: Output settings. Takes precedence over *json_output*.
        json_output: If True, return JSON; otherwise return human-readable text.
    """
    if settings is None:
        settings = OutputSettings(json_output=json_output)
    if settings.json_output:
        return result.model_dump_json(indent=2)
    return render_result(result, verbose=settings.verbose)
