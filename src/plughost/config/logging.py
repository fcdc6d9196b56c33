"""structlog setup for the host and the CLI.

All plughost modules log through stdlib ``logging.getLogger(__name__)``;
this module routes those records through structlog's ProcessorFormatter
to stderr, rendered either for a console or as JSON lines (``--log-json``).
"""

from __future__ import annotations

import logging
import sys

import structlog

HOST_LOGGER = "plughost"

# Chatty third-party loggers kept at WARNING regardless of verbosity.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _processor_chain(log_json: bool) -> list[structlog.types.Processor]:
    chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_json:
        chain.append(structlog.processors.format_exc_info)
    return chain


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install a single stderr handler and set logger levels.

    Args:
        verbose: Log plughost at DEBUG instead of INFO. INFO is the floor
            so lifecycle events (loaded, enabled, disabled) stay visible
            in a long-running host.
        log_json: Emit JSON lines instead of console output.
    """
    chain = _processor_chain(log_json)

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)

    logging.getLogger(HOST_LOGGER).setLevel(logging.DEBUG if verbose else logging.INFO)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
