"""Process-wide failure logging.

A single bad interaction or a stray task must never take the host down:
uncaught exceptions and unretrieved task failures are logged, not raised.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from types import TracebackType
from typing import Any

logger = logging.getLogger(__name__)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    exc = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    if exc is not None:
        logger.error("Unhandled async failure: %s", message, exc_info=exc)
    else:
        logger.error("Unhandled async failure: %s", message)


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.error("Uncaught exception", exc_info=(exc_type, exc, tb))


def install_exception_handlers(loop: asyncio.AbstractEventLoop | None = None) -> None:
    """Route uncaught failures to the log instead of the default handlers.

    Installs an asyncio exception handler on *loop* (the running loop when
    omitted) and replaces ``sys.excepthook``.
    """
    target = loop or asyncio.get_running_loop()
    target.set_exception_handler(_log_loop_exception)
    sys.excepthook = _log_uncaught
