"""structlog setup for the Identity API."""

import logging
import os
import sys

import structlog

_TRUTHY = frozenset({"1", "true", "yes"})


def _wants_console_output() -> bool:
    # FORCE_COLOR lets containers without a TTY keep the readable renderer
    if os.environ.get("FORCE_COLOR", "").lower() in _TRUTHY:
        return True
    return sys.stdout.isatty()


def configure_logging(debug: bool = False) -> None:
    """Install structlog processors for the running process.

    Interactive terminals get the coloured console renderer. Everything
    else gets one JSON object per line so log shippers can parse probe
    events (``identity_registered``, ``notification_failed`` and so on)
    by key.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if _wants_console_output():
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend(
            [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
