"""Structured logging setup.

Library modules only call ``structlog.get_logger()``; the CLI decides
verbosity once at startup through :func:`configure_logging`.
"""

import logging
import sys

import structlog


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog to write console-rendered events to stderr.

    Args:
        verbose: Emit DEBUG events when true, WARNING and above otherwise.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # sys.stderr is looked up per logger so redirected streams are honoured
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        # Don't cache - allows reconfiguration between CLI runs in one process
        cache_logger_on_first_use=False,
    )
