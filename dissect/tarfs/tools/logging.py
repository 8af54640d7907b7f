from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from dissect.tarfs.helpers.logging import TRACE_LEVEL


def custom_obj_renderer(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> dict[Any, str]:
    """Simple str() serialization for the event dict values for purely aesthetic reasons"""
    return {key: str(value) for key, value in event_dict.items()}


def render_stacktrace_only_in_debug_or_less(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> dict[Any, str]:
    """
    Render a stack trace of an exception only if `logger` is configured with `DEBUG` or lower level,
    otherwise render `str()` representation of an exception.
    """
    if event_dict.get("exc_info") and logger.getEffectiveLevel() > logging.DEBUG:
        event_dict.pop("exc_info")
        _, exc, _ = sys.exc_info()
        event_dict["exc"] = str(exc)
    return event_dict


def level_for(verbose_value: int, be_quiet: bool) -> int:
    """Map the ``-v`` count and ``-q`` flag of a tool onto a logging level."""
    if be_quiet:
        return logging.CRITICAL
    if verbose_value <= 0:
        return logging.WARNING
    if verbose_value == 1:
        return logging.INFO
    if verbose_value == 2:
        return logging.DEBUG
    return TRACE_LEVEL


def configure_logging(verbose_value: int, be_quiet: bool, as_plain_text: bool = True) -> None:
    """Configure logging level for `dissect` root logger.

    By default, if `verbose_value` is not set (equals 0) and `be_quiet` is False,
    set logging level for `dissect` root logger to `WARNING`. Every extra `-v` lowers
    the level one step, down to `TRACE`.

    If `be_quiet` is set to True, logging level is set to the least noisy `CRITICAL` level.
    """

    renderer = (
        structlog.dev.ConsoleRenderer(colors=True, pad_event=10)
        if as_plain_text
        else structlog.processors.JSONRenderer(sort_keys=True)
    )

    attr_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=(
            [
                # If log level is too low, abort pipeline and throw away log entry.
                structlog.stdlib.filter_by_level,
            ]
            + attr_processors
            + [
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                custom_obj_renderer,
                render_stacktrace_only_in_debug_or_less,
                # Wrapping is needed in order to use formatter down the line
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ]
        ),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.captureWarnings(True)

    logging.getLogger("dissect").setLevel(level_for(verbose_value, be_quiet))

    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=attr_processors)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    # set handler on a root logger
    logging.getLogger().handlers = [handler]
