"""
Structured logging configuration using structlog.

One JSON line per event by default; every line emitted while a message is being
processed carries its message_id (see bind_context).
"""

import logging
import sys

import structlog

from sender_stats.config import settings

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("googleapiclient.discovery_cache", "googleapiclient.discovery", "google_auth_oauthlib")


def configure_logging(log_level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structured logging for the job.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Uses settings if not provided.
        json_output: JSON lines if True, colored console output if False. Uses settings if not provided.
    """
    log_level = (log_level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.log_json

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level),
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, getattr(logging, log_level)))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output:
        renderer_chain = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=[*shared_processors, *renderer_chain],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Structured logger for a module (pass __name__)."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach key/value pairs to every log line in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything attached with bind_context."""
    structlog.contextvars.clear_contextvars()
