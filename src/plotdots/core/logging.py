"""structlog setup for applications and batch jobs that run plotdots.

Importing plotdots leaves logging untouched; engine modules only obtain
loggers with structlog.get_logger(__name__). A host program opts in by
calling configure_logging() before its first SPC run.
"""

import logging
import sys

import structlog

from plotdots.core.config import get_settings

# Applied to structlog events and to records from stdlib loggers alike
_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """Send plotdots events (and stdlib records) to stderr through structlog.

    Replaces any handlers already on the root logger.

    Args:
        log_format: "json" for one JSON object per line, anything else for
            coloured console output. Falls back to PLOTDOTS_LOG_FORMAT.
        log_level: Root logger level name; unknown names mean INFO. Falls
            back to PLOTDOTS_LOG_LEVEL.
    """
    settings = get_settings()
    log_format = log_format or settings.log_format
    log_level = log_level or settings.log_level

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_format),
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
