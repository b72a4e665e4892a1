"""Structlog configuration.

Call ``setup_logging()`` once at process start. Modules obtain loggers with
``structlog.get_logger()`` and log snake_case event names with keyword context.
"""

import logging
import sys

import structlog

from core.config import settings


def _is_test_environment() -> bool:
    return "pytest" in sys.modules


def setup_logging(log_level: str | None = None, is_production: bool | None = None) -> None:
    """Configure structlog over the standard library logging module.

    Args:
        log_level: Override for ``settings.log_level``.
        is_production: Override for ``settings.is_production``; selects JSON
            output instead of the console renderer.
    """
    if _is_test_environment():
        logging.basicConfig(format="%(message)s", level=logging.CRITICAL + 1, force=True)
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        return

    prod_mode = settings.is_production if is_production is None else is_production

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if prod_mode:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level_name = (log_level or settings.log_level).upper()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
    )
