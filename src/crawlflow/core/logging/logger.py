"""
Structured logging configuration for CrawlFlow.

Jobs bind their ``job_id`` and task pipelines their ``task_id`` on the
loggers returned by ``get_logger``, so every line emitted while a job runs
can be traced back to it.

Settings used:
    - LOG_LEVEL: Minimum level, overridable per call of setup_logging()
    - LOG_FORMAT: ``json`` renders one JSON object per line
    - LOG_FILE_PATH: Optional file receiving a copy of every line
    - DEBUG / ENVIRONMENT: Rich console output in development

Example:
    >>> from crawlflow.core.logging.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Job started", job_id="dem-grid", tasks=128)
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

from crawlflow.core.config.settings import settings


def _handlers() -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if settings.DEBUG or settings.ENVIRONMENT == "development":
        handlers.append(
            RichHandler(
                console=Console(stderr=True),
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
        )
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    if settings.LOG_FILE_PATH:
        file_path = Path(settings.LOG_FILE_PATH)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    return handlers


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and the root logger.

    Calling it again replaces the previous configuration, which is how the
    CLI switches to DEBUG with ``--verbose``.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_FORMAT.lower() == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        handlers=_handlers(),
        format="%(message)s",
        force=True,
    )
    # Request lines from the http task type are too chatty below WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger, typically ``get_logger(__name__)``"""
    if not structlog.is_configured():
        setup_logging()
    return structlog.get_logger(name)


# Setup logging on import
setup_logging()
