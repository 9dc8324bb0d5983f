"""
CrawlFlow Logging Module - Structured Application Logging.

Structured logging built on structlog, with Rich console output during
development and JSON output for log aggregation in production.

Example:
    >>> from crawlflow.core.logging import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info("Store created", store_id="job-store", type="fs")
    >>>
    >>> # Bind persistent context for a job run
    >>> job_logger = logger.bind(job_id="dem-grid")
    >>> job_logger.info("Tasks expanded", tasks=128)
"""

from .logger import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
