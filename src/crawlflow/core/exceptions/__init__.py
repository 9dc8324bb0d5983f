"""
CrawlFlow exception hierarchy
"""

from .custom_exceptions import (
    ConfigurationError,
    CrawlFlowError,
    DomainError,
    JobError,
    PhaseMismatchError,
    StorageError,
    ValidationError,
)

__all__ = [
    "CrawlFlowError",
    "ConfigurationError",
    "PhaseMismatchError",
    "ValidationError",
    "StorageError",
    "DomainError",
    "JobError",
]
