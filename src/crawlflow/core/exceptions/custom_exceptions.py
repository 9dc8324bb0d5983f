"""
Custom exception hierarchy for CrawlFlow error handling.

This module defines the structured exceptions raised by the orchestration
engine. Each exception carries a human-readable message, a machine-readable
error code and a details dictionary, so failures can be logged, reported to
the caller and attributed to the phase, hook or task where they happened.

Exception Hierarchy:
    CrawlFlowError (base)
    ├── ConfigurationError: Unknown hooks, malformed hook configuration,
    │                       unknown store or job types
    ├── PhaseMismatchError: Hook invoked outside of its declared phase
    ├── ValidationError: Malformed job or task input
    ├── StorageError: Store backend I/O failures and registry conflicts
    ├── DomainError: Failure raised by a pluggable hook's own logic
    └── JobError: Job-level failure in the job before/after hook chains

Propagation:
    - Inside a hook chain any error short-circuits the chain and is recorded
      on the hook context before the error chain runs.
    - Task failures are isolated and recorded as task outcomes.
    - Job-level hook failures surface to the caller as JobError.
    - Job and store cleanup swallow StorageError after logging it.

Example:
    >>> try:
    ...     await manager.create(job)
    ... except JobError as e:
    ...     logger.error("Job failed",
    ...                  error_code=e.error_code,
    ...                  phase=e.details.get("phase"),
    ...                  hook=e.details.get("hook"))
    >>>
    >>> raise StorageError(
    ...     "Cannot find store",
    ...     error_code="STORE_NOT_FOUND",
    ...     details={"store_id": "job-store"}
    ... )
"""

from typing import Any, Dict, Optional


class CrawlFlowError(Exception):
    """
    Base exception class for all CrawlFlow errors.

    Attributes:
        message (str): Human-readable error description
        error_code (str): Machine-readable error identifier, defaults to
            the class name
        details (Dict[str, Any]): Additional contextual information such as
            the hook name, phase, task id or store id involved

    Example:
        >>> raise CrawlFlowError(
        ...     "Store backend unavailable",
        ...     error_code="STORE_UNAVAILABLE",
        ...     details={"store_id": "s3"}
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigurationError(CrawlFlowError):
    """
    Raised when configuration is invalid or refers to unknown components.

    Common scenarios:
        - A hook name that is not registered in the hook registry
        - A hook configuration with an unknown target or phase
        - Hook options that are not a mapping
        - An unknown store type or job type
        - A hook that requires a store (or a filesystem path) that is absent

    Example:
        >>> raise ConfigurationError(
        ...     "Unknown hook: writeParquet",
        ...     error_code="HOOK_NOT_FOUND",
        ...     details={"hook": "writeParquet"}
        ... )
    """

    pass


class PhaseMismatchError(CrawlFlowError):
    """
    Raised when a hook is invoked with a context of the wrong phase.

    This is a contract violation of the hook configuration (e.g. a hook
    that only makes sense as an ``after`` hook declared under ``before``),
    never a transient condition.
    """

    pass


class ValidationError(CrawlFlowError):
    """Raised when job or task input is malformed"""

    pass


class StorageError(CrawlFlowError):
    """
    Raised when a store operation fails.

    Covers backend I/O failures (missing keys, unreadable files, keys that
    escape the store root) as well as store registry failures such as
    creating a store whose id is already registered or looking up an
    unknown store id.
    """

    pass


class DomainError(CrawlFlowError):
    """Raised when a hook or task handler fails in its own logic"""

    pass


class JobError(CrawlFlowError):
    """Raised when a job fails in its job-level before or after hooks"""

    pass
