"""
Core configuration management for CrawlFlow.

This module provides centralized configuration management using Pydantic
settings with support for environment variables, type validation and
defaults for every tunable of the orchestration engine.

Classes:
    Settings: Main configuration class with all application settings

Environment Variables:
    Application settings can be overridden using environment variables with
    the same names as the class attributes (case-sensitive), or through a
    ``.env`` file in the working directory.

Example:
    >>> from crawlflow.core.config.settings import Settings
    >>> settings = Settings()
    >>> print(settings.WORKERS_LIMIT)
    4

Configuration Sections:
    - Application: Basic app configuration (name, version, environment)
    - Engine: Worker pool size and default job type
    - Storage: Default data directory for filesystem stores
    - HTTP: Timeout used by the HTTP task handler
    - Logging: Application logging configuration
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Attributes:
        APP_NAME: Application name identifier
        APP_VERSION: Current application version
        ENVIRONMENT: Deployment environment (development/testing/production)
        DEBUG: Enable debug mode with Rich console logging

        WORKERS_LIMIT: Default number of task pipelines run concurrently
            when a job does not set ``options.workersLimit``
        DEFAULT_JOB_TYPE: Scheduler strategy used when a job has no ``type``

        DATA_DIR: Base directory for filesystem stores created without a path

        HTTP_TIMEOUT: Timeout in seconds for HTTP task requests

        LOG_LEVEL: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        LOG_FORMAT: Log format (json/text)
        LOG_FILE_PATH: Path for log file output (optional)

    Example:
        >>> settings = Settings(WORKERS_LIMIT=8)
        >>> print(f"Workers: {settings.WORKERS_LIMIT}")
    """

    # Application
    APP_NAME: str = "CrawlFlow"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Engine
    WORKERS_LIMIT: int = 4
    DEFAULT_JOB_TYPE: str = "async"

    # Storage
    DATA_DIR: str = "./data"

    # HTTP
    HTTP_TIMEOUT: float = 30.0

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"
    LOG_FILE_PATH: Optional[str] = None

    @field_validator("WORKERS_LIMIT")
    @classmethod
    def validate_workers_limit(cls, v: int) -> int:
        """
        Validate the worker pool size.

        Raises:
            ValueError: If the limit is lower than one
        """
        if v < 1:
            raise ValueError("WORKERS_LIMIT must be at least 1")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate logging level is a supported value.

        Ensures the log level is one of the standard Python logging
        levels. Converts to uppercase for consistency.

        Raises:
            ValueError: If log level is not supported
        """
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
