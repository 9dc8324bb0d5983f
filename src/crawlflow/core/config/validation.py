"""
Job and hook configuration validation for CrawlFlow.

This module validates the declarative job definitions submitted to the
engine before any hook runs. Validation is done with Pydantic models so
that malformed input fails early with field-level messages, while the
engine itself keeps operating on the original mutable mapping (hooks are
free to add or rewrite fields of the job definition).

Validation Scope:
    Job definition: ``id``, ``type``, ``options``, ``taskTemplate``,
        ``tasks`` and ``store``
    Hook configuration: ``jobs``/``tasks`` targets, ``before``/``after``/
        ``error`` phases, one options mapping per hook name
    Store definition: ``id``, ``type`` and backend ``options``

Configuration Formats:
    Job files can be authored in YAML or JSON:

    .. code-block:: yaml

        id: dem-grid
        options:
          workersLimit: 4
        store:
          id: job-store
          type: fs
          options:
            path: ./data
        taskTemplate:
          id: "{{ jobId }}-{{ taskId }}.tif"
          type: http
        tasks:
          - id: cell-0
            options:
              url: https://example.com/dem?bbox=0,0,1,1
        hooks:
          tasks:
            after:
              writeJson: {}

Error Mapping:
    - Malformed hook configuration raises ConfigurationError
    - Any other malformed job field raises ValidationError
    - Unreadable or unsupported job files raise ConfigurationError
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    ValidationError,
)

HOOK_TARGETS = ("jobs", "tasks")
HOOK_PHASES = ("before", "after", "error")


class HookTargetConfig(BaseModel):
    """Hooks of one target grouped by phase"""

    model_config = ConfigDict(extra="forbid")

    before: Dict[str, Optional[Dict[str, Any]]] = {}
    after: Dict[str, Optional[Dict[str, Any]]] = {}
    error: Dict[str, Optional[Dict[str, Any]]] = {}

    @field_validator("before", "after", "error", mode="before")
    @classmethod
    def default_empty_phase(cls, v):
        return {} if v is None else v


class HooksConfig(BaseModel):
    """Hook configuration schema for both targets"""

    model_config = ConfigDict(extra="forbid")

    jobs: HookTargetConfig = HookTargetConfig()
    tasks: HookTargetConfig = HookTargetConfig()

    @field_validator("jobs", "tasks", mode="before")
    @classmethod
    def default_empty_target(cls, v):
        return {} if v is None else v


class StoreConfig(BaseModel):
    """Store definition schema"""

    id: str
    type: Optional[str] = None
    options: Dict[str, Any] = {}

    @field_validator("id")
    @classmethod
    def validate_id_not_empty(cls, v):
        if not v:
            raise ValueError("store id cannot be empty")
        return v


class JobConfig(BaseModel):
    """Job definition schema"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: Optional[str] = None
    options: Dict[str, Any] = {}
    task_template: Optional[Dict[str, Any]] = Field(default=None, alias="taskTemplate")
    tasks: List[Dict[str, Any]] = []
    hooks: Dict[str, Any] = {}
    store: Optional[Union[str, StoreConfig]] = None

    @field_validator("id")
    @classmethod
    def validate_id_not_empty(cls, v):
        if not v:
            raise ValueError("job id cannot be empty")
        return v

    @field_validator("options", "hooks", mode="before")
    @classmethod
    def default_empty_mapping(cls, v):
        return {} if v is None else v

    @field_validator("tasks", mode="before")
    @classmethod
    def default_empty_tasks(cls, v):
        return [] if v is None else v

    @field_validator("options")
    @classmethod
    def validate_workers_limit(cls, v):
        limit = v.get("workersLimit")
        if limit is not None and (
            isinstance(limit, bool) or not isinstance(limit, int) or limit < 1
        ):
            raise ValueError("options.workersLimit must be a positive integer")
        return v


def validate_hooks(config: Optional[Dict[str, Any]]) -> HooksConfig:
    """Validate a declarative hook configuration"""
    try:
        return HooksConfig.model_validate(config or {})
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Hook configuration validation failed: {e}",
            error_code="HOOK_CONFIG_INVALID",
        ) from e


def validate_job(data: Dict[str, Any]) -> JobConfig:
    """Validate a job definition, including its hook configuration"""
    if not isinstance(data, dict):
        raise ValidationError(
            "Job definition must be a mapping",
            error_code="JOB_INVALID",
            details={"received": type(data).__name__},
        )

    try:
        job = JobConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Job validation failed: {e}",
            error_code="JOB_INVALID",
            details={"job_id": data.get("id")},
        ) from e

    validate_hooks(job.hooks)
    return job


def validate_store(data: Union[str, Dict[str, Any]]) -> StoreConfig:
    """Validate a store definition given as an id or a mapping"""
    if isinstance(data, str):
        data = {"id": data}
    try:
        return StoreConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Store validation failed: {e}", error_code="STORE_INVALID"
        ) from e


def load_job_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load a job definition from a YAML or JSON file"""
    path = Path(file_path)

    if not path.exists():
        raise ConfigurationError(f"Job file not found: {file_path}")

    suffix = path.suffix.lower()
    if suffix not in [".yaml", ".yml", ".json"]:
        raise ConfigurationError(f"Unsupported file format: {path.suffix}")

    try:
        with open(path, "r") as f:
            if suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load job file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Job file must contain a mapping: {file_path}")
    return data
