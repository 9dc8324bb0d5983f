"""
CrawlFlow - Declarative job and task orchestration for data crawling

CrawlFlow runs jobs made of many independent tasks. A job definition lists
raw task descriptors, an optional task template shared by every task, a
store receiving the task outputs and hook configurations wrapping both the
job and each task in ``before`` / ``after`` / ``error`` phases.

Key Features:
    - Task template expansion with Jinja2 task ids and deep-merged defaults
    - Bounded asyncio worker pool with per-task failure isolation
    - Pluggable hooks resolved by name from a process-wide registry
    - Backend-agnostic stores (filesystem, memory) with streaming copy,
      gzip and gunzip operations

Modules:
    core: Configuration, logging and exceptions
    hooks: Hook registry, pipeline and built-in hooks
    jobs: Task expansion, scheduling and job execution
    storage: Store contract, backends and store operations
    tasks: Task handlers selected by task type
    cli: Command-line interface

Example:
    >>> from crawlflow import JobManager
    >>> manager = JobManager()
    >>> result = await manager.create({
    ...     "id": "dem",
    ...     "store": {"id": "dem-store", "type": "fs"},
    ...     "taskTemplate": {"id": "{{ jobId }}-{{ taskId }}.tif", "type": "http"},
    ...     "tasks": [{"id": "0-0", "options": {"url": "https://example.com/0-0"}}],
    ...     "hooks": {"tasks": {"error": {"clearOutputs": {}}}},
    ... })
"""

__version__ = "0.1.0"
__description__ = (
    "Declarative job and task orchestration engine for data crawling "
    "workflows, with pluggable lifecycle hooks and backend-agnostic stores."
)

from crawlflow.core.config.settings import Settings
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks import register_hook
from crawlflow.jobs import JobManager, JobResult
from crawlflow.storage import StoreManager

__all__ = [
    "JobManager",
    "JobResult",
    "Settings",
    "StoreManager",
    "get_logger",
    "register_hook",
]
