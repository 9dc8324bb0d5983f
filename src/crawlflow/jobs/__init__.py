"""
CrawlFlow Jobs Module - Job execution engine.

Components:
    - template: Task template expansion
    - scheduler: Bounded worker pool running task pipelines
    - executor: Job lifecycle state machine
    - manager: Job submission and removal
"""

from .executor import JobExecutor, JobResult, JobRun, JobState
from .manager import JobManager
from .scheduler import (
    BaseScheduler,
    SchedulerFactory,
    TaskOutcome,
    TaskScheduler,
)
from .template import deep_merge, expand_tasks

__all__ = [
    "BaseScheduler",
    "JobExecutor",
    "JobManager",
    "JobResult",
    "JobRun",
    "JobState",
    "SchedulerFactory",
    "TaskOutcome",
    "TaskScheduler",
    "deep_merge",
    "expand_tasks",
]
