"""
Job execution lifecycle.

A job runs through the following states::

    created -> running-before-hooks -> expanding-tasks -> running-tasks
            -> running-after-hooks -> completed

``errored`` is entered when a job hook phase fails (or task expansion is
rejected). Job hook failures are fatal: the job ``error`` hooks run and a
JobError naming the phase and the failing hook is raised. Task failures
are not: they are recorded as failed task outcomes and the job still
reaches ``completed``.

Runtime parameters shared by every hook context:
    stores: The StoreManager holding process-wide stores
    store: The job store, when the job defines one
    job: The job definition being executed
"""

import copy
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from crawlflow.core.config.validation import JobConfig, validate_job
from crawlflow.core.exceptions.custom_exceptions import (
    CrawlFlowError,
    JobError,
    ValidationError,
)
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks.context import HookContext, Phase, Target
from crawlflow.hooks.pipeline import HookChains, activate_hooks, run_error_chain
from crawlflow.jobs.scheduler import ProgressCallback, SchedulerFactory, TaskOutcome
from crawlflow.jobs.template import expand_tasks
from crawlflow.storage.base import BaseStore
from crawlflow.storage.manager import StoreManager


class JobState(str, Enum):
    """Lifecycle states of a job run"""

    CREATED = "created"
    RUNNING_BEFORE_HOOKS = "running-before-hooks"
    EXPANDING_TASKS = "expanding-tasks"
    RUNNING_TASKS = "running-tasks"
    RUNNING_AFTER_HOOKS = "running-after-hooks"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass
class JobRun:
    """State machine record of one job run"""

    job_id: str
    state: JobState = JobState.CREATED
    history: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self._record(self.state)

    def transition(self, state: JobState) -> None:
        self.state = state
        self._record(state)

    def _record(self, state: JobState) -> None:
        self.history.append(
            {
                "state": state.value,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )


@dataclass
class JobResult:
    """Result of a completed job"""

    job_id: str
    state: JobState
    tasks: List[TaskOutcome]
    result: Any = None
    history: List[Dict[str, Any]] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """True when every task succeeded"""
        return all(outcome.success for outcome in self.tasks)

    @property
    def failed_tasks(self) -> List[TaskOutcome]:
        return [outcome for outcome in self.tasks if not outcome.success]

    def to_dict(self) -> Dict[str, Any]:
        result = self.result
        if isinstance(result, list) and all(
            isinstance(item, TaskOutcome) for item in result
        ):
            result = [item.to_dict() for item in result]
        return {
            "job_id": self.job_id,
            "state": self.state.value,
            "success": self.success,
            "tasks": [outcome.to_dict() for outcome in self.tasks],
            "result": result,
            "history": self.history,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class JobExecutor:
    """
    Run a job definition end to end.

    The workers limit of a run is, by priority, the executor's own limit,
    the job ``options.workersLimit`` and finally ``settings.WORKERS_LIMIT``.
    """

    def __init__(
        self,
        store_manager: Optional[StoreManager] = None,
        workers_limit: Optional[int] = None,
    ):
        self.store_manager = store_manager or StoreManager()
        self.workers_limit = workers_limit
        self.logger = get_logger(__name__)

    async def execute(
        self,
        data: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> JobResult:
        """
        Execute a job definition.

        Raises:
            ValidationError: If the job or its tasks are malformed
            ConfigurationError: If hooks, stores or the job type are unknown
            JobError: If a job hook phase fails
        """
        config = validate_job(data)
        job = copy.deepcopy(data)
        run = JobRun(job_id=config.id)
        logger = self.logger.bind(job_id=config.id)
        start_time = time.time()

        job_chains = activate_hooks(config.hooks, Target.JOBS)
        task_chains = activate_hooks(config.hooks, Target.TASKS)
        workers_limit = self.workers_limit
        if workers_limit is None:
            workers_limit = config.options.get("workersLimit")
        scheduler = SchedulerFactory.create(config.type, workers_limit)

        job_params = dict(params or {})
        job_params.setdefault("stores", self.store_manager)
        job_params["job"] = job
        store = await self._resolve_store(config)
        if store is not None:
            job_params["store"] = store

        logger.info("Starting job", tasks=len(config.tasks))
        context = HookContext(type=Phase.BEFORE, data=job, params=job_params)

        run.transition(JobState.RUNNING_BEFORE_HOOKS)
        context = await self._run_job_phase(run, job_chains, Phase.BEFORE, context)

        run.transition(JobState.EXPANDING_TASKS)
        try:
            tasks = expand_tasks(
                config.id, context.data.get("taskTemplate"), context.data.get("tasks")
            )
        except ValidationError:
            run.transition(JobState.ERRORED)
            logger.error("Task expansion failed")
            raise

        run.transition(JobState.RUNNING_TASKS)
        outcomes = await scheduler.run(tasks, task_chains, job_params, progress)

        run.transition(JobState.RUNNING_AFTER_HOOKS)
        context.result = outcomes
        context = await self._run_job_phase(run, job_chains, Phase.AFTER, context)

        run.transition(JobState.COMPLETED)
        duration = time.time() - start_time
        failed = sum(1 for outcome in outcomes if not outcome.success)
        logger.info(
            f"Job completed in {duration:.2f}s",
            tasks=len(outcomes),
            failed=failed,
        )

        return JobResult(
            job_id=config.id,
            state=run.state,
            tasks=outcomes,
            result=context.result,
            history=run.history,
            duration_seconds=duration,
        )

    async def _resolve_store(self, config: JobConfig) -> Optional[BaseStore]:
        if config.store is None:
            return None
        if isinstance(config.store, str):
            return await self.store_manager.get_or_create(config.store)
        return await self.store_manager.get_or_create(
            config.store.id, config.store.type, config.store.options
        )

    async def _run_job_phase(
        self,
        run: JobRun,
        chains: HookChains,
        phase: Phase,
        context: HookContext,
    ) -> HookContext:
        try:
            return await chains.run(phase, context)
        except CrawlFlowError as e:
            self.logger.error(
                f"Job {phase.value} hooks failed: {e}",
                job_id=run.job_id,
                hook=e.details.get("hook"),
            )
            await run_error_chain(chains, context, e)
            run.transition(JobState.ERRORED)
            raise JobError(
                f"Job {run.job_id} failed in {phase.value} hooks: {e.message}",
                error_code="JOB_FAILED",
                details={
                    "job_id": run.job_id,
                    "phase": phase.value,
                    "hook": e.details.get("hook"),
                    "error": e.to_dict(),
                },
            ) from e
