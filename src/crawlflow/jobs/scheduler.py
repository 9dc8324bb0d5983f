"""
Task scheduling: run task pipelines through a bounded worker pool.

Each task runs its own pipeline::

    before hooks -> task handler (selected by task type) -> after hooks

and any failure on the way runs the task ``error`` hooks. Pipelines are
isolated from each other: a failing task is recorded as a failed outcome
and never cancels its siblings.

Concurrency:
    ``min(workers_limit, len(tasks))`` worker coroutines pull tasks, in
    expansion order, from one shared iterator. At most ``workers_limit``
    pipelines are in flight at any time and pending tasks are never
    materialised as coroutines ahead of a free worker.

Example:
    >>> scheduler = TaskScheduler(workers_limit=4)
    >>> outcomes = await scheduler.run(tasks, chains, {"store": store})
    >>> failed = [outcome.id for outcome in outcomes if not outcome.success]
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from crawlflow.core.config.settings import settings
from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    CrawlFlowError,
    DomainError,
)
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks.context import HookContext, Phase
from crawlflow.hooks.pipeline import HookChains, run_error_chain
from crawlflow.storage.base import BaseStore
from crawlflow.tasks.base import TaskHandlerFactory

ProgressCallback = Callable[["TaskOutcome"], None]


@dataclass
class TaskOutcome:
    """Terminal state of one task pipeline"""

    id: Any
    success: bool
    result: Any = None
    error: Optional[CrawlFlowError] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "success": self.success,
            "result": self.result,
            "error": self.error.to_dict() if self.error else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class BaseScheduler(ABC):
    """Abstract base class for task scheduling strategies"""

    def __init__(self, workers_limit: Optional[int] = None):
        if workers_limit is None:
            workers_limit = settings.WORKERS_LIMIT
        self.workers_limit = workers_limit
        if self.workers_limit < 1:
            raise ConfigurationError(
                f"workersLimit must be at least 1, got {self.workers_limit}",
                error_code="WORKERS_LIMIT_INVALID",
                details={"workers_limit": self.workers_limit},
            )
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def run(
        self,
        tasks: List[Dict[str, Any]],
        chains: HookChains,
        params: Dict[str, Any],
        progress: Optional[ProgressCallback] = None,
    ) -> List[TaskOutcome]:
        """Run every task and return their outcomes in task order"""
        pass


class TaskScheduler(BaseScheduler):
    """Asyncio scheduler running task pipelines in a bounded worker pool"""

    def __init__(self, workers_limit: Optional[int] = None):
        super().__init__(workers_limit)
        self.in_flight = 0
        self.max_in_flight = 0

    async def run(
        self,
        tasks: List[Dict[str, Any]],
        chains: HookChains,
        params: Dict[str, Any],
        progress: Optional[ProgressCallback] = None,
    ) -> List[TaskOutcome]:
        if not tasks:
            self.logger.info("No tasks to run")
            return []

        outcomes: List[Optional[TaskOutcome]] = [None] * len(tasks)
        pending: Iterator[Tuple[int, Dict[str, Any]]] = iter(enumerate(tasks))

        async def worker() -> None:
            for index, task in pending:
                self.in_flight += 1
                self.max_in_flight = max(self.max_in_flight, self.in_flight)
                try:
                    outcome = await self._run_task(task, chains, params)
                finally:
                    self.in_flight -= 1
                outcomes[index] = outcome
                if progress is not None:
                    self._report(progress, outcome)

        workers_count = min(self.workers_limit, len(tasks))
        self.logger.info(
            f"Running {len(tasks)} tasks with {workers_count} workers"
        )
        await asyncio.gather(*(worker() for _ in range(workers_count)))

        successful = sum(1 for outcome in outcomes if outcome.success)
        self.logger.info(f"Tasks completed: {successful}/{len(tasks)} successful")
        return outcomes

    async def _run_task(
        self, task: Dict[str, Any], chains: HookChains, params: Dict[str, Any]
    ) -> TaskOutcome:
        logger = self.logger.bind(task_id=task.get("id"))
        start_time = time.time()
        task_params = dict(params)
        context = HookContext(type=Phase.BEFORE, data=task, params=task_params)

        try:
            task_params["store"] = await self._resolve_store(task, params)
            context = await chains.run(Phase.BEFORE, context)
            context.result = await self._handle(context.data, task_params)
            context = await chains.run(Phase.AFTER, context)
        except Exception as e:
            error = self._normalize_error(e)
            logger.warning(f"Task failed: {error}", error_code=error.error_code)
            context = await run_error_chain(chains, context, error)
            return TaskOutcome(
                id=task.get("id"),
                success=False,
                result=context.result,
                error=error,
                duration_seconds=time.time() - start_time,
            )

        logger.debug("Task completed")
        return TaskOutcome(
            id=task.get("id"),
            success=True,
            result=context.result,
            duration_seconds=time.time() - start_time,
        )

    def _report(self, progress: ProgressCallback, outcome: TaskOutcome) -> None:
        # Progress reporting never fails the run
        try:
            progress(outcome)
        except Exception as e:
            self.logger.warning(
                f"Progress callback failed: {e}", task_id=outcome.id
            )

    async def _resolve_store(
        self, task: Dict[str, Any], params: Dict[str, Any]
    ) -> Optional[BaseStore]:
        store_id = task.get("store")
        if store_id is None:
            return params.get("store")

        stores = params.get("stores")
        if stores is None:
            raise ConfigurationError(
                f"Task {task.get('id')} names store {store_id} "
                f"but no store manager is available",
                error_code="STORE_REQUIRED",
                details={"task_id": task.get("id"), "store_id": store_id},
            )
        return await stores.get(store_id)

    async def _handle(self, task: Dict[str, Any], params: Dict[str, Any]) -> Any:
        task_type = task.get("type")
        if task_type is None:
            return {"id": task.get("id")}

        handler = TaskHandlerFactory.create(task_type)
        return await handler.run(task, params.get("store"), params)

    @staticmethod
    def _normalize_error(error: Exception) -> CrawlFlowError:
        if isinstance(error, CrawlFlowError):
            return error
        normalized = DomainError(str(error) or error.__class__.__name__)
        normalized.details["exception"] = error.__class__.__name__
        return normalized


class SchedulerFactory:
    """Factory mapping job types to scheduler classes"""

    _schedulers: Dict[str, type] = {}

    @classmethod
    def register(cls, name: str, scheduler_class: type):
        """Register a scheduler class for a job type"""
        cls._schedulers[name] = scheduler_class

    @classmethod
    def create(
        cls, job_type: Optional[str], workers_limit: Optional[int] = None
    ) -> BaseScheduler:
        """
        Create the scheduler of a job type.

        Raises:
            ConfigurationError: If the job type is unknown
        """
        job_type = job_type or settings.DEFAULT_JOB_TYPE
        if job_type not in cls._schedulers:
            raise ConfigurationError(
                f"Unknown job type: {job_type}",
                error_code="JOB_TYPE_NOT_FOUND",
                details={"job_type": job_type},
            )
        return cls._schedulers[job_type](workers_limit)

    @classmethod
    def list_schedulers(cls) -> List[str]:
        """List all registered job types"""
        return list(cls._schedulers.keys())


SchedulerFactory.register("async", TaskScheduler)
