"""
Task handlers: the domain step of a task pipeline.

A task's ``type`` selects the handler that performs its core action (for
instance downloading a resource into the task store) between the task
``before`` and ``after`` hook chains. Tasks without a ``type`` have no
domain step; their result is ``{"id": <task id>}`` and their hooks do all
the work.

Example:
    >>> class EchoHandler(BaseTaskHandler):
    ...     async def run(self, task, store, params):
    ...         return {"id": task["id"], "data": task.get("options")}
    >>>
    >>> TaskHandlerFactory.register("echo", EchoHandler)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from crawlflow.core.exceptions.custom_exceptions import ConfigurationError
from crawlflow.core.logging.logger import get_logger
from crawlflow.storage.base import BaseStore


class BaseTaskHandler(ABC):
    """
    Abstract base class for task handlers.

    Handlers receive the task definition (after its ``before`` hooks ran),
    the store resolved for the task (or None) and the runtime parameters,
    and return the task result, conventionally a mapping with the task
    ``id``. Failures should be raised as CrawlFlowError subclasses; any
    other exception is reported as a DomainError.
    """

    def __init__(self):
        self.name = self.__class__.__name__
        self.logger = get_logger(f"{__name__}.{self.name}")

    @abstractmethod
    async def run(
        self,
        task: Dict[str, Any],
        store: Optional[BaseStore],
        params: Dict[str, Any],
    ) -> Any:
        """Perform the task's core action and return its result"""
        pass


class TaskHandlerFactory:
    """
    Factory mapping task types to handler classes.

    Duplicate names overwrite previous registrations.
    """

    _handlers: Dict[str, type] = {}

    @classmethod
    def register(cls, name: str, handler_class: type):
        """Register a handler class for a task type"""
        cls._handlers[name] = handler_class

    @classmethod
    def create(cls, task_type: str) -> BaseTaskHandler:
        """
        Create the handler of a task type.

        Raises:
            ConfigurationError: If the task type is unknown
        """
        if task_type not in cls._handlers:
            raise ConfigurationError(
                f"Unknown task type: {task_type}",
                error_code="TASK_TYPE_NOT_FOUND",
                details={"task_type": task_type},
            )
        return cls._handlers[task_type]()

    @classmethod
    def list_handlers(cls) -> List[str]:
        """List all registered task types"""
        return list(cls._handlers.keys())
