"""
Hook context and lifecycle vocabulary.

The hook context is the mutable record threaded by reference through a
hook chain. Hooks may read and write any of its fields, but each hook
checks ``context.type`` against the phases it supports and refuses to run
otherwise (``ensure_phase``).

Fields:
    type: Current phase (``before``, ``after`` or ``error``)
    data: The entity being processed, the job definition for job hooks and
        the task definition for task hooks
    result: Accumulator for hook outputs; for task chains the result of
        the task handler, for the job ``after`` chain the ordered list of
        task outcomes
    params: Runtime parameters such as the store (``store``), the store
        manager (``stores``) and the job definition (``job``)
    error: Failure recorded when a chain short-circuits, read by the
        ``error`` chain
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    CrawlFlowError,
    PhaseMismatchError,
)


class Phase(str, Enum):
    """When a hook runs relative to the core action"""

    BEFORE = "before"
    AFTER = "after"
    ERROR = "error"


class Target(str, Enum):
    """Which entity a hook chain is scoped to"""

    JOBS = "jobs"
    TASKS = "tasks"


@dataclass
class HookContext:
    """Mutable record passed through a hook chain"""

    type: Phase
    data: Dict[str, Any]
    result: Any = None
    params: Dict[str, Any] = field(default_factory=dict)
    error: Optional[CrawlFlowError] = None

    @property
    def id(self) -> Optional[str]:
        """Identifier of the processed entity"""
        return self.data.get("id")


def ensure_phase(context: HookContext, hook_name: str, *phases: Phase) -> None:
    """
    Check that a hook is invoked in one of its supported phases.

    Raises:
        PhaseMismatchError: If the context phase is not supported
    """
    if context.type not in phases:
        allowed = "/".join(phase.value for phase in phases)
        raise PhaseMismatchError(
            f"The '{hook_name}' hook should only be used as a '{allowed}' hook",
            details={
                "hook": hook_name,
                "phase": Phase(context.type).value,
                "allowed": [phase.value for phase in phases],
            },
        )


def get_store_from_context(
    context: HookContext, hook_name: str, store_id: Optional[str] = None
):
    """
    Resolve the store a hook should work with.

    A named store is looked up in the store manager from ``params.stores``,
    otherwise the store in ``params.store`` is used.

    Raises:
        ConfigurationError: If no store can be resolved
    """
    if store_id:
        stores = context.params.get("stores")
        if stores is None or store_id not in stores.stores:
            raise ConfigurationError(
                f"Can't find store {store_id} for the '{hook_name}' hook",
                error_code="STORE_REQUIRED",
                details={"hook": hook_name, "store_id": store_id},
            )
        return stores.stores[store_id]

    store = context.params.get("store")
    if store is None:
        raise ConfigurationError(
            f"You must provide a store for the '{hook_name}' hook",
            error_code="STORE_REQUIRED",
            details={"hook": hook_name},
        )
    return store
