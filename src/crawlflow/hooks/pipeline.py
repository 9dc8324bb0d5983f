"""
Hook pipeline: compile hook configurations into executable phase chains.

A hook configuration declares, per target (``jobs`` or ``tasks``) and per
phase (``before``, ``after``, ``error``), an ordered mapping of hook name to
hook options::

    {
        "jobs": {
            "before": {"basicAuth": {"type": "Proxy-Authorization"}},
            "after": {"clearOutputs": {}},
        },
        "tasks": {
            "after": {"writeJson": {}},
            "error": {"clearData": {}},
        },
    }

``activate_hooks`` resolves every entry through the hook registry, in
declaration order, and returns the ``HookChains`` of one target.
``run_phase`` then executes a chain strictly sequentially: hook N+1 starts
only once hook N, and any I/O it awaits, has completed, because later hooks
commonly read what earlier ones wrote into the context.

Failure Handling:
    The first failing hook short-circuits its chain. The failure is
    normalised into a CrawlFlowError (foreign exceptions become
    DomainError), annotated with the hook name and phase, recorded on
    ``context.error`` and raised. Callers hand it to ``run_error_chain``,
    which runs the target's ``error`` chain when one is configured.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from crawlflow.core.config.validation import HooksConfig, validate_hooks
from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    CrawlFlowError,
    DomainError,
)
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks.context import HookContext, Phase, Target
from crawlflow.hooks.registry import HookFunction, lookup_hook

logger = get_logger(__name__)


@dataclass
class BoundHook:
    """A hook function bound to its name, phase and options"""

    name: str
    phase: Phase
    options: Dict[str, Any]
    function: HookFunction

    async def __call__(self, context: HookContext) -> HookContext:
        """
        Run the hook.

        Sync and async hook functions are both supported. A hook returning a
        HookContext replaces the context, returning None keeps it, and any
        other value becomes the context result.
        """
        value = self.function(context)
        if inspect.isawaitable(value):
            value = await value
        if isinstance(value, HookContext):
            return value
        if value is not None:
            context.result = value
        return context


@dataclass
class HookChains:
    """Ordered hook chains of one target"""

    target: Target
    before: List[BoundHook] = field(default_factory=list)
    after: List[BoundHook] = field(default_factory=list)
    error: List[BoundHook] = field(default_factory=list)

    def chain(self, phase: Phase) -> List[BoundHook]:
        return getattr(self, Phase(phase).value)

    async def run(self, phase: Phase, context: HookContext) -> HookContext:
        """Switch the context to a phase and run that phase's chain"""
        context.type = Phase(phase)
        return await run_phase(self.chain(phase), context)

    def names(self, phase: Phase) -> List[str]:
        return [hook.name for hook in self.chain(phase)]


def activate_hooks(
    config: Union[HooksConfig, Dict[str, Any], None], target: Union[Target, str]
) -> HookChains:
    """
    Compile the hook configuration of one target into hook chains.

    Raises:
        ConfigurationError: If the configuration is malformed, a hook name
            is unknown or a hook factory rejects its options
    """
    try:
        target = Target(target)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown hook target: {target}",
            error_code="HOOK_CONFIG_INVALID",
            details={"target": str(target)},
        ) from e

    if not isinstance(config, HooksConfig):
        config = validate_hooks(config)

    target_config = getattr(config, target.value)
    chains = HookChains(target=target)

    for phase in Phase:
        for name, options in getattr(target_config, phase.value).items():
            factory = lookup_hook(name)
            options = dict(options or {})
            try:
                function = factory(options)
            except CrawlFlowError:
                raise
            except Exception as e:
                raise ConfigurationError(
                    f"Failed to activate hook {name}: {e}",
                    error_code="HOOK_ACTIVATION_FAILED",
                    details={"hook": name, "phase": phase.value},
                ) from e

            if not callable(function):
                raise ConfigurationError(
                    f"Hook factory for {name} did not return a function",
                    error_code="HOOK_ACTIVATION_FAILED",
                    details={"hook": name, "phase": phase.value},
                )
            chains.chain(phase).append(BoundHook(name, phase, options, function))

    logger.debug(
        f"Activated {target.value} hooks",
        before=chains.names(Phase.BEFORE),
        after=chains.names(Phase.AFTER),
        error=chains.names(Phase.ERROR),
    )
    return chains


def _annotate(error: CrawlFlowError, hook: BoundHook) -> CrawlFlowError:
    error.details.setdefault("hook", hook.name)
    error.details.setdefault("phase", hook.phase.value)
    return error


async def run_phase(chain: List[BoundHook], context: HookContext) -> HookContext:
    """
    Run a hook chain sequentially.

    Raises:
        CrawlFlowError: The failure of the first failing hook, also recorded
            on ``context.error``
    """
    for hook in chain:
        try:
            context = await hook(context)
        except CrawlFlowError as e:
            context.error = _annotate(e, hook)
            raise
        except Exception as e:
            error = _annotate(
                DomainError(str(e) or e.__class__.__name__), hook
            )
            error.details["exception"] = e.__class__.__name__
            context.error = error
            raise error from e
    return context


async def run_error_chain(
    chains: HookChains, context: HookContext, error: CrawlFlowError
) -> HookContext:
    """
    Run the error chain of a target after a failure.

    The failure stays recorded on ``context.error`` for the error hooks to
    read. A failure inside the error chain itself is logged and attached to
    the original failure details; the original failure remains the one
    reported. Nothing runs when the target has no error chain.
    """
    context.error = error
    if not chains.error:
        return context

    context.type = Phase.ERROR
    try:
        context = await run_phase(chains.error, context)
    except CrawlFlowError as chain_error:
        logger.warning(
            f"Error hook failed: {chain_error}",
            hook=chain_error.details.get("hook"),
            target=chains.target.value,
        )
        error.details["error_chain_failure"] = chain_error.message
    context.error = error
    return context


def empty_chains(target: Union[Target, str]) -> HookChains:
    """Hook chains without any hook"""
    return HookChains(target=Target(target))
