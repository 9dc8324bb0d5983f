"""
CrawlFlow Hooks Module - Pluggable lifecycle hooks.

Hooks carry the domain logic of a job (authentication, downloads,
conversions, cleanup) while the engine only guarantees when and in which
order they run. A hook is registered once under a name and then referenced
from any hook configuration.

Example:
    >>> from crawlflow.hooks import Phase, ensure_phase, register_hook
    >>>
    >>> @register_hook("countCells")
    ... def count_cells(options):
    ...     def hook(context):
    ...         ensure_phase(context, "countCells", Phase.AFTER)
    ...         context.result = len(context.result)
    ...         return context
    ...     return hook
"""

from .builtin import BUILTIN_HOOKS, add_output, register_builtin_hooks
from .context import (
    HookContext,
    Phase,
    Target,
    ensure_phase,
    get_store_from_context,
)
from .pipeline import (
    BoundHook,
    HookChains,
    activate_hooks,
    run_error_chain,
    run_phase,
)
from .registry import (
    HookRegistry,
    list_hooks,
    lookup_hook,
    register_hook,
)

register_builtin_hooks()

__all__ = [
    "BUILTIN_HOOKS",
    "BoundHook",
    "HookChains",
    "HookContext",
    "HookRegistry",
    "Phase",
    "Target",
    "activate_hooks",
    "add_output",
    "ensure_phase",
    "get_store_from_context",
    "list_hooks",
    "lookup_hook",
    "register_builtin_hooks",
    "register_hook",
    "run_error_chain",
    "run_phase",
]
