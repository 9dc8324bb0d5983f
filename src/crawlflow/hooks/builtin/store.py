"""
Store hooks: copy, compress and decompress blobs, clean up outputs.

Locations are given as ``{"store": <store id>, "key": <key template>}``.
The store id is optional (the store of the processed job or task is used)
and key templates are rendered with the fields of the processed entity,
e.g. ``{"key": "{{ id }}.gz"}``.
"""

from typing import Any, Dict, List, Tuple

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    StorageError,
)
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks.context import (
    HookContext,
    Phase,
    ensure_phase,
    get_store_from_context,
)
from crawlflow.storage.base import BaseStore
from crawlflow.storage.operations import (
    copy_to_store,
    gunzip_from_store,
    gzip_to_store,
)
from crawlflow.utils.templates import render_template

logger = get_logger(__name__)


def template_variables(context: HookContext) -> Dict[str, Any]:
    """Variables available to key templates"""
    variables = dict(context.data)
    variables.setdefault("result", context.result)
    return variables


def resolve_location(
    context: HookContext,
    hook_name: str,
    location: Dict[str, Any],
    default_key: str = "{{ id }}",
) -> Tuple[BaseStore, str]:
    """Resolve a ``{store, key}`` location against the hook context"""
    store = get_store_from_context(context, hook_name, location.get("store"))
    key = render_template(
        location.get("key", default_key),
        template_variables(context),
        ConfigurationError,
    )
    return store, key


def add_output(context: HookContext, key: str) -> None:
    """Record a key produced by a hook on the context result"""
    if context.result is None:
        context.result = {}
    if isinstance(context.result, dict):
        context.result.setdefault("outputs", []).append(key)


def _store_operation(hook_name: str, operation):
    def factory(options: Dict[str, Any]):
        if not isinstance(options.get("input"), dict) or not isinstance(
            options.get("output"), dict
        ):
            raise ConfigurationError(
                f"The '{hook_name}' hook requires input and output locations",
                details={"hook": hook_name},
            )

        async def hook(context: HookContext) -> HookContext:
            input_store, input_key = resolve_location(
                context, hook_name, options["input"]
            )
            output_store, output_key = resolve_location(
                context, hook_name, options["output"]
            )
            await operation(input_store, input_key, output_store, output_key)
            add_output(context, output_key)
            return context

        return hook

    return factory


copy_to_store_hook = _store_operation("copyToStore", copy_to_store)
gzip_to_store_hook = _store_operation("gzipToStore", gzip_to_store)
gunzip_from_store_hook = _store_operation("gunzipFromStore", gunzip_from_store)


def _collect_outputs(result: Any) -> List[str]:
    if isinstance(result, dict):
        return list(result.get("outputs", []))
    if isinstance(result, list):
        keys = []
        for item in result:
            keys.extend(_collect_outputs(getattr(item, "result", item)))
        return keys
    return []


def clear_outputs(options: Dict[str, Any]):
    """
    Remove every key recorded in the result outputs from the store.

    On the job ``after`` chain the outputs of every task outcome are
    removed. Removal is best-effort: store failures are logged.
    """
    store_id = options.get("store")

    async def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "clearOutputs", Phase.AFTER, Phase.ERROR)
        store = get_store_from_context(context, "clearOutputs", store_id)

        for key in _collect_outputs(context.result):
            try:
                await store.remove(key)
                logger.debug(f"Removed output {key}", store_id=store.id)
            except StorageError as e:
                logger.warning(f"Failed to remove output {key}: {e}")

        if isinstance(context.result, dict):
            context.result["outputs"] = []
        return context

    return hook
