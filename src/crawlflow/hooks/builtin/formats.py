"""
JSON and YAML conversion hooks working on ``result.data``.
"""

import json
from typing import Any, Dict

import yaml

from crawlflow.core.exceptions.custom_exceptions import DomainError
from crawlflow.hooks.builtin.store import add_output, resolve_location
from crawlflow.hooks.context import HookContext, Phase, ensure_phase
from crawlflow.utils.objects import get_path, set_path, unset_path

DEFAULT_DATA_PATH = "result.data"


def write_json(options: Dict[str, Any]):
    """
    Write the data at ``dataPath`` as JSON into the store.

    Options:
        dataPath: Path of the data in the context, default ``result.data``
        store: Store id, defaults to the store of the processed entity
        key: Key template, default ``{{ id }}.json``
        indent: JSON indentation
    """
    data_path = options.get("dataPath", DEFAULT_DATA_PATH)

    async def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "writeJson", Phase.AFTER)

        data = get_path(context, data_path)
        if data is None:
            raise DomainError(
                f"No data to write at {data_path} for {context.id}",
                details={"hook": "writeJson", "dataPath": data_path},
            )

        store, key = resolve_location(context, "writeJson", options, "{{ id }}.json")
        content = json.dumps(data, indent=options.get("indent"), default=str)
        await store.write(key, content.encode("utf-8"))
        add_output(context, key)
        return context

    return hook


def _read_hook(hook_name: str, parse):
    def factory(options: Dict[str, Any]):
        data_path = options.get("dataPath", DEFAULT_DATA_PATH)

        async def hook(context: HookContext) -> HookContext:
            ensure_phase(context, hook_name, Phase.AFTER)

            store, key = resolve_location(context, hook_name, options)
            content = await store.read(key)
            try:
                data = parse(content.decode(options.get("encoding", "utf-8")))
            except (ValueError, yaml.YAMLError) as e:
                raise DomainError(
                    f"Failed to parse {key}: {e}",
                    details={"hook": hook_name, "key": key},
                ) from e

            set_path(context, data_path, data)
            return context

        return hook

    return factory


read_json = _read_hook("readJson", json.loads)
read_yaml = _read_hook("readYaml", yaml.safe_load)


def clear_data(options: Dict[str, Any]):
    """Drop the data at ``dataPath`` to release memory"""
    data_path = options.get("dataPath", DEFAULT_DATA_PATH)

    def hook(context: HookContext) -> HookContext:
        unset_path(context, data_path)
        return context

    return hook
