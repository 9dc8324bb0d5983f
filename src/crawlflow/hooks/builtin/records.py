"""
Hooks reshaping and summarising the records at ``result.data``.
"""

from typing import Any, Dict, List

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    DomainError,
)
from crawlflow.hooks.context import HookContext, Phase, ensure_phase
from crawlflow.utils.objects import get_path, set_path, unset_path

DEFAULT_DATA_PATH = "result.data"
STATISTICS = ("min", "max", "mean", "sum", "count")


def transform_json(options: Dict[str, Any]):
    """
    Move fields of every record according to ``mapping``.

    ``mapping`` maps a source path to a target path, e.g. CSV columns back
    to a bounding box: ``{"Lonmin": "bbox[0]", "Latmin": "bbox[1]"}``.
    Records without the source field are left unchanged.
    """
    mapping = options.get("mapping")
    if not isinstance(mapping, dict) or not mapping:
        raise ConfigurationError(
            "The 'transformJson' hook requires a mapping",
            details={"hook": "transformJson"},
        )
    data_path = options.get("dataPath", DEFAULT_DATA_PATH)
    missing = object()

    def hook(context: HookContext) -> HookContext:
        data = get_path(context, data_path)
        records = data if isinstance(data, list) else [data]
        for record in records:
            if not isinstance(record, dict):
                continue
            for source, target in mapping.items():
                value = get_path(record, source, missing)
                if value is missing:
                    continue
                unset_path(record, source)
                set_path(record, target, value)
        return context

    return hook


def _numbers(records: List[Any], value_path: str) -> List[float]:
    values = []
    for record in records:
        value = get_path(record, value_path)
        if value is None or value == "":
            continue
        try:
            values.append(float(value))
        except (TypeError, ValueError) as e:
            raise DomainError(
                f"Value {value!r} at {value_path} is not a number",
                details={"hook": "computeStatistics", "valuePath": value_path},
            ) from e
    return values


def compute_statistics(options: Dict[str, Any]):
    """
    Compute statistics over the numeric values of the records.

    Each enabled statistic (``min``, ``max``, ``mean``, ``sum``, ``count``)
    is stored on the result under its own name, e.g. ``{"max": True}``
    sets ``result.max``. Values are read at ``valuePath`` (default
    ``value``) in each record of ``dataPath``; numeric strings, as read
    from CSV files, are accepted.
    """
    enabled = [name for name in STATISTICS if options.get(name)]
    if not enabled:
        raise ConfigurationError(
            "The 'computeStatistics' hook requires at least one of "
            + ", ".join(STATISTICS),
            details={"hook": "computeStatistics"},
        )
    data_path = options.get("dataPath", DEFAULT_DATA_PATH)
    value_path = options.get("valuePath", "value")

    def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "computeStatistics", Phase.AFTER)

        data = get_path(context, data_path)
        values = _numbers(data if isinstance(data, list) else [data], value_path)
        if not values:
            raise DomainError(
                f"No values at {value_path} to compute statistics for {context.id}",
                details={"hook": "computeStatistics", "dataPath": data_path},
            )

        statistics = {
            "min": min(values),
            "max": max(values),
            "mean": sum(values) / len(values),
            "sum": sum(values),
            "count": len(values),
        }
        for name in enabled:
            set_path(context, f"result.{name}", statistics[name])
        return context

    return hook
