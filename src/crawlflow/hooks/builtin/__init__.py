"""
Built-in hooks, registered under the names used in hook configurations.
"""

from typing import Dict

from crawlflow.hooks.registry import HookFactory, HookRegistry

from .auth import basic_auth
from .formats import clear_data, read_json, read_yaml, write_json
from .grid import generate_grid, generate_grid_tasks
from .records import compute_statistics, transform_json
from .store import (
    add_output,
    clear_outputs,
    copy_to_store_hook,
    gunzip_from_store_hook,
    gzip_to_store_hook,
)
from .tabular import merge_csv, read_csv, write_csv

BUILTIN_HOOKS: Dict[str, HookFactory] = {
    "basicAuth": basic_auth,
    "copyToStore": copy_to_store_hook,
    "gzipToStore": gzip_to_store_hook,
    "gunzipFromStore": gunzip_from_store_hook,
    "clearOutputs": clear_outputs,
    "writeJson": write_json,
    "readJson": read_json,
    "readYaml": read_yaml,
    "clearData": clear_data,
    "writeCSV": write_csv,
    "readCSV": read_csv,
    "mergeCSV": merge_csv,
    "transformJson": transform_json,
    "computeStatistics": compute_statistics,
    "generateGrid": generate_grid,
    "generateGridTasks": generate_grid_tasks,
}


def register_builtin_hooks() -> None:
    """Register (or restore) every built-in hook"""
    for name, factory in BUILTIN_HOOKS.items():
        HookRegistry.register(name, factory)


__all__ = [
    "BUILTIN_HOOKS",
    "register_builtin_hooks",
    "add_output",
    "basic_auth",
    "clear_data",
    "clear_outputs",
    "compute_statistics",
    "copy_to_store_hook",
    "generate_grid",
    "generate_grid_tasks",
    "gunzip_from_store_hook",
    "gzip_to_store_hook",
    "merge_csv",
    "read_csv",
    "read_json",
    "read_yaml",
    "transform_json",
    "write_csv",
    "write_json",
]
