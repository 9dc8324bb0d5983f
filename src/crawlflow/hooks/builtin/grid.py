"""
Grid hooks generating one task per cell (or block of cells) of a
longitude/latitude grid.

Both run on the job ``before`` chain, before tasks are expanded:

- ``generateGrid`` computes the grid geometry from ``bbox``
  (``[lon_min, lat_min, lon_max, lat_max]``), ``resolution`` (one value or
  ``[lon, lat]``) and an optional ``blockSize`` (cells per task, one value
  or ``[lon, lat]``). Values come from the hook options, falling back to
  the job ``options``. The grid is stored on the job under ``gridPath``.
- ``generateGridTasks`` replaces the job ``tasks`` with one task per block
  of the grid, with id ``"<column>-<row>"`` and its bounding box in
  ``options.bbox``. With ``resample`` the task also asks for one sample
  per cell through ``options.width``/``options.height``.

Example:
    >>> job = {"id": "dem", "options": {"bbox": [0, 0, 1, 1], "resolution": 0.5}}
    >>> # after generateGrid and generateGridTasks
    >>> [task["id"] for task in job["tasks"]]
    ['0-0', '1-0', '0-1', '1-1']
"""

import math
from typing import Any, Dict, List

from crawlflow.core.exceptions.custom_exceptions import ValidationError
from crawlflow.hooks.context import HookContext, Phase, ensure_phase
from crawlflow.utils.objects import get_path, set_path

DEFAULT_GRID_PATH = "grid"
# Absorbs float noise when a span is an exact multiple of the resolution
EPSILON = 1e-9
PRECISION = 10


def _pair(name: str, value: Any, integer: bool = False) -> List[float]:
    values = value if isinstance(value, (list, tuple)) else [value, value]
    if len(values) != 2 or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0
        for v in values
    ):
        raise ValidationError(
            f"Grid {name} must be a positive number or a pair of them",
            error_code="GRID_INVALID",
            details={"hook": "generateGrid", name: value},
        )
    if integer:
        return [int(v) for v in values]
    return [float(v) for v in values]


def _bbox(value: Any) -> List[float]:
    if (
        not isinstance(value, (list, tuple))
        or len(value) != 4
        or not all(isinstance(v, (int, float)) for v in value)
        or value[0] >= value[2]
        or value[1] >= value[3]
    ):
        raise ValidationError(
            "Grid bbox must be [lon_min, lat_min, lon_max, lat_max]",
            error_code="GRID_INVALID",
            details={"hook": "generateGrid", "bbox": value},
        )
    return [float(v) for v in value]


def generate_grid(options: Dict[str, Any]):
    grid_path = options.get("gridPath", DEFAULT_GRID_PATH)

    def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "generateGrid", Phase.BEFORE)
        job_options = context.data.get("options") or {}

        def setting(name: str) -> Any:
            return options.get(name, job_options.get(name))

        bbox = _bbox(setting("bbox"))
        resolution = _pair("resolution", setting("resolution"))
        block_size = setting("blockSize")

        width = math.ceil((bbox[2] - bbox[0]) / resolution[0] - EPSILON)
        height = math.ceil((bbox[3] - bbox[1]) / resolution[1] - EPSILON)
        set_path(
            context.data,
            grid_path,
            {
                "bbox": bbox,
                "resolution": resolution,
                "width": width,
                "height": height,
                "blockSize": (
                    _pair("blockSize", block_size, integer=True)
                    if block_size is not None
                    else [1, 1]
                ),
            },
        )
        return context

    return hook


def _coordinate(value: float) -> float:
    return round(value, PRECISION)


def grid_tasks(grid: Dict[str, Any], resample: bool = False) -> List[Dict[str, Any]]:
    """Build one task descriptor per block of a grid, row by row"""
    lon_min, lat_min, lon_max, lat_max = grid["bbox"]
    res_lon, res_lat = grid["resolution"]
    block_lon, block_lat = grid["blockSize"]
    width, height = grid["width"], grid["height"]

    tasks = []
    for row in range(math.ceil(height / block_lat)):
        for column in range(math.ceil(width / block_lon)):
            first_column, first_row = column * block_lon, row * block_lat
            columns = min(block_lon, width - first_column)
            rows = min(block_lat, height - first_row)
            task_options = {
                "bbox": [
                    _coordinate(lon_min + first_column * res_lon),
                    _coordinate(lat_min + first_row * res_lat),
                    _coordinate(
                        min(lon_max, lon_min + (first_column + columns) * res_lon)
                    ),
                    _coordinate(min(lat_max, lat_min + (first_row + rows) * res_lat)),
                ]
            }
            if resample:
                task_options["width"] = columns
                task_options["height"] = rows
            tasks.append({"id": f"{column}-{row}", "options": task_options})
    return tasks


def generate_grid_tasks(options: Dict[str, Any]):
    grid_path = options.get("gridPath", DEFAULT_GRID_PATH)
    resample = bool(options.get("resample", False))

    def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "generateGridTasks", Phase.BEFORE)

        grid = get_path(context.data, grid_path)
        if not isinstance(grid, dict):
            raise ValidationError(
                f"No grid found at {grid_path}, run generateGrid first",
                error_code="GRID_INVALID",
                details={"hook": "generateGridTasks", "gridPath": grid_path},
            )
        context.data["tasks"] = grid_tasks(grid, resample)
        return context

    return hook
