"""
Task template expansion.

A job lists raw task descriptors and may carry a task template, a partial
task definition shared by every task. Expansion turns both into concrete
task definitions:

- Without a template each raw task is used as-is (shallow copy).
- With a template, the template ``id`` is a Jinja2 string rendered with
  ``jobId`` and ``taskId`` (the raw task id), e.g.
  ``"{{ jobId }}-{{ taskId }}.tif"``. The rest of the template is then
  deep-merged with the raw task's own fields, per-task values winning.

Example:
    >>> expand_tasks(
    ...     "dem",
    ...     {"id": "{{ jobId }}-{{ taskId }}.tif", "type": "http",
    ...      "options": {"url": "https://example.com/wcs", "version": "2.0.1"}},
    ...     [{"id": "0-0", "options": {"version": "1.0.0"}}],
    ... )
    [{'id': 'dem-0-0.tif', 'type': 'http',
      'options': {'url': 'https://example.com/wcs', 'version': '1.0.0'}}]
"""

import copy
from typing import Any, Dict, List, Mapping, Optional

from crawlflow.core.exceptions.custom_exceptions import ValidationError
from crawlflow.utils.templates import render_template

DEFAULT_TASK_ID_TEMPLATE = "{{ jobId }}-{{ taskId }}"


def deep_merge(base: Any, override: Any) -> Any:
    """
    Recursively merge ``override`` into a copy of ``base``.

    Mappings are merged key by key and sequences position by position (the
    tail of the longer one is kept). Anywhere else the override value wins.
    Neither input is mutated.
    """
    if isinstance(base, Mapping) and isinstance(override, Mapping):
        merged = {key: copy.deepcopy(value) for key, value in base.items()}
        for key, value in override.items():
            if key in merged:
                merged[key] = deep_merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged

    if isinstance(base, list) and isinstance(override, list):
        merged = [deep_merge(b, o) for b, o in zip(base, override)]
        longer = base if len(base) > len(override) else override
        merged.extend(copy.deepcopy(longer[len(merged) :]))
        return merged

    return copy.deepcopy(override)


def compile_task_id(template: str, job_id: Any, task_id: Any) -> str:
    """Render a task id template"""
    return render_template(template, {"jobId": job_id, "taskId": task_id})


def _without_id(definition: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in definition.items() if key != "id"}


def expand_tasks(
    job_id: Any,
    task_template: Optional[Dict[str, Any]],
    raw_tasks: Optional[List[Dict[str, Any]]],
) -> List[Dict[str, Any]]:
    """
    Expand raw task descriptors into task definitions.

    Raises:
        ValidationError: If a raw task is not a mapping or has no id, if the
            template is malformed, or if two tasks resolve to the same id
    """
    if raw_tasks is None:
        raw_tasks = []
    if not isinstance(raw_tasks, list):
        raise ValidationError(
            "Job tasks must be a list",
            error_code="TASKS_INVALID",
            details={"job_id": job_id},
        )

    id_template = None
    base: Dict[str, Any] = {}
    if task_template is not None:
        if not isinstance(task_template, dict):
            raise ValidationError(
                "Task template must be a mapping",
                error_code="TASK_TEMPLATE_INVALID",
                details={"job_id": job_id},
            )
        id_template = task_template.get("id") or DEFAULT_TASK_ID_TEMPLATE
        if not isinstance(id_template, str):
            raise ValidationError(
                "Task template id must be a string",
                error_code="TASK_TEMPLATE_INVALID",
                details={"job_id": job_id},
            )
        if "<%" in id_template:
            # Would render literally and collide on the first two tasks
            raise ValidationError(
                f"Task template id {id_template!r} uses <% %> delimiters, "
                "write it as a Jinja2 template such as "
                "'{{ jobId }}-{{ taskId }}' instead",
                error_code="TASK_TEMPLATE_INVALID",
                details={"job_id": job_id, "template": id_template},
            )
        base = _without_id(task_template)

    tasks = []
    seen = set()
    for index, raw_task in enumerate(raw_tasks):
        if not isinstance(raw_task, dict):
            raise ValidationError(
                f"Task at index {index} must be a mapping",
                error_code="TASK_INVALID",
                details={"job_id": job_id, "index": index},
            )
        if raw_task.get("id") in (None, ""):
            raise ValidationError(
                f"Task at index {index} has no id",
                error_code="TASK_ID_MISSING",
                details={"job_id": job_id, "index": index},
            )

        if id_template is None:
            task = dict(raw_task)
        else:
            task = {"id": compile_task_id(id_template, job_id, raw_task["id"])}
            task.update(deep_merge(base, _without_id(raw_task)))

        task_key = str(task["id"])
        if task_key in seen:
            raise ValidationError(
                f"Duplicate task id {task_key}",
                error_code="TASK_ID_DUPLICATE",
                details={"job_id": job_id, "task_id": task_key, "index": index},
            )
        seen.add(task_key)
        tasks.append(task)

    return tasks
