"""
Unit tests for task template expansion
"""

import copy

import pytest

from crawlflow.core.exceptions import ValidationError
from crawlflow.jobs.template import deep_merge, expand_tasks


def test_expand_tasks_with_template(sample_job):
    tasks = expand_tasks("dem", sample_job["taskTemplate"], sample_job["tasks"])

    assert [task["id"] for task in tasks] == ["dem-0-0", "dem-0-1", "dem-1-0"]
    assert tasks[0]["options"] == {
        "url": "https://example.com/wcs",
        "params": {"version": "2.0.1", "format": "image/tiff", "bbox": "0,0,1,1"},
    }
    # Per-task values win at the leaves
    assert tasks[2]["options"]["params"] == {
        "version": "1.0.0",
        "format": "image/tiff",
    }


def test_expand_tasks_is_deterministic(sample_job):
    first = expand_tasks("dem", sample_job["taskTemplate"], sample_job["tasks"])
    second = expand_tasks("dem", sample_job["taskTemplate"], sample_job["tasks"])
    assert first == second


def test_expand_tasks_does_not_mutate_inputs(sample_job):
    snapshot = copy.deepcopy(sample_job)
    tasks = expand_tasks("dem", sample_job["taskTemplate"], sample_job["tasks"])
    tasks[0]["options"]["params"]["format"] = "text/csv"

    assert sample_job == snapshot


def test_expand_tasks_without_template():
    raw_tasks = [{"id": "a", "type": "http"}, {"id": "b"}]
    tasks = expand_tasks("job", None, raw_tasks)

    assert tasks == raw_tasks
    assert tasks[0] is not raw_tasks[0]


def test_template_without_id_uses_default():
    tasks = expand_tasks("job", {"type": "http"}, [{"id": 1}])
    assert tasks == [{"id": "job-1", "type": "http"}]


def test_task_without_id_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        expand_tasks("job", None, [{"id": "a"}, {"options": {}}])
    assert exc_info.value.error_code == "TASK_ID_MISSING"
    assert exc_info.value.details["index"] == 1


def test_duplicate_task_ids_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        expand_tasks("job", {"id": "{{ jobId }}"}, [{"id": "a"}, {"id": "b"}])
    assert exc_info.value.error_code == "TASK_ID_DUPLICATE"


def test_undefined_template_variable_is_rejected():
    with pytest.raises(ValidationError):
        expand_tasks("job", {"id": "{{ jobId }}-{{ cell }}"}, [{"id": "a"}])


def test_lodash_style_id_template_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        expand_tasks(
            "job",
            {"id": "<%= jobId %>-<%= taskId %>.tif"},
            [{"id": "0-0"}, {"id": "0-1"}],
        )
    error = exc_info.value
    assert error.error_code == "TASK_TEMPLATE_INVALID"
    assert "{{ jobId }}" in error.message
    assert error.details["template"] == "<%= jobId %>-<%= taskId %>.tif"


def test_malformed_inputs_are_rejected():
    with pytest.raises(ValidationError):
        expand_tasks("job", None, {"id": "a"})
    with pytest.raises(ValidationError):
        expand_tasks("job", ["not", "a", "mapping"], [{"id": "a"}])
    with pytest.raises(ValidationError):
        expand_tasks("job", None, ["a"])


def test_expand_no_tasks():
    assert expand_tasks("job", {"type": "http"}, None) == []


def test_deep_merge():
    base = {"a": {"b": 1, "c": [1, 2, 3]}, "d": "base"}
    override = {"a": {"c": [9]}, "d": None, "e": True}

    merged = deep_merge(base, override)

    assert merged == {"a": {"b": 1, "c": [9, 2, 3]}, "d": None, "e": True}
    assert base == {"a": {"b": 1, "c": [1, 2, 3]}, "d": "base"}


def test_deep_merge_lists_of_mappings():
    merged = deep_merge([{"x": 1, "y": 2}], [{"y": 3}, {"z": 4}])
    assert merged == [{"x": 1, "y": 3}, {"z": 4}]
