"""
Unit tests for job execution and the job manager
"""

import asyncio

import pytest

from crawlflow.core.config.settings import settings
from crawlflow.core.exceptions import (
    ConfigurationError,
    DomainError,
    JobError,
    StorageError,
    ValidationError,
)
from crawlflow.hooks import register_hook
from crawlflow.jobs import JobExecutor, JobManager, JobState
from crawlflow.storage import MemoryStore, StoreManager


def job_with_hooks(hooks, tasks=None):
    return {
        "id": "job",
        "tasks": tasks if tasks is not None else [{"id": "a"}, {"id": "b"}],
        "hooks": hooks,
    }


@pytest.mark.asyncio
async def test_job_phase_ordering(recording_hook):
    calls = []
    register_hook("record", recording_hook(calls, "record"))
    job = job_with_hooks(
        {
            "jobs": {"before": {"record": {}}, "after": {"record": {}}},
            "tasks": {"before": {"record": {}}},
        },
        tasks=[{"id": "a"}],
    )

    result = await JobExecutor().execute(job)

    assert result.state == JobState.COMPLETED
    assert calls == [
        ("record", "before", "job"),
        ("record", "before", "a"),
        ("record", "after", "job"),
    ]
    assert [entry["state"] for entry in result.history] == [
        "created",
        "running-before-hooks",
        "expanding-tasks",
        "running-tasks",
        "running-after-hooks",
        "completed",
    ]


@pytest.mark.asyncio
async def test_after_hooks_see_task_outcomes():
    seen = []

    def summary_hook(options):
        def hook(context):
            seen.extend(outcome.id for outcome in context.result)
            return {"count": len(context.result)}

        return hook

    register_hook("summary", summary_hook)
    job = job_with_hooks({"jobs": {"after": {"summary": {}}}})

    result = await JobExecutor().execute(job)

    assert seen == ["a", "b"]
    assert result.result == {"count": 2}
    assert [outcome.id for outcome in result.tasks] == ["a", "b"]


@pytest.mark.asyncio
async def test_task_failures_do_not_fail_the_job(failing_hook):
    register_hook("fail", failing_hook(DomainError("cannot download")))
    job = job_with_hooks({"tasks": {"before": {"fail": {}}}})

    result = await JobExecutor().execute(job)

    assert result.state == JobState.COMPLETED
    assert not result.success
    assert len(result.failed_tasks) == 2
    assert result.to_dict()["tasks"][0]["error"]["message"] == "cannot download"


@pytest.mark.asyncio
async def test_job_before_failure_short_circuits(recording_hook, failing_hook):
    calls = []
    register_hook("record", recording_hook(calls, "record"))
    register_hook("fail", failing_hook(DomainError("no token")))
    register_hook("onError", recording_hook(calls, "onError"))
    job = job_with_hooks(
        {
            "jobs": {
                "before": {"fail": {}, "record": {}},
                "error": {"onError": {}},
            },
            "tasks": {"before": {"record": {}}},
        }
    )

    with pytest.raises(JobError) as exc_info:
        await JobExecutor().execute(job)

    error = exc_info.value
    assert error.details["job_id"] == "job"
    assert error.details["phase"] == "before"
    assert error.details["hook"] == "fail"
    assert error.details["error"]["message"] == "no token"
    # No later before hook, no task and only the error chain ran
    assert calls == [("onError", "error", "job")]


@pytest.mark.asyncio
async def test_job_after_failure_raises_job_error(failing_hook):
    register_hook("fail", failing_hook(ValueError("bad summary")))
    job = job_with_hooks({"jobs": {"after": {"fail": {}}}})

    with pytest.raises(JobError) as exc_info:
        await JobExecutor().execute(job)

    assert exc_info.value.details["phase"] == "after"
    assert exc_info.value.details["hook"] == "fail"


@pytest.mark.asyncio
async def test_error_chain_failure_keeps_original_error(failing_hook):
    register_hook("fail", failing_hook(DomainError("first")))
    register_hook("failAgain", failing_hook(DomainError("second")))
    job = job_with_hooks(
        {"jobs": {"before": {"fail": {}}, "error": {"failAgain": {}}}}
    )

    with pytest.raises(JobError) as exc_info:
        await JobExecutor().execute(job)

    details = exc_info.value.details["error"]
    assert details["message"] == "first"
    assert details["details"]["error_chain_failure"] == "second"


@pytest.mark.asyncio
async def test_invalid_job_is_rejected():
    with pytest.raises(ValidationError):
        await JobExecutor().execute({"tasks": []})

    with pytest.raises(ValidationError):
        await JobExecutor().execute({"id": "job", "tasks": [{"options": {}}]})


@pytest.mark.asyncio
async def test_unknown_hook_is_rejected_before_running(recording_hook):
    calls = []
    register_hook("record", recording_hook(calls, "record"))
    job = job_with_hooks(
        {"jobs": {"before": {"record": {}}}, "tasks": {"after": {"missingHook": {}}}}
    )

    with pytest.raises(ConfigurationError):
        await JobExecutor().execute(job)
    assert calls == []


@pytest.mark.asyncio
async def test_job_store_is_created_and_reused():
    stores = StoreManager()
    job = {
        "id": "job",
        "store": {"id": "job-store", "type": "memory"},
        "tasks": [{"id": "a"}],
        "hooks": {"tasks": {"after": {"writeJson": {"dataPath": "data"}}}},
    }

    await JobExecutor(stores).execute(job)
    await JobExecutor(stores).execute(job)

    store = await stores.get("job-store")
    assert isinstance(store, MemoryStore)
    assert store.keys() == ["a.json"]


def peak_concurrency_hook():
    """Register a slow ``peak`` hook and return its concurrency record"""
    record = {"running": 0, "peak": 0}

    def factory(options):
        async def hook(context):
            record["running"] += 1
            record["peak"] = max(record["peak"], record["running"])
            await asyncio.sleep(0.01)
            record["running"] -= 1
            return context

        return hook

    register_hook("peak", factory)
    return record


def slow_job(workers_limit=None, count=6):
    job = {
        "id": "job",
        "tasks": [{"id": f"t-{index}"} for index in range(count)],
        "hooks": {"tasks": {"before": {"peak": {}}}},
    }
    if workers_limit is not None:
        job["options"] = {"workersLimit": workers_limit}
    return job


@pytest.mark.asyncio
async def test_workers_limit_priority(monkeypatch):
    monkeypatch.setattr(settings, "WORKERS_LIMIT", 2)

    record = peak_concurrency_hook()
    result = await JobExecutor(workers_limit=1).execute(slow_job(workers_limit=3))
    assert result.state == JobState.COMPLETED
    assert record["peak"] == 1

    record = peak_concurrency_hook()
    await JobExecutor().execute(slow_job(workers_limit=3))
    assert record["peak"] == 3

    record = peak_concurrency_hook()
    await JobExecutor().execute(slow_job())
    assert record["peak"] == 2

    with pytest.raises(ValidationError):
        await JobExecutor().execute(
            {"id": "job", "options": {"workersLimit": 0}, "tasks": []}
        )
    with pytest.raises(ConfigurationError):
        await JobExecutor(workers_limit=0).execute(slow_job(workers_limit=3))


@pytest.mark.asyncio
async def test_job_definition_is_not_mutated():
    def mutate_hook(options):
        def hook(context):
            context.data["tasks"].append({"id": "extra"})
            return context

        return hook

    register_hook("mutate", mutate_hook)
    job = job_with_hooks({"jobs": {"before": {"mutate": {}}}}, tasks=[{"id": "a"}])

    result = await JobExecutor().execute(job)

    assert [outcome.id for outcome in result.tasks] == ["a", "extra"]
    assert job["tasks"] == [{"id": "a"}]


@pytest.mark.asyncio
async def test_manager_remove_is_lenient(memory_store):
    manager = JobManager()

    # Nothing stored under the job id: the backend fails, removal still succeeds
    assert await manager.remove("job", {"store": memory_store}) == {
        "id": "job",
        "removed": False,
    }

    await memory_store.write("job/a.json", b"{}")
    await memory_store.write("job/b.json", b"{}")
    assert await manager.remove("job", {"store": memory_store}) == {
        "id": "job",
        "removed": True,
    }
    assert memory_store.keys() == []


@pytest.mark.asyncio
async def test_manager_remove_never_clears_store_root(fs_store):
    await fs_store.write("keep.json", b"{}")

    assert await JobManager().remove(".", {"store": fs_store}) == {
        "id": ".",
        "removed": False,
    }
    assert await fs_store.read("keep.json") == b"{}"


@pytest.mark.asyncio
async def test_manager_remove_requires_known_store():
    manager = JobManager()

    with pytest.raises(StorageError):
        await manager.remove("job", {"store": "missing"})
    with pytest.raises(ConfigurationError):
        await manager.remove("job")


@pytest.mark.asyncio
async def test_manager_create_runs_job(sample_job):
    result = await JobManager().create(sample_job)

    assert result.job_id == "dem"
    assert [outcome.id for outcome in result.tasks] == [
        "dem-0-0",
        "dem-0-1",
        "dem-1-0",
    ]
