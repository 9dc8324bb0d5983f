"""
Unit tests for the task scheduler
"""

import asyncio

import pytest

from crawlflow.core.config.settings import settings
from crawlflow.core.exceptions import ConfigurationError, DomainError
from crawlflow.hooks import activate_hooks, register_hook
from crawlflow.hooks.pipeline import empty_chains
from crawlflow.jobs.scheduler import SchedulerFactory, TaskOutcome, TaskScheduler
from crawlflow.storage import StoreManager
from crawlflow.tasks import BaseTaskHandler, TaskHandlerFactory


def make_tasks(count):
    return [{"id": f"task-{index}"} for index in range(count)]


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_workers_limit():
    running = 0
    peak = 0

    def slow_hook(options):
        async def hook(context):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return context

        return hook

    register_hook("slow", slow_hook)
    chains = activate_hooks({"tasks": {"before": {"slow": {}}}}, "tasks")
    scheduler = TaskScheduler(workers_limit=3)

    outcomes = await scheduler.run(make_tasks(10), chains, {})

    assert len(outcomes) == 10
    assert all(outcome.success for outcome in outcomes)
    assert peak == 3
    assert scheduler.max_in_flight == 3


@pytest.mark.asyncio
async def test_fewer_tasks_than_workers():
    scheduler = TaskScheduler(workers_limit=8)
    outcomes = await scheduler.run(make_tasks(2), empty_chains("tasks"), {})

    assert [outcome.id for outcome in outcomes] == ["task-0", "task-1"]
    assert scheduler.max_in_flight <= 2


@pytest.mark.asyncio
async def test_task_failure_is_isolated(recording_hook):
    calls = []

    def flaky_hook(options):
        async def hook(context):
            if context.id == "task-1":
                raise RuntimeError("boom")
            await asyncio.sleep(0)
            return context

        return hook

    register_hook("flaky", flaky_hook)
    register_hook("record", recording_hook(calls, "error"))
    chains = activate_hooks(
        {"tasks": {"before": {"flaky": {}}, "error": {"record": {}}}}, "tasks"
    )

    outcomes = await TaskScheduler(workers_limit=2).run(make_tasks(4), chains, {})

    assert [outcome.id for outcome in outcomes] == [
        "task-0",
        "task-1",
        "task-2",
        "task-3",
    ]
    assert [outcome.success for outcome in outcomes] == [True, False, True, True]
    failed = outcomes[1]
    assert isinstance(failed.error, DomainError)
    assert failed.error.details["hook"] == "flaky"
    assert failed.error.details["exception"] == "RuntimeError"
    assert calls == [("error", "error", "task-1")]


@pytest.mark.asyncio
async def test_task_phase_ordering(recording_hook):
    calls = []
    register_hook("first", recording_hook(calls, "first"))
    register_hook("second", recording_hook(calls, "second"))
    chains = activate_hooks(
        {
            "tasks": {
                "before": {"first": {}, "second": {}},
                "after": {"second": {}, "first": {}},
            }
        },
        "tasks",
    )

    outcomes = await TaskScheduler(workers_limit=1).run(make_tasks(1), chains, {})

    assert outcomes[0].success
    assert outcomes[0].result == {"id": "task-0"}
    assert calls == [
        ("first", "before", "task-0"),
        ("second", "before", "task-0"),
        ("second", "after", "task-0"),
        ("first", "after", "task-0"),
    ]


@pytest.mark.asyncio
async def test_task_handler_selected_by_type():
    class EchoHandler(BaseTaskHandler):
        async def run(self, task, store, params):
            return {"id": task["id"], "echo": task["options"]["value"]}

    TaskHandlerFactory.register("echo", EchoHandler)
    tasks = [{"id": "a", "type": "echo", "options": {"value": 42}}]

    outcomes = await TaskScheduler(1).run(tasks, empty_chains("tasks"), {})

    assert outcomes[0].result == {"id": "a", "echo": 42}


@pytest.mark.asyncio
async def test_unknown_task_type_fails_the_task():
    tasks = [{"id": "a", "type": "ftp"}]
    outcomes = await TaskScheduler(1).run(tasks, empty_chains("tasks"), {})

    assert not outcomes[0].success
    assert isinstance(outcomes[0].error, ConfigurationError)


@pytest.mark.asyncio
async def test_task_store_overrides_job_store(memory_store):
    seen = {}

    def store_hook(options):
        def hook(context):
            seen[context.id] = context.params["store"].id
            return context

        return hook

    register_hook("seeStore", store_hook)
    stores = StoreManager()
    await stores.create("memory")
    await stores.create("other", "memory")
    chains = activate_hooks({"tasks": {"before": {"seeStore": {}}}}, "tasks")
    tasks = [{"id": "a"}, {"id": "b", "store": "other"}]
    params = {"stores": stores, "store": stores.stores["memory"]}

    await TaskScheduler(2).run(tasks, chains, params)

    assert seen == {"a": "memory", "b": "other"}
    assert "store" not in tasks[0]
    assert params["store"].id == "memory"


@pytest.mark.asyncio
async def test_progress_callback():
    done = []
    await TaskScheduler(2).run(
        make_tasks(3), empty_chains("tasks"), {}, progress=done.append
    )
    assert sorted(outcome.id for outcome in done) == ["task-0", "task-1", "task-2"]


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_abort_run():
    seen = []

    def progress(outcome):
        seen.append(outcome.id)
        raise RuntimeError("display closed")

    outcomes = await TaskScheduler(2).run(
        make_tasks(4), empty_chains("tasks"), {}, progress=progress
    )

    assert [outcome.id for outcome in outcomes] == [
        "task-0",
        "task-1",
        "task-2",
        "task-3",
    ]
    assert all(outcome.success for outcome in outcomes)
    assert sorted(seen) == ["task-0", "task-1", "task-2", "task-3"]


@pytest.mark.asyncio
async def test_no_tasks():
    assert await TaskScheduler(2).run([], empty_chains("tasks"), {}) == []


def test_scheduler_factory():
    scheduler = SchedulerFactory.create("async", 5)
    assert isinstance(scheduler, TaskScheduler)
    assert scheduler.workers_limit == 5
    assert "async" in SchedulerFactory.list_schedulers()

    with pytest.raises(ConfigurationError):
        SchedulerFactory.create("kue")


@pytest.mark.parametrize("limit", [0, -1])
def test_workers_limit_must_be_positive(limit):
    with pytest.raises(ConfigurationError) as exc_info:
        TaskScheduler(limit)
    assert exc_info.value.error_code == "WORKERS_LIMIT_INVALID"


def test_workers_limit_defaults_to_settings(monkeypatch):
    monkeypatch.setattr(settings, "WORKERS_LIMIT", 7)
    assert TaskScheduler().workers_limit == 7
    assert SchedulerFactory.create("async").workers_limit == 7


def test_outcome_to_dict():
    error = DomainError("boom", details={"hook": "flaky"})
    data = TaskOutcome(id="a", success=False, error=error).to_dict()
    assert data["error"]["error"] == "DomainError"
    assert data["error"]["details"] == {"hook": "flaky"}
