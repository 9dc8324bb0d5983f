"""
Pytest configuration and fixtures for CrawlFlow tests
"""

from typing import Any, Dict

import pytest

from crawlflow.hooks import HookRegistry, register_builtin_hooks
from crawlflow.storage import FileSystemStore, MemoryStore, StoreManager


@pytest.fixture(autouse=True)
def restore_hook_registry():
    """Reset the hook registry to the built-in hooks after each test"""
    yield
    HookRegistry.clear()
    register_builtin_hooks()


@pytest.fixture
def memory_store() -> MemoryStore:
    """In-memory store"""
    return MemoryStore("memory")


@pytest.fixture
def fs_store(tmp_path) -> FileSystemStore:
    """Filesystem store rooted in a temporary directory"""
    return FileSystemStore("fs", {"path": str(tmp_path / "store")})


@pytest.fixture
def store_manager() -> StoreManager:
    return StoreManager()


@pytest.fixture
def sample_job() -> Dict[str, Any]:
    """Job with a task template and three raw tasks"""
    return {
        "id": "dem",
        "options": {"workersLimit": 2},
        "taskTemplate": {
            "id": "{{ jobId }}-{{ taskId }}",
            "options": {
                "url": "https://example.com/wcs",
                "params": {"version": "2.0.1", "format": "image/tiff"},
            },
        },
        "tasks": [
            {"id": "0-0", "options": {"params": {"bbox": "0,0,1,1"}}},
            {"id": "0-1", "options": {"params": {"bbox": "0,1,1,2"}}},
            {"id": "1-0", "options": {"params": {"version": "1.0.0"}}},
        ],
    }


def _recording_hook(calls, label):
    def factory(options):
        def hook(context):
            calls.append((label, context.type.value, context.id))
            return context

        return hook

    return factory


def _failing_hook(error):
    def factory(options):
        def hook(context):
            raise error

        return hook

    return factory


@pytest.fixture
def recording_hook():
    """Build hook factories appending ``(label, phase, id)`` to a list"""
    return _recording_hook


@pytest.fixture
def failing_hook():
    """Build hook factories raising the given error"""
    return _failing_hook
