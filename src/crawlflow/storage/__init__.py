"""
CrawlFlow Storage Module - Backend-agnostic blob stores.

Stores persist task outputs under string keys. Every backend implements the
same contract (read stream, write stream, remove, exists), and a backend
may additionally expose a local ``path``. Hooks and task handlers only use
the contract, so job definitions switch backends by changing the store
type.

Storage Backends:
    - fs: Files under a local directory (exposes ``path``)
    - memory: Dictionary of blobs, for tests and scratch data

Example:
    >>> from crawlflow.storage import StoreManager, copy_to_store
    >>>
    >>> stores = StoreManager()
    >>> source = await stores.create("memory")
    >>> target = await stores.create("job-store", "fs", {"path": "./data"})
    >>> await source.write("grid.csv", b"lon,lat\\n")
    >>> await copy_to_store(source, "grid.csv", target, "grid.csv")
"""

from .base import (
    BaseStore,
    StoreFactory,
    StoreWriter,
    SupportsPath,
    require_path,
)
from .fs_store import FileSystemStore
from .manager import StoreManager
from .memory_store import MemoryStore
from .operations import copy_to_store, gunzip_from_store, gzip_to_store

__all__ = [
    "BaseStore",
    "StoreWriter",
    "SupportsPath",
    "StoreFactory",
    "StoreManager",
    "FileSystemStore",
    "MemoryStore",
    "require_path",
    "copy_to_store",
    "gzip_to_store",
    "gunzip_from_store",
]
