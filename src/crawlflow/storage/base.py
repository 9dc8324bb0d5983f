"""
Store contract and factory for CrawlFlow storage backends.

A store is a backend-agnostic blob persistence unit addressed by string
keys. Hooks, task handlers and the generic store operations only talk to
stores through the contract defined here, so the same job definition can
write to a local directory, an in-memory store or any other registered
backend without changes.

Key Components:
    - BaseStore: Abstract capability interface every backend implements
    - StoreWriter: Byte sink returned by ``create_write_stream``
    - SupportsPath: Optional capability for filesystem-backed stores
    - StoreFactory: Registry mapping a store type to its backend class

Required Capabilities:
    create_read_stream(key): Async iterator over the bytes of a blob
    create_write_stream(key): Async context manager accepting byte chunks,
        the blob is committed when the writer is closed
    remove(key): Delete a blob
    exists(key): Check whether a blob is present

Optional Capabilities:
    path: Directory of a filesystem-backed store. Only some backends have
        it, so it must be queried with ``isinstance(store, SupportsPath)``
        (or ``require_path``) and never assumed.

Example:
    >>> store = StoreFactory.create("memory", "scratch", {})
    >>> async with store.create_write_stream("hello.txt") as writer:
    ...     await writer.write(b"hello")
    >>> async for chunk in store.create_read_stream("hello.txt"):
    ...     print(chunk)
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    StorageError,
)
from crawlflow.core.logging.logger import get_logger

DEFAULT_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class SupportsPath(Protocol):
    """Capability of stores that expose a local directory"""

    path: Path


class StoreWriter(ABC):
    """
    Byte sink for a single store key.

    Writers are async context managers: chunks written inside the block are
    committed when the block exits normally and discarded when it raises.

    Example:
        >>> async with store.create_write_stream("out.csv") as writer:
        ...     await writer.write(b"a,b\\n")
    """

    def __init__(self, key: str):
        self.key = key
        self.closed = False

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        """Append a chunk of bytes"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Commit the written bytes under the key"""
        pass

    @abstractmethod
    async def abort(self) -> None:
        """Discard the written bytes"""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.close()
        else:
            await self.abort()


class BaseStore(ABC):
    """
    Abstract base class defining the storage contract.

    Attributes:
        id: Identifier of the store in the store registry
        options: Backend-specific options the store was created with

    Implementation Requirements:
        Subclasses must implement create_read_stream, create_write_stream,
        remove and exists. Errors raised by the backend must be wrapped in
        StorageError so callers can handle every backend the same way.
    """

    type: str = "base"

    def __init__(self, store_id: str, options: Optional[Dict[str, Any]] = None):
        self.id = store_id
        self.options = options or {}
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}").bind(
            store_id=store_id
        )

    @abstractmethod
    def create_read_stream(
        self, key: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        """
        Stream the content stored under a key.

        Raises:
            StorageError: If the key does not exist or cannot be read
        """
        pass

    @abstractmethod
    def create_write_stream(self, key: str) -> StoreWriter:
        """
        Open a writer for a key, replacing any previous content on close.

        Raises:
            StorageError: If the key cannot be written
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """
        Remove the content stored under a key.

        Raises:
            StorageError: If the key does not exist or cannot be removed
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a key is present"""
        pass

    async def read(self, key: str) -> bytes:
        """Read the whole content of a key"""
        chunks = []
        async for chunk in self.create_read_stream(key):
            chunks.append(chunk)
        return b"".join(chunks)

    async def write(self, key: str, data: bytes) -> None:
        """Write the whole content of a key"""
        async with self.create_write_stream(key) as writer:
            await writer.write(data)

    async def dispose(self) -> None:
        """Release backend resources when the store is unregistered"""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"


def require_path(store: BaseStore, hook_name: str) -> Path:
    """
    Return the directory of a filesystem-backed store.

    Raises:
        ConfigurationError: If the store has no path capability
    """
    if not isinstance(store, SupportsPath):
        raise ConfigurationError(
            f"The '{hook_name}' hook only works with filesystem stores",
            error_code="STORE_PATH_REQUIRED",
            details={"hook": hook_name, "store_id": store.id},
        )
    return store.path


def check_key(key: str) -> str:
    """Reject empty keys"""
    if not isinstance(key, str) or not key:
        raise StorageError(
            f"Invalid store key: {key!r}", error_code="STORE_INVALID_KEY"
        )
    return key


class StoreFactory:
    """
    Factory class for creating store instances by type.

    Registration (typically at module import):
        >>> StoreFactory.register("fs", FileSystemStore)

    Creation:
        >>> store = StoreFactory.create("fs", "job-store", {"path": "./data"})

    Duplicate names overwrite previous registrations.
    """

    _stores: Dict[str, type] = {}

    @classmethod
    def register(cls, name: str, store_class: type):
        """Register a store class with a given type name"""
        cls._stores[name] = store_class

    @classmethod
    def create(
        cls, store_type: str, store_id: str, options: Optional[Dict[str, Any]] = None
    ) -> BaseStore:
        """
        Create a store instance of the specified type.

        Raises:
            ConfigurationError: If the store type is unknown
        """
        if store_type not in cls._stores:
            raise ConfigurationError(
                f"Can't find store generator for store type {store_type}",
                error_code="STORE_TYPE_NOT_FOUND",
                details={"store_type": store_type, "store_id": store_id},
            )

        store_class = cls._stores[store_type]
        return store_class(store_id, options or {})

    @classmethod
    def list_stores(cls) -> List[str]:
        """List all registered store types"""
        return list(cls._stores.keys())
