"""
In-memory store backend, mostly useful for tests and scratch data.
"""

from typing import Any, AsyncIterator, Dict, List, Optional

from crawlflow.core.exceptions.custom_exceptions import StorageError
from crawlflow.storage.base import (
    DEFAULT_CHUNK_SIZE,
    BaseStore,
    StoreFactory,
    StoreWriter,
    check_key,
)


class MemoryWriter(StoreWriter):
    """Writer buffering chunks until close"""

    def __init__(self, key: str, store: "MemoryStore"):
        super().__init__(key)
        self.store = store
        self.buffer = bytearray()

    async def write(self, chunk: bytes) -> None:
        if self.closed:
            raise StorageError(
                f"Writer for {self.key} is closed", error_code="STORE_WRITER_CLOSED"
            )
        self.buffer.extend(chunk)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.store.blobs[self.key] = bytes(self.buffer)

    async def abort(self) -> None:
        self.closed = True
        self.buffer.clear()


class MemoryStore(BaseStore):
    """
    Store keeping blobs in a dictionary.

    Keys are flat, but removing ``key`` also removes every ``key/...`` entry
    so that job outputs grouped under a prefix can be cleaned up the same
    way as a directory on the filesystem store.
    """

    type = "memory"

    def __init__(self, store_id: str, options: Optional[Dict[str, Any]] = None):
        super().__init__(store_id, options)
        self.blobs: Dict[str, bytes] = {}

    def _not_found(self, key: str) -> StorageError:
        return StorageError(
            f"Key {key} not found in store {self.id}",
            error_code="STORE_KEY_NOT_FOUND",
            details={"key": key, "store_id": self.id},
        )

    async def create_read_stream(
        self, key: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        check_key(key)
        if key not in self.blobs:
            raise self._not_found(key)
        data = self.blobs[key]
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]

    def create_write_stream(self, key: str) -> StoreWriter:
        return MemoryWriter(check_key(key), self)

    def _prefixed(self, key: str) -> List[str]:
        prefix = key.rstrip("/") + "/"
        return [k for k in self.blobs if k.startswith(prefix)]

    async def remove(self, key: str) -> None:
        check_key(key)
        keys = ([key] if key in self.blobs else []) + self._prefixed(key)
        if not keys:
            raise self._not_found(key)
        for k in keys:
            del self.blobs[k]

    async def exists(self, key: str) -> bool:
        check_key(key)
        return key in self.blobs or bool(self._prefixed(key))

    def keys(self) -> List[str]:
        """List stored keys"""
        return sorted(self.blobs)

    async def dispose(self) -> None:
        self.blobs.clear()


# Register the store
StoreFactory.register("memory", MemoryStore)
