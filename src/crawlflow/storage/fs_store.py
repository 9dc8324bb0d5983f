"""
Local filesystem store backend.

Keys map to paths relative to the store directory; ``/`` in a key creates
sub-directories. Keys resolving outside of the store directory, or to the
directory itself, are rejected. Writes go to a temporary file that replaces
the target on close, so readers never observe a partially written blob.
"""

import asyncio
import shutil
import uuid
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import aiofiles
import aiofiles.os

from crawlflow.core.config.settings import settings
from crawlflow.core.exceptions.custom_exceptions import StorageError
from crawlflow.storage.base import (
    DEFAULT_CHUNK_SIZE,
    BaseStore,
    StoreFactory,
    StoreWriter,
    check_key,
)


class FileSystemWriter(StoreWriter):
    """Writer committing to a file through a temporary sibling"""

    def __init__(self, key: str, file_path: Path):
        super().__init__(key)
        self.file_path = file_path
        self.temp_path = file_path.with_name(
            f".{file_path.name}.{uuid.uuid4().hex}.part"
        )
        self._file = None

    async def _open(self) -> None:
        if self._file is None:
            await aiofiles.os.makedirs(self.file_path.parent, exist_ok=True)
            self._file = await aiofiles.open(self.temp_path, "wb")

    async def write(self, chunk: bytes) -> None:
        if self.closed:
            raise StorageError(
                f"Writer for {self.key} is closed", error_code="STORE_WRITER_CLOSED"
            )
        try:
            await self._open()
            await self._file.write(chunk)
        except OSError as e:
            raise StorageError(
                f"Failed to write {self.key}: {e}", details={"key": self.key}
            ) from e

    async def close(self) -> None:
        if self.closed:
            return
        try:
            await self._open()
            await self._file.close()
            await aiofiles.os.replace(self.temp_path, self.file_path)
        except OSError as e:
            raise StorageError(
                f"Failed to commit {self.key}: {e}", details={"key": self.key}
            ) from e
        finally:
            self.closed = True

    async def abort(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._file is None:
            return
        await self._file.close()
        if await aiofiles.os.path.exists(self.temp_path):
            await aiofiles.os.remove(self.temp_path)


class FileSystemStore(BaseStore):
    """
    Store writing blobs as files under a root directory.

    Options:
        path: Root directory, defaults to DATA_DIR/<store id>

    Example:
        >>> store = FileSystemStore("job-store", {"path": "./data"})
        >>> await store.write("grid/cell-0.json", b"{}")
        >>> store.path / "grid" / "cell-0.json"
    """

    type = "fs"

    def __init__(self, store_id: str, options: Optional[Dict[str, Any]] = None):
        super().__init__(store_id, options)
        root = self.options.get("path") or Path(settings.DATA_DIR) / store_id
        self.path = Path(root).resolve()
        self.path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        check_key(key)
        file_path = (self.path / key).resolve()
        if self.path not in file_path.parents:
            raise StorageError(
                f"Key {key} resolves outside of store {self.id}",
                error_code="STORE_INVALID_KEY",
                details={"key": key, "store_id": self.id},
            )
        return file_path

    async def create_read_stream(
        self, key: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        file_path = self._resolve(key)
        if not await aiofiles.os.path.isfile(file_path):
            raise StorageError(
                f"Key {key} not found in store {self.id}",
                error_code="STORE_KEY_NOT_FOUND",
                details={"key": key, "store_id": self.id},
            )
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    chunk = await f.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise StorageError(
                f"Failed to read {key}: {e}", details={"key": key, "store_id": self.id}
            ) from e

    def create_write_stream(self, key: str) -> StoreWriter:
        return FileSystemWriter(key, self._resolve(key))

    async def remove(self, key: str) -> None:
        file_path = self._resolve(key)
        try:
            if await aiofiles.os.path.isdir(file_path):
                loop = asyncio.get_event_loop()
                await loop.run_in_executor(None, shutil.rmtree, file_path)
            else:
                await aiofiles.os.remove(file_path)
        except FileNotFoundError as e:
            raise StorageError(
                f"Key {key} not found in store {self.id}",
                error_code="STORE_KEY_NOT_FOUND",
                details={"key": key, "store_id": self.id},
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to remove {key}: {e}",
                details={"key": key, "store_id": self.id},
            ) from e
        self.logger.debug(f"Removed {key}")

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.exists(self._resolve(key))


# Register the store
StoreFactory.register("fs", FileSystemStore)
