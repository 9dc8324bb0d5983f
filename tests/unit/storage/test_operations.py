"""
Unit tests for the generic store operations
"""

import gzip

import pytest

from crawlflow.core.exceptions import StorageError
from crawlflow.storage import copy_to_store, gunzip_from_store, gzip_to_store

CONTENT = b"lon,lat,elevation\n" + b"0.5,45.2,312.0\n" * 5000


@pytest.mark.asyncio
async def test_copy_round_trip_between_backends(memory_store, fs_store):
    await memory_store.write("grid.csv", CONTENT)

    size = await copy_to_store(memory_store, "grid.csv", fs_store, "backup/grid.csv")
    assert size == len(CONTENT)
    assert (fs_store.path / "backup" / "grid.csv").read_bytes() == CONTENT

    await copy_to_store(fs_store, "backup/grid.csv", memory_store, "restored.csv")
    assert await memory_store.read("restored.csv") == CONTENT


@pytest.mark.asyncio
async def test_copy_within_same_store(memory_store):
    await memory_store.write("a", CONTENT)
    await copy_to_store(memory_store, "a", memory_store, "b")
    assert await memory_store.read("b") == await memory_store.read("a")


@pytest.mark.asyncio
async def test_gzip_produces_standard_gzip(memory_store, fs_store):
    await memory_store.write("grid.csv", CONTENT)

    await gzip_to_store(memory_store, "grid.csv", fs_store, "grid.csv.gz")

    compressed = (fs_store.path / "grid.csv.gz").read_bytes()
    assert len(compressed) < len(CONTENT)
    assert gzip.decompress(compressed) == CONTENT


@pytest.mark.asyncio
async def test_gunzip_standard_gzip(memory_store):
    await memory_store.write("grid.csv.gz", gzip.compress(CONTENT))

    size = await gunzip_from_store(memory_store, "grid.csv.gz", memory_store, "grid.csv")

    assert size == len(CONTENT)
    assert await memory_store.read("grid.csv") == CONTENT


@pytest.mark.asyncio
async def test_gunzip_invalid_content(memory_store):
    await memory_store.write("bad.gz", b"not gzip at all")

    with pytest.raises(StorageError) as exc_info:
        await gunzip_from_store(memory_store, "bad.gz", memory_store, "out")
    assert exc_info.value.error_code == "STORE_GZIP_INVALID"
    assert not await memory_store.exists("out")


@pytest.mark.asyncio
async def test_gunzip_truncated_content(memory_store):
    await memory_store.write("cut.gz", gzip.compress(CONTENT)[:100])

    with pytest.raises(StorageError):
        await gunzip_from_store(memory_store, "cut.gz", memory_store, "out")
    assert not await memory_store.exists("out")


@pytest.mark.asyncio
async def test_copy_missing_key(memory_store, fs_store):
    with pytest.raises(StorageError):
        await copy_to_store(memory_store, "missing", fs_store, "out")
    assert not await fs_store.exists("out")
