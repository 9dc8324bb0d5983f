"""
Generic store operations built only on the store contract.

These operations pipe a read stream of one store into a write stream of
another, so they behave identically whether source and destination are the
same store or two different backends (e.g. copying a file from an
in-memory store to the local filesystem).

Functions:
    copy_to_store: Copy a blob as-is
    gzip_to_store: Copy a blob, gzip-compressing it on the way
    gunzip_from_store: Copy a blob, decompressing gzip content on the way

Example:
    >>> await copy_to_store(memory, "grid.csv", fs, "backup/grid.csv")
    >>> await gzip_to_store(fs, "grid.csv", fs, "grid.csv.gz")
    >>> await gunzip_from_store(fs, "grid.csv.gz", memory, "grid.csv")
"""

import zlib

from crawlflow.core.exceptions.custom_exceptions import StorageError
from crawlflow.core.logging.logger import get_logger
from crawlflow.storage.base import BaseStore

logger = get_logger(__name__)

# zlib window bits selecting the gzip container
GZIP_WBITS = 16 + zlib.MAX_WBITS


async def copy_to_store(
    input_store: BaseStore, input_key: str, output_store: BaseStore, output_key: str
) -> int:
    """
    Copy a blob between stores.

    Returns:
        int: Number of bytes written
    """
    logger.debug(
        f"Copying {input_store.id}:{input_key} to {output_store.id}:{output_key}"
    )
    size = 0
    async with output_store.create_write_stream(output_key) as writer:
        async for chunk in input_store.create_read_stream(input_key):
            await writer.write(chunk)
            size += len(chunk)
    return size


async def gzip_to_store(
    input_store: BaseStore,
    input_key: str,
    output_store: BaseStore,
    output_key: str,
    level: int = 9,
) -> int:
    """
    Gzip a blob into a store.

    Returns:
        int: Number of compressed bytes written
    """
    logger.debug(
        f"Compressing {input_store.id}:{input_key} to {output_store.id}:{output_key}"
    )
    compressor = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
    size = 0
    async with output_store.create_write_stream(output_key) as writer:
        async for chunk in input_store.create_read_stream(input_key):
            compressed = compressor.compress(chunk)
            if compressed:
                await writer.write(compressed)
                size += len(compressed)
        tail = compressor.flush()
        await writer.write(tail)
        size += len(tail)
    return size


async def gunzip_from_store(
    input_store: BaseStore, input_key: str, output_store: BaseStore, output_key: str
) -> int:
    """
    Decompress a gzip blob into a store.

    Returns:
        int: Number of decompressed bytes written

    Raises:
        StorageError: If the input is not valid gzip content
    """
    logger.debug(
        f"Decompressing {input_store.id}:{input_key} to {output_store.id}:{output_key}"
    )
    decompressor = zlib.decompressobj(GZIP_WBITS)
    size = 0
    try:
        async with output_store.create_write_stream(output_key) as writer:
            async for chunk in input_store.create_read_stream(input_key):
                data = decompressor.decompress(chunk)
                if data:
                    await writer.write(data)
                    size += len(data)
            tail = decompressor.flush()
            if tail:
                await writer.write(tail)
                size += len(tail)
            if not decompressor.eof:
                raise StorageError(
                    f"Truncated gzip content in {input_key}",
                    error_code="STORE_GZIP_INVALID",
                    details={"key": input_key, "store_id": input_store.id},
                )
    except zlib.error as e:
        raise StorageError(
            f"Invalid gzip content in {input_key}: {e}",
            error_code="STORE_GZIP_INVALID",
            details={"key": input_key, "store_id": input_store.id},
        ) from e
    return size
