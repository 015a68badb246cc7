"""
Record Store Implementations.

This module provides the durable, JSON file backed record store and an
in-memory variant with the same contract. Every mutation runs on a private
deep copy of the committed collection and is committed as a whole.
"""

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Optional, Union
from uuid import uuid4

import aiofiles
import aiofiles.os

from ...domain.catalog.entities import Collection
from ...domain.catalog.repositories import Mutation, RecordStore
from ...domain.result import Failure, Result, Success
from ...exceptions import CorruptStoreError, StorageError

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def apply_mutation(fn: Mutation, working: Collection) -> Result[Collection, Exception]:
    """Run a mutation function, turning stray exceptions into failures."""
    try:
        result = fn(working)
    except Exception as e:
        logger.warning(f"Mutation raised {type(e).__name__}: {e}")
        return Failure(e)

    if not isinstance(result, Result):
        return Failure(TypeError(f"Mutation must return a Result, got {type(result).__name__}"))
    if result.is_success() and not isinstance(result.value(), Collection):
        return Failure(TypeError("Mutation must produce a Collection"))
    return result


class InMemoryRecordStore(RecordStore):
    """In-memory implementation of RecordStore for testing and dry runs."""

    def __init__(self, initial: Optional[Collection] = None):
        self._committed = copy.deepcopy(initial) if initial is not None else Collection()
        self._lock = asyncio.Lock()

    async def load(self) -> Result[Collection, Exception]:
        return Success(self.snapshot())

    def snapshot(self) -> Collection:
        return copy.deepcopy(self._committed)

    async def mutate(self, fn: Mutation) -> Result[Collection, Exception]:
        async with self._lock:
            result = apply_mutation(fn, copy.deepcopy(self._committed))
            if result.is_failure():
                return result
            self._committed = result.value()
            return Success(copy.deepcopy(self._committed))


class FileBasedRecordStore(RecordStore):
    """File-based implementation of RecordStore using a single JSON document.

    Commits are written to a temporary file in the same directory, flushed
    to disk and moved over the previous document with ``os.replace``, so a
    crash leaves either the old or the new collection on disk.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._committed: Optional[Collection] = None
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, path: Union[str, Path]) -> "FileBasedRecordStore":
        """Create a store and load it, raising on unreadable data."""
        store = cls(path)
        (await store.load()).or_else_raise()
        return store

    @property
    def is_loaded(self) -> bool:
        return self._committed is not None

    async def load(self) -> Result[Collection, Exception]:
        """Load the collection from disk, creating an empty one if absent."""
        async with self._lock:
            try:
                await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
                await self._remove_stale_temp_files()

                if await aiofiles.os.path.exists(self.path):
                    async with aiofiles.open(self.path, "rb") as f:
                        raw = await f.read()
                    collection = self._decode(raw)
                else:
                    collection = Collection()
                    await self._write_atomic(self._encode(collection))
                    logger.info(f"Created empty catalog at {self.path}")
            except CorruptStoreError as e:
                logger.error(str(e))
                return Failure(e)
            except OSError as e:
                logger.error(f"Cannot load catalog from {self.path}: {e}")
                return Failure(StorageError(f"Cannot load catalog from {self.path}: {e}"))

            self._committed = collection
            logger.info(f"Loaded {len(collection)} series from {self.path}")
            return Success(copy.deepcopy(collection))

    def snapshot(self) -> Collection:
        if self._committed is None:
            raise StorageError("Record store has not been loaded")
        return copy.deepcopy(self._committed)

    async def mutate(self, fn: Mutation) -> Result[Collection, Exception]:
        async with self._lock:
            if self._committed is None:
                return Failure(StorageError("Record store has not been loaded"))

            result = apply_mutation(fn, copy.deepcopy(self._committed))
            if result.is_failure():
                return result
            new_collection = result.value()

            try:
                payload = self._encode(new_collection)
            except (TypeError, ValueError) as e:
                logger.error(f"Cannot serialize catalog: {e}")
                return Failure(StorageError(f"Cannot serialize catalog: {e}"))

            write = asyncio.ensure_future(self._write_atomic(payload))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # A started commit runs to completion before the lock is released.
                await asyncio.wait({write})
                if not write.cancelled() and write.exception() is None:
                    self._committed = new_collection
                raise
            except OSError as e:
                logger.error(f"Failed to commit catalog to {self.path}: {e}")
                return Failure(StorageError(f"Failed to commit catalog to {self.path}: {e}"))

            self._committed = new_collection
            logger.debug(f"Committed {len(new_collection)} series to {self.path}")
            return Success(copy.deepcopy(new_collection))

    def _encode(self, collection: Collection) -> str:
        return json.dumps(collection.to_dict(), indent=2, ensure_ascii=False)

    def _decode(self, raw: bytes) -> Collection:
        try:
            return Collection.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptStoreError(f"Catalog file {self.path} is malformed: {e}", path=self.path) from e

    async def _write_atomic(self, payload: str) -> None:
        """Write ``payload`` to a temp file and atomically replace the document."""
        tmp_path = self.path.with_name(f".{self.path.name}.{uuid4().hex}{TEMP_SUFFIX}")
        loop = asyncio.get_running_loop()
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
                await f.flush()
                await loop.run_in_executor(None, os.fsync, f.fileno())
            await aiofiles.os.replace(tmp_path, self.path)
            await loop.run_in_executor(None, _fsync_directory, self.path.parent)
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

    async def _remove_stale_temp_files(self) -> None:
        prefix = f".{self.path.name}."
        for name in await aiofiles.os.listdir(self.path.parent):
            if name.startswith(prefix) and name.endswith(TEMP_SUFFIX):
                logger.warning(f"Removing leftover temp file from interrupted commit: {name}")
                await aiofiles.os.remove(self.path.parent / name)


def _fsync_directory(directory: Path) -> None:
    """Persist a rename on filesystems that need the directory synced."""
    if not hasattr(os, "O_DIRECTORY"):
        return
    try:
        fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    except OSError as e:
        logger.debug(f"Cannot open {directory} for fsync: {e}")
        return
    try:
        os.fsync(fd)
    except OSError as e:
        logger.debug(f"Directory fsync unsupported for {directory}: {e}")
    finally:
        os.close(fd)
