"""Lifecycle management for uploaded media files.

The manager owns the upload directory. A blob is staged (written in full
and synced) before any record references it, and released only after the
referencing record has been durably removed.
"""

import asyncio
import logging
import os
import re
import time
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, BinaryIO, Iterable, List, Optional, Set, Union
from uuid import uuid4

import aiofiles
import aiofiles.os

from ...domain.catalog.value_objects import BlobHandle, BlobMedia, MediaRef
from ...domain.result import Failure, Result, Success, ValidationError
from ...exceptions import OrphanCleanupWarning, StorageError

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".partial"
DEFAULT_CHUNK_SIZE = 1024 * 1024

_EXTENSION_PATTERN = re.compile(r"^[a-z0-9]{1,10}$")

BlobContent = Union[bytes, bytearray, memoryview, BinaryIO, Iterable[bytes], AsyncIterable[bytes]]


def sanitize_extension(suggested: Optional[str]) -> str:
    """Return ``.ext`` for a safe extension, or an empty string."""
    if not suggested:
        return ""
    extension = suggested.strip().lower().rsplit(".", 1)[-1]
    if not _EXTENSION_PATTERN.match(extension):
        return ""
    return f".{extension}"


async def _iter_chunks(content: BlobContent, chunk_size: int) -> AsyncIterator[bytes]:
    if isinstance(content, (bytes, bytearray, memoryview)):
        data = bytes(content)
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
    elif hasattr(content, "read"):
        while True:
            chunk = content.read(chunk_size)
            if asyncio.iscoroutine(chunk):
                chunk = await chunk
            if not chunk:
                break
            yield chunk
    elif hasattr(content, "__aiter__"):
        async for chunk in content:
            yield chunk
    else:
        for chunk in content:
            yield chunk


class BlobLifecycleManager:
    """Stages, discards and releases files in the upload directory."""

    def __init__(self, root: Union[str, Path], prefix: str = "video",
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self.chunk_size = chunk_size

    def path_for(self, ref: BlobMedia) -> Path:
        """Absolute path of a blob, guaranteed to live inside the root."""
        path = (self.root / ref.path).resolve()
        if path.parent != self.root.resolve():
            raise ValidationError(f"Blob {ref.path!r} is outside the upload directory")
        return path

    async def exists(self, ref: MediaRef) -> bool:
        if not isinstance(ref, BlobMedia):
            return False
        return await aiofiles.os.path.isfile(self.path_for(ref))

    async def stage(self, content: BlobContent,
                    suggested_extension: Optional[str] = None) -> Result[BlobHandle, StorageError]:
        """Write ``content`` to a fresh, unpredictably named blob.

        The bytes are fully written and synced before the blob becomes
        visible under its final name. A cancelled upload leaves nothing
        behind and re-raises ``CancelledError``.
        """
        name = f"{self.prefix}-{uuid4().hex}{sanitize_extension(suggested_extension)}"
        final_path = self.root / name
        partial_path = self.root / f".{name}{PARTIAL_SUFFIX}"
        loop = asyncio.get_running_loop()
        size = 0

        try:
            async with aiofiles.open(partial_path, "wb") as f:
                async for chunk in _iter_chunks(content, self.chunk_size):
                    await f.write(chunk)
                    size += len(chunk)
                await f.flush()
                await loop.run_in_executor(None, os.fsync, f.fileno())
            await aiofiles.os.replace(partial_path, final_path)
        except asyncio.CancelledError:
            logger.info(f"Upload of {name} cancelled, discarding")
            _remove_quietly(partial_path)
            _remove_quietly(final_path)
            raise
        except (OSError, TypeError) as e:
            logger.error(f"Failed to stage blob {name}: {e}")
            _remove_quietly(partial_path)
            return Failure(StorageError(f"Failed to stage blob {name}: {e}"))

        logger.info(f"Staged blob {name} ({size} bytes)")
        return Success(BlobMedia(name))

    async def discard(self, handle: BlobHandle) -> None:
        """Delete a staged blob that was never committed. Idempotent."""
        try:
            await aiofiles.os.remove(self.path_for(handle))
            logger.info(f"Discarded staged blob {handle.path}")
        except FileNotFoundError:
            logger.debug(f"Staged blob {handle.path} already gone")
        except ValidationError as e:
            logger.error(f"Refusing to discard {handle.path}: {e}")
        except OSError as e:
            logger.error(f"Failed to discard staged blob {handle.path}: {e}")

    async def discard_all(self, handles: Iterable[BlobHandle]) -> None:
        await asyncio.gather(*(self.discard(handle) for handle in handles))

    async def release(self, ref: Optional[MediaRef]) -> Optional[OrphanCleanupWarning]:
        """Delete the file behind a blob reference; external media is left alone.

        Best effort: a missing or undeletable file is logged and returned as
        a warning, never raised.
        """
        if not isinstance(ref, BlobMedia):
            return None

        try:
            await aiofiles.os.remove(self.path_for(ref))
        except ValidationError as e:
            warning = OrphanCleanupWarning(ref.path, str(e))
        except FileNotFoundError:
            warning = OrphanCleanupWarning(ref.path, "file already missing")
        except OSError as e:
            warning = OrphanCleanupWarning(ref.path, str(e))
        else:
            logger.info(f"Released blob {ref.path}")
            return None

        logger.warning(str(warning))
        return warning

    async def release_all(self, refs: Iterable[MediaRef]) -> List[OrphanCleanupWarning]:
        results = await asyncio.gather(*(self.release(ref) for ref in refs))
        return [warning for warning in results if warning is not None]

    async def sweep_orphans(self, referenced: Set[str], grace_seconds: float = 3600.0,
                            dry_run: bool = False) -> List[str]:
        """Remove blob files no record references.

        Only files older than ``grace_seconds`` are considered, so uploads
        staged for an operation still in flight are left alone.
        """
        cutoff = time.time() - grace_seconds
        removed = []

        for name in sorted(await aiofiles.os.listdir(self.root)):
            is_partial = name.startswith(".") and name.endswith(PARTIAL_SUFFIX)
            is_blob = name.startswith(f"{self.prefix}-")
            if not (is_partial or is_blob) or name in referenced:
                continue

            path = self.root / name
            try:
                stat = await aiofiles.os.stat(path)
            except FileNotFoundError:
                continue
            if stat.st_mtime > cutoff:
                continue

            if not dry_run:
                try:
                    await aiofiles.os.remove(path)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.error(f"Could not remove orphan {name}: {e}")
                    continue
            removed.append(name)

        if removed:
            action = "Would remove" if dry_run else "Removed"
            logger.info(f"{action} {len(removed)} orphaned blob(s) from {self.root}")
        return removed


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Could not remove {path}: {e}")
