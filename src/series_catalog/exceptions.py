"""Custom exceptions for the series catalog."""

from pathlib import Path
from typing import Optional, Union


class SeriesCatalogError(Exception):
    """Base exception for series catalog errors."""
    pass


class StorageError(SeriesCatalogError):
    """Raised when the record store or the blob directory cannot be read or written."""
    pass


class CorruptStoreError(StorageError):
    """Raised when the persisted collection is unreadable or malformed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ConfigurationError(SeriesCatalogError):
    """Raised when there's an error in configuration."""
    pass


class OrphanCleanupWarning(UserWarning):
    """A blob release found nothing to delete, or failed to delete it.

    Never raised by the catalog: the record-level change has already
    committed, so this is returned alongside the successful result.
    """

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"Could not remove blob {path}: {reason}")
        self.path = str(path)
        self.reason = reason
