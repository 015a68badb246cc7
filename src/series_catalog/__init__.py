"""Series Catalog

A catalog of episode series whose media are either uploaded files or
external URLs, kept consistent with the upload directory across failures.
"""

__version__ = "0.1.0"

from .application.bootstrap import build_catalog, create_buses
from .application.catalog_service import CatalogService, Outcome
from .domain.catalog.entities import Collection, Episode, Series
from .domain.catalog.value_objects import BlobHandle, BlobMedia, EpisodeSpec, ExternalMedia, MediaRef
from .exceptions import (
    ConfigurationError,
    CorruptStoreError,
    OrphanCleanupWarning,
    SeriesCatalogError,
    StorageError,
)
from .infrastructure.repositories.record_store import FileBasedRecordStore, InMemoryRecordStore
from .infrastructure.storage.blob_manager import BlobLifecycleManager
from .models.config import CatalogConfig

__all__ = [
    # Service
    "CatalogService",
    "Outcome",
    "build_catalog",
    "create_buses",

    # Records
    "Collection",
    "Series",
    "Episode",
    "EpisodeSpec",
    "BlobMedia",
    "BlobHandle",
    "ExternalMedia",
    "MediaRef",

    # Storage
    "FileBasedRecordStore",
    "InMemoryRecordStore",
    "BlobLifecycleManager",

    # Configuration
    "CatalogConfig",

    # Errors
    "SeriesCatalogError",
    "StorageError",
    "CorruptStoreError",
    "ConfigurationError",
    "OrphanCleanupWarning",
]
