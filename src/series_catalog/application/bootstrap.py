"""Wiring of the catalog from configuration."""

import logging
from typing import Optional, Tuple

from ..domain.access import build_access_gate
from ..domain.identity import IdGenerator
from ..events import EventBus
from ..infrastructure.repositories.record_store import FileBasedRecordStore
from ..infrastructure.storage.blob_manager import BlobLifecycleManager
from ..models.config import CatalogConfig
from .catalog_service import CatalogService
from .commands import CommandBus
from .commands.catalog import (
    AddEpisodeCommand,
    AddEpisodeCommandHandler,
    CreateSeriesCommand,
    CreateSeriesCommandHandler,
    DeleteEpisodeCommand,
    DeleteEpisodeCommandHandler,
    DeleteSeriesCommand,
    DeleteSeriesCommandHandler,
    UpdateCoverImageCommand,
    UpdateCoverImageCommandHandler,
)
from .queries import QueryBus
from .queries.catalog import (
    GetSeriesQuery,
    GetSeriesQueryHandler,
    ListSeriesQuery,
    ListSeriesQueryHandler,
)

logger = logging.getLogger(__name__)


async def build_catalog(config: CatalogConfig,
                        event_bus: Optional[EventBus] = None,
                        id_generator: Optional[IdGenerator] = None) -> CatalogService:
    """Load the durable collection and assemble a ready CatalogService.

    Raises:
        StorageError: If the catalog document cannot be read.
    """
    config.validate()
    store = await FileBasedRecordStore.open(config.storage.catalog_path)
    blobs = BlobLifecycleManager(
        config.storage.uploads_path,
        prefix=config.uploads.blob_prefix,
        chunk_size=config.uploads.chunk_size,
    )
    gate = build_access_gate(
        config.access.policy,
        admins=config.access.admins,
        admin_handle=config.access.admin_handle,
    )
    logger.debug(f"Catalog ready at {config.storage.data_dir} (access policy: {config.access.policy})")
    return CatalogService(store, blobs, gate, id_generator=id_generator, event_bus=event_bus)


def create_buses(service: CatalogService) -> Tuple[CommandBus, QueryBus]:
    """Register every catalog command and query handler."""
    command_bus = CommandBus()
    command_bus.register(CreateSeriesCommand, CreateSeriesCommandHandler(service))
    command_bus.register(AddEpisodeCommand, AddEpisodeCommandHandler(service))
    command_bus.register(UpdateCoverImageCommand, UpdateCoverImageCommandHandler(service))
    command_bus.register(DeleteEpisodeCommand, DeleteEpisodeCommandHandler(service))
    command_bus.register(DeleteSeriesCommand, DeleteSeriesCommandHandler(service))

    query_bus = QueryBus()
    query_bus.register(ListSeriesQuery, ListSeriesQueryHandler(service))
    query_bus.register(GetSeriesQuery, GetSeriesQueryHandler(service))
    return command_bus, query_bus
