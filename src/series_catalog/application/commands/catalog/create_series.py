"""Create series command."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ...commands.base import Command, CommandHandler, CommandResult
from ...catalog_service import CatalogService
from ....domain.catalog.value_objects import BlobHandle, EpisodeSpec, MediaRef


@dataclass(frozen=True, slots=True, kw_only=True)
class CreateSeriesCommand(Command):
    """Command to create a series, optionally with its first episodes.

    ``uploads`` maps upload keys to blobs already staged by the transport;
    each episode spec refers to one of them by ``upload_key`` or gives a URL.
    """

    name: str
    description: str = ""
    owner_handle: str
    episodes: Tuple[EpisodeSpec, ...] = ()
    uploads: Dict[str, BlobHandle] = field(default_factory=dict)
    cover_image: Optional[MediaRef] = None


class CreateSeriesCommandHandler(CommandHandler[CreateSeriesCommand, CommandResult]):
    """Handler for creating series."""

    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, command: CreateSeriesCommand) -> CommandResult:
        result = await self.service.create_series_with_episodes(
            command.name,
            command.description,
            command.owner_handle,
            command.episodes,
            command.uploads,
            cover_image=command.cover_image,
        )
        if result.is_failure():
            return CommandResult.failed(command, result.error(), message="Failed to create series")

        series = result.value()
        return CommandResult.succeeded(
            command,
            message=f"Created series {series.name!r}",
            result_data={"series": series.to_dict()},
        )

    def can_handle(self, command_type: type) -> bool:
        return command_type == CreateSeriesCommand
