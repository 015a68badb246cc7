"""Add episode command."""

from dataclasses import dataclass
from typing import Optional

from ...commands.base import Command, CommandHandler, CommandResult
from ...catalog_service import CatalogService
from ....domain.catalog.value_objects import MediaRef


@dataclass(frozen=True, slots=True, kw_only=True)
class AddEpisodeCommand(Command):
    """Command to append an episode to an existing series."""

    series_id: str
    title: str = ""
    media: Optional[MediaRef] = None
    owner_handle: Optional[str] = None


class AddEpisodeCommandHandler(CommandHandler[AddEpisodeCommand, CommandResult]):
    """Handler for adding episodes."""

    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, command: AddEpisodeCommand) -> CommandResult:
        result = await self.service.add_episode(
            command.series_id, command.title, command.media, owner_handle=command.owner_handle
        )
        if result.is_failure():
            return CommandResult.failed(command, result.error(), message="Failed to add episode")

        episode = result.value()
        return CommandResult.succeeded(
            command,
            message=f"Added episode {episode.id}",
            result_data={"episode": episode.to_dict()},
        )

    def can_handle(self, command_type: type) -> bool:
        return command_type == AddEpisodeCommand
