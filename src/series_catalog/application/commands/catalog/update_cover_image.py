"""Update cover image command."""

from dataclasses import dataclass
from typing import Optional

from ...commands.base import Command, CommandHandler, CommandResult
from ...catalog_service import CatalogService
from ....domain.catalog.value_objects import MediaRef


@dataclass(frozen=True, slots=True, kw_only=True)
class UpdateCoverImageCommand(Command):
    """Command to replace (or clear) a series' cover image."""

    series_id: str
    image: Optional[MediaRef] = None


class UpdateCoverImageCommandHandler(CommandHandler[UpdateCoverImageCommand, CommandResult]):
    """Handler for cover image updates."""

    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, command: UpdateCoverImageCommand) -> CommandResult:
        result = await self.service.update_cover_image(command.series_id, command.image)
        if result.is_failure():
            return CommandResult.failed(command, result.error(), message="Failed to update cover image")

        outcome = result.value()
        return CommandResult.succeeded(
            command,
            message=f"Updated cover image of {outcome.value.name!r}",
            result_data={"series": outcome.value.to_dict()},
            warnings=outcome.warnings,
        )

    def can_handle(self, command_type: type) -> bool:
        return command_type == UpdateCoverImageCommand
