"""Delete episode and delete series commands."""

from dataclasses import dataclass

from ...commands.base import Command, CommandHandler, CommandResult
from ...catalog_service import CatalogService


@dataclass(frozen=True, slots=True, kw_only=True)
class DeleteEpisodeCommand(Command):
    """Command to delete one episode on behalf of ``subject_handle``."""

    series_id: str
    episode_id: str
    subject_handle: str


@dataclass(frozen=True, slots=True, kw_only=True)
class DeleteSeriesCommand(Command):
    """Command to delete a whole series on behalf of ``subject_handle``."""

    series_id: str
    subject_handle: str


class DeleteEpisodeCommandHandler(CommandHandler[DeleteEpisodeCommand, CommandResult]):
    """Handler for episode deletion."""

    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, command: DeleteEpisodeCommand) -> CommandResult:
        result = await self.service.delete_episode(
            command.series_id, command.episode_id, command.subject_handle
        )
        if result.is_failure():
            return CommandResult.failed(command, result.error(), message="Failed to delete episode")

        outcome = result.value()
        return CommandResult.succeeded(
            command,
            message=f"Deleted episode {outcome.value.id}",
            result_data={"success": True, "episode_id": outcome.value.id},
            warnings=outcome.warnings,
        )

    def can_handle(self, command_type: type) -> bool:
        return command_type == DeleteEpisodeCommand


class DeleteSeriesCommandHandler(CommandHandler[DeleteSeriesCommand, CommandResult]):
    """Handler for series deletion."""

    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, command: DeleteSeriesCommand) -> CommandResult:
        result = await self.service.delete_series(command.series_id, command.subject_handle)
        if result.is_failure():
            return CommandResult.failed(command, result.error(), message="Failed to delete series")

        outcome = result.value()
        return CommandResult.succeeded(
            command,
            message=f"Deleted series {outcome.value.name!r} and {len(outcome.value.episodes)} episode(s)",
            result_data={"success": True, "series_id": outcome.value.id},
            warnings=outcome.warnings,
        )

    def can_handle(self, command_type: type) -> bool:
        return command_type == DeleteSeriesCommand
