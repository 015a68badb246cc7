"""Catalog commands."""

from .create_series import CreateSeriesCommand, CreateSeriesCommandHandler
from .add_episode import AddEpisodeCommand, AddEpisodeCommandHandler
from .update_cover_image import UpdateCoverImageCommand, UpdateCoverImageCommandHandler
from .delete_records import (
    DeleteEpisodeCommand,
    DeleteEpisodeCommandHandler,
    DeleteSeriesCommand,
    DeleteSeriesCommandHandler,
)

__all__ = [
    "CreateSeriesCommand",
    "CreateSeriesCommandHandler",
    "AddEpisodeCommand",
    "AddEpisodeCommandHandler",
    "UpdateCoverImageCommand",
    "UpdateCoverImageCommandHandler",
    "DeleteEpisodeCommand",
    "DeleteEpisodeCommandHandler",
    "DeleteSeriesCommand",
    "DeleteSeriesCommandHandler",
]
