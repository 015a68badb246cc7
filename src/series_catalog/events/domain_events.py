"""
Domain Events - Specific event implementations.

This module defines the events published by the catalog after each commit.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .event_bus import DomainEvent


@dataclass(kw_only=True)
class SeriesCreated(DomainEvent):
    """Fired when a series (and its initial episodes) is committed."""
    series_id: str
    name: str
    owner_handle: str
    episode_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.aggregate_id = self.aggregate_id or self.series_id
        super().__post_init__()

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "name": self.name,
            "owner_handle": self.owner_handle,
            "episode_ids": self.episode_ids,
        }


@dataclass(kw_only=True)
class EpisodeAdded(DomainEvent):
    """Fired when an episode is appended to a series."""
    series_id: str
    episode_id: str
    title: str
    media_kind: str

    def __post_init__(self):
        self.aggregate_id = self.aggregate_id or self.series_id
        super().__post_init__()

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "episode_id": self.episode_id,
            "title": self.title,
            "media_kind": self.media_kind,
        }


@dataclass(kw_only=True)
class CoverImageUpdated(DomainEvent):
    """Fired when a series' cover image is replaced."""
    series_id: str
    previous: Optional[str] = None
    current: Optional[str] = None

    def __post_init__(self):
        self.aggregate_id = self.aggregate_id or self.series_id
        super().__post_init__()

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "previous": self.previous,
            "current": self.current,
        }


@dataclass(kw_only=True)
class EpisodeDeleted(DomainEvent):
    """Fired when an episode is removed from a series."""
    series_id: str
    episode_id: str
    deleted_by: str
    released_blobs: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.aggregate_id = self.aggregate_id or self.series_id
        super().__post_init__()

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "episode_id": self.episode_id,
            "deleted_by": self.deleted_by,
            "released_blobs": self.released_blobs,
        }


@dataclass(kw_only=True)
class SeriesDeleted(DomainEvent):
    """Fired when a series and all of its episodes are removed."""
    series_id: str
    name: str
    deleted_by: str
    episode_count: int = 0
    released_blobs: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.aggregate_id = self.aggregate_id or self.series_id
        super().__post_init__()

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "name": self.name,
            "deleted_by": self.deleted_by,
            "episode_count": self.episode_count,
            "released_blobs": self.released_blobs,
        }
