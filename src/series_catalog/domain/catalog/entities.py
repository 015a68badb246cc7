"""Catalog Context Entities.

This module defines the core entities for the Catalog bounded context:
a Collection of Series, each owning an ordered list of Episodes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set

from .value_objects import (
    BlobMedia,
    MediaRef,
    media_ref_from_dict,
    media_ref_to_dict,
)

FORMAT_VERSION = 1


def normalize_name(name: str) -> str:
    """Key used for case-insensitive series name comparison."""
    return name.strip().casefold()


@dataclass(kw_only=True)
class Episode:
    """A single item of a series."""

    id: str
    title: str
    media: MediaRef
    owner_handle: str
    parent_series_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "media": media_ref_to_dict(self.media),
            "owner_handle": self.owner_handle,
            "parent_series_id": self.parent_series_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Episode":
        _require_object(data, "Episode")
        media = media_ref_from_dict(data["media"])
        if media is None:
            raise ValueError(f"Episode {data.get('id')!r} has no media")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            media=media,
            owner_handle=str(data["owner_handle"]),
            parent_series_id=str(data["parent_series_id"]),
        )


@dataclass(kw_only=True)
class Series:
    """
    A named collection of ordered episodes.

    ``last_episode_ordinal`` only ever grows, so an episode id is never
    handed out twice within a series even after deletions.
    """

    id: str
    name: str
    description: str = ""
    cover_image: Optional[MediaRef] = None
    owner_handle: str
    episodes: List[Episode] = field(default_factory=list)
    last_episode_ordinal: int = 0

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    def next_ordinal(self) -> int:
        return self.last_episode_ordinal + 1

    def append_episode(self, episode: Episode, ordinal: int) -> None:
        """Append an episode minted with ``ordinal``."""
        if self.find_episode(episode.id) is not None:
            raise ValueError(f"Episode {episode.id} already exists in series {self.id}")
        self.episodes.append(episode)
        self.last_episode_ordinal = max(self.last_episode_ordinal, ordinal)

    def find_episode(self, episode_id: str) -> Optional[Episode]:
        for episode in self.episodes:
            if episode.id == episode_id:
                return episode
        return None

    def remove_episode(self, episode_id: str) -> Optional[Episode]:
        for index, episode in enumerate(self.episodes):
            if episode.id == episode_id:
                return self.episodes.pop(index)
        return None

    def media_refs(self) -> List[MediaRef]:
        """Every media reference held by this series, cover first."""
        refs: List[MediaRef] = []
        if self.cover_image is not None:
            refs.append(self.cover_image)
        refs.extend(episode.media for episode in self.episodes)
        return refs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "cover_image": media_ref_to_dict(self.cover_image),
            "owner_handle": self.owner_handle,
            "last_episode_ordinal": self.last_episode_ordinal,
            "episodes": [episode.to_dict() for episode in self.episodes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Series":
        _require_object(data, "Series")
        series = cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            cover_image=media_ref_from_dict(data.get("cover_image")),
            owner_handle=str(data["owner_handle"]),
        )
        for ordinal, item in enumerate(_require_list(data.get("episodes", []), "episodes"), start=1):
            series.append_episode(Episode.from_dict(item), ordinal)
        if "last_episode_ordinal" in data:
            series.last_episode_ordinal = max(series.last_episode_ordinal, int(data["last_episode_ordinal"]))
        return series


@dataclass
class Collection:
    """The whole catalog: every series, in creation order."""

    series: List[Series] = field(default_factory=list)

    def __iter__(self) -> Iterator[Series]:
        return iter(self.series)

    def __len__(self) -> int:
        return len(self.series)

    def find(self, series_id: str) -> Optional[Series]:
        for item in self.series:
            if item.id == series_id:
                return item
        return None

    def find_by_name(self, name: str) -> Optional[Series]:
        key = normalize_name(name)
        for item in self.series:
            if item.name_key == key:
                return item
        return None

    def name_taken(self, name: str) -> bool:
        return self.find_by_name(name) is not None

    def add(self, series: Series) -> None:
        if self.find(series.id) is not None:
            raise ValueError(f"Series id {series.id} already exists")
        self.series.append(series)

    def remove(self, series_id: str) -> Optional[Series]:
        for index, item in enumerate(self.series):
            if item.id == series_id:
                return self.series.pop(index)
        return None

    def blob_paths(self) -> Set[str]:
        """Names of every blob still referenced by a live record."""
        return {
            ref.path
            for item in self.series
            for ref in item.media_refs()
            if isinstance(ref, BlobMedia)
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format_version": FORMAT_VERSION,
            "series": [item.to_dict() for item in self.series],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Collection":
        """Rebuild a collection from its persisted form.

        Raises:
            ValueError: If the payload is malformed or of an unknown version.
        """
        if not isinstance(data, dict):
            raise ValueError("Collection root must be an object")
        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported format version: {version!r}")

        collection = cls()
        for item in _require_list(data.get("series", []), "series"):
            series = Series.from_dict(item)
            if collection.name_taken(series.name):
                raise ValueError(f"Duplicate series name: {series.name!r}")
            collection.add(series)
        return collection


def _require_object(data: Any, kind: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"{kind} record must be an object, got {type(data).__name__}")


def _require_list(data: Any, field_name: str) -> List[Any]:
    if not isinstance(data, list):
        raise ValueError(f"{field_name!r} must be a list, got {type(data).__name__}")
    return data
