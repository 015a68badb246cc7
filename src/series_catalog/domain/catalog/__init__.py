"""
Catalog Context - Series, episodes and the media they point at.

This bounded context is responsible for:
- The Collection of Series and their ordered Episodes
- Tagged media references (owned blobs versus external URLs)
- The record store interface the catalog is persisted through
"""

from .entities import Collection, Episode, Series, normalize_name
from .value_objects import (
    BlobHandle,
    BlobMedia,
    EpisodeSpec,
    ExternalMedia,
    MediaRef,
    media_ref_from_dict,
    media_ref_to_dict,
)
from .repositories import Mutation, RecordStore

__all__ = [
    # Entities
    "Collection",
    "Episode",
    "Series",
    "normalize_name",
    # Value Objects
    "BlobHandle",
    "BlobMedia",
    "EpisodeSpec",
    "ExternalMedia",
    "MediaRef",
    "media_ref_from_dict",
    "media_ref_to_dict",
    # Repositories
    "Mutation",
    "RecordStore",
]
