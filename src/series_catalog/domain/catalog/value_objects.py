"""Catalog Context Value Objects.

Media references are a tagged variant: a ``BlobMedia`` is a file owned by
the catalog's upload directory, an ``ExternalMedia`` is a URL the catalog
never touches. Ownership is decided by the type, never by inspecting the
string.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True, slots=True)
class BlobMedia:
    """A file stored in the upload directory, named relative to it."""

    path: str

    def __post_init__(self) -> None:
        if not self.path or "/" in self.path or "\\" in self.path or self.path in (".", ".."):
            raise ValueError(f"Invalid blob name: {self.path!r}")

    def __str__(self) -> str:
        return self.path

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "blob", "path": self.path}


@dataclass(frozen=True, slots=True)
class ExternalMedia:
    """A media URL hosted elsewhere."""

    url: str

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("External media URL cannot be empty")

    def __str__(self) -> str:
        return self.url

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "external", "url": self.url}


MediaRef = Union[BlobMedia, ExternalMedia]

# A staged upload is referenced exactly the way a committed one is.
BlobHandle = BlobMedia


def media_ref_from_dict(data: Optional[Dict[str, Any]]) -> Optional[MediaRef]:
    """Rebuild a media reference from its persisted form.

    Raises:
        ValueError: If the payload is not a recognised media reference.
    """
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"Media reference must be an object, got {type(data).__name__}")

    kind = data.get("kind")
    if kind == "blob":
        return BlobMedia(str(data["path"]))
    if kind == "external":
        return ExternalMedia(str(data["url"]))
    raise ValueError(f"Unknown media kind: {kind!r}")


def media_ref_to_dict(ref: Optional[MediaRef]) -> Optional[Dict[str, Any]]:
    """Serialize a media reference (or its absence)."""
    return ref.to_dict() if ref is not None else None


@dataclass(frozen=True, slots=True)
class EpisodeSpec:
    """Describes one episode of a series being created.

    Exactly one of ``upload_key`` (naming a blob staged for the same call)
    and ``url`` must be set.
    """

    title: str = ""
    url: Optional[str] = None
    upload_key: Optional[str] = None

    @property
    def has_upload(self) -> bool:
        return bool(self.upload_key)

    @property
    def has_url(self) -> bool:
        return bool(self.url and self.url.strip())
