"""Checks applied by the upload transport before a file is staged."""

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import FrozenSet, Optional

from ...domain.result import Failure, Result, Success, ValidationError

VIDEO_EXTENSIONS = frozenset({"mp4", "mkv", "avi", "webm", "mov"})
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "gif"})


@dataclass(frozen=True)
class UploadPolicy:
    """Size and type limits for one kind of upload."""

    max_file_size: int = 500 * 1024 * 1024
    allowed_extensions: FrozenSet[str] = field(default_factory=lambda: VIDEO_EXTENSIONS)
    content_type_prefix: Optional[str] = "video/"

    def check(self, filename: str, size: int,
              content_type: Optional[str] = None) -> Result[str, ValidationError]:
        """Validate an incoming file, returning its normalized extension."""
        extension = PurePath(filename or "").suffix.lower().lstrip(".")
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            return Failure(ValidationError(f"Unsupported file type for {filename!r} (allowed: {allowed})"))

        if content_type and self.content_type_prefix and not content_type.startswith(self.content_type_prefix):
            return Failure(ValidationError(f"Content type {content_type!r} is not allowed"))

        if size < 0 or size > self.max_file_size:
            limit_mb = self.max_file_size / (1024 * 1024)
            return Failure(ValidationError(f"{filename!r} exceeds the {limit_mb:.0f} MB upload limit"))

        return Success(extension)


def video_policy(max_file_size: int = 500 * 1024 * 1024) -> UploadPolicy:
    return UploadPolicy(max_file_size=max_file_size)


def image_policy(max_file_size: int = 20 * 1024 * 1024) -> UploadPolicy:
    return UploadPolicy(
        max_file_size=max_file_size,
        allowed_extensions=IMAGE_EXTENSIONS,
        content_type_prefix="image/",
    )
