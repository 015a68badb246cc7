"""Blob storage for uploaded media files."""

from .blob_manager import BlobLifecycleManager, sanitize_extension
from .upload_policy import UploadPolicy, image_policy, video_policy

__all__ = [
    "BlobLifecycleManager",
    "sanitize_extension",
    "UploadPolicy",
    "image_policy",
    "video_policy",
]
