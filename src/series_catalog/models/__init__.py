"""Configuration models for the series catalog."""

from .config import AccessConfig, CatalogConfig, StorageConfig, UploadConfig

__all__ = ["AccessConfig", "CatalogConfig", "StorageConfig", "UploadConfig"]
