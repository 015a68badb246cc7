"""Configuration model for the series catalog."""

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
from dataclasses import dataclass, field

from ..exceptions import ConfigurationError


@dataclass
class StorageConfig:
    """Where the catalog document and the uploaded files live."""
    data_dir: Path = Path("./data")
    catalog_file: str = "catalog.json"
    uploads_dir: str = "uploads"

    @property
    def catalog_path(self) -> Path:
        return Path(self.data_dir) / self.catalog_file

    @property
    def uploads_path(self) -> Path:
        return Path(self.data_dir) / self.uploads_dir


@dataclass
class UploadConfig:
    """Limits applied by the upload transport before staging."""
    max_file_size: int = 500 * 1024 * 1024
    max_image_size: int = 20 * 1024 * 1024
    blob_prefix: str = "video"
    chunk_size: int = 1024 * 1024
    orphan_grace_seconds: int = 3600


@dataclass
class AccessConfig:
    """Which administrator policy is in force."""
    policy: str = "admin_flag"  # "admin_flag" or "fixed_admin"
    admins: List[str] = field(default_factory=lambda: ["admin"])
    admin_handle: Optional[str] = None


@dataclass
class CatalogConfig:
    """Main configuration model."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    uploads: UploadConfig = field(default_factory=UploadConfig)
    access: AccessConfig = field(default_factory=AccessConfig)

    @classmethod
    def default(cls, data_dir: Optional[Path] = None) -> "CatalogConfig":
        """Create a default configuration, optionally rooted at ``data_dir``."""
        config = cls()
        if data_dir is not None:
            config.storage.data_dir = Path(data_dir)
        return config

    def validate(self) -> None:
        if self.access.policy not in ("admin_flag", "fixed_admin"):
            raise ConfigurationError(f"Unknown access policy: {self.access.policy!r}")
        if self.uploads.max_file_size <= 0 or self.uploads.max_image_size <= 0:
            raise ConfigurationError("Upload size limits must be positive")
        if self.uploads.chunk_size <= 0:
            raise ConfigurationError("Chunk size must be positive")
        if not self.uploads.blob_prefix or "/" in self.uploads.blob_prefix:
            raise ConfigurationError(f"Invalid blob prefix: {self.uploads.blob_prefix!r}")


def _dataclass_to_dict(obj):
    """Convert dataclass to dict recursively."""
    from dataclasses import is_dataclass, asdict
    if is_dataclass(obj):
        result = {}
        for key, value in asdict(obj).items():
            result[key] = _dataclass_to_dict(value)
        return result
    elif isinstance(obj, Path):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: _dataclass_to_dict(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_dataclass_to_dict(item) for item in obj]
    else:
        return obj


def _dict_to_dataclass(data: Dict[str, Any], dataclass_type):
    """Convert dict to dataclass recursively."""
    from dataclasses import is_dataclass, fields
    if not is_dataclass(dataclass_type):
        return data
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected an object for {dataclass_type.__name__}")

    unknown = set(data) - {f.name for f in fields(dataclass_type)}
    if unknown:
        raise ConfigurationError(f"Unknown {dataclass_type.__name__} option(s): {', '.join(sorted(unknown))}")

    kwargs = {}
    for f in fields(dataclass_type):
        if f.name not in data:
            continue
        field_type = _SECTIONS.get(f.name) if dataclass_type is CatalogConfig else None
        if field_type is not None:
            kwargs[f.name] = _dict_to_dataclass(data[f.name], field_type)
        elif f.name == "data_dir":
            kwargs[f.name] = Path(data[f.name])
        else:
            kwargs[f.name] = data[f.name]

    return dataclass_type(**kwargs)


_SECTIONS = {
    "storage": StorageConfig,
    "uploads": UploadConfig,
    "access": AccessConfig,
}


def load_config(config_path: Path) -> CatalogConfig:
    """Load configuration from JSON file."""
    try:
        with open(config_path, 'r') as f:
            config_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration {config_path}: {e}") from e

    try:
        config = _dict_to_dataclass(config_data, CatalogConfig)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration {config_path}: {e}") from e
    config.validate()
    return config


def save_config(config: CatalogConfig, config_path: Path) -> None:
    """Save configuration to JSON file."""
    config_dict = _dataclass_to_dict(config)

    with open(config_path, 'w') as f:
        json.dump(config_dict, f, indent=2)
