"""Backend-neutral object storage with an S3-compatible adapter."""

from objstore.common.config import StoreConfig, get_config
from objstore.common.context import Context
from objstore.infra.storage import (
    PUBLIC_READ_ACL,
    BackendIOError,
    CancellationError,
    ConnectionSetupError,
    NotExistError,
    ObjectReader,
    ObjectStat,
    ObjectStorage,
    ReadError,
    S3Storage,
    StorageError,
    get_storage,
)

__all__ = [
    "BackendIOError",
    "CancellationError",
    "ConnectionSetupError",
    "Context",
    "NotExistError",
    "ObjectReader",
    "ObjectStat",
    "ObjectStorage",
    "PUBLIC_READ_ACL",
    "ReadError",
    "S3Storage",
    "StorageError",
    "StoreConfig",
    "get_config",
    "get_storage",
]
