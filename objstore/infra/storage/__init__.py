"""Object storage abstraction layer.

This module provides a protocol-based abstraction for object storage backends,
with an adapter for S3, MinIO, and other S3-compatible services.
"""

from .client import (
    BackendIOError,
    CancellationError,
    ConnectionSetupError,
    NotExistError,
    ObjectStat,
    ObjectStorage,
    ReadError,
    StorageError,
)
from .s3_client import PUBLIC_READ_ACL, S3Storage, get_storage
from .streams import ChainedReader, ObjectReader

__all__ = [
    "BackendIOError",
    "CancellationError",
    "ChainedReader",
    "ConnectionSetupError",
    "NotExistError",
    "ObjectReader",
    "ObjectStat",
    "ObjectStorage",
    "PUBLIC_READ_ACL",
    "ReadError",
    "S3Storage",
    "StorageError",
    "get_storage",
]
