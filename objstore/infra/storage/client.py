"""Storage contract and data types.

This module defines the backend-neutral interface for object storage
operations: saving, reading, stat-ing and deleting objects addressed by flat
path keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import IO, TYPE_CHECKING, Protocol, runtime_checkable

from objstore.common.errors import (
    BackendIOError,
    CancellationError,
    ConnectionSetupError,
    NotExistError,
    ReadError,
    StorageError,
)

if TYPE_CHECKING:
    from objstore.common.context import Context
    from objstore.infra.storage.streams import ObjectReader

__all__ = [
    "BackendIOError",
    "CancellationError",
    "ConnectionSetupError",
    "NotExistError",
    "ObjectStat",
    "ObjectStorage",
    "ReadError",
    "StorageError",
]


@dataclass(frozen=True, slots=True)
class ObjectStat:
    """Metadata reported by the backend for one object."""

    modified_time: datetime
    size: int


@runtime_checkable
class ObjectStorage(Protocol):
    """Protocol defining the interface for object storage backends.

    Every operation takes an optional ``ctx``; a cancelled or expired context
    makes the operation raise CancellationError.
    """

    def save(
        self, content: IO[bytes], path: str, *, ctx: "Context | None" = None
    ) -> None:
        """Upload content to path, creating or overwriting the object.

        Args:
            content: Readable binary stream.
            path: Object key.
            ctx: Cancellation context.

        Raises:
            ReadError: If the leading bytes used for content sniffing cannot be read.
            BackendIOError: If the upload fails.
        """
        ...

    def stat(self, path: str, *, ctx: "Context | None" = None) -> ObjectStat:
        """Get object metadata without transferring the body.

        Raises:
            NotExistError: If no object exists at path.
            BackendIOError: If the operation fails.
        """
        ...

    def open(self, path: str, *, ctx: "Context | None" = None) -> "ObjectReader":
        """Open path for reading. The caller must close the returned stream.

        Raises:
            NotExistError: If no object exists at path.
            BackendIOError: If the operation fails.
        """
        ...

    def delete(self, path: str, *, ctx: "Context | None" = None) -> None:
        """Delete the object at path.

        Raises:
            BackendIOError: If the operation fails.
        """
        ...

    def open_with_stat(
        self, path: str, *, ctx: "Context | None" = None
    ) -> tuple["ObjectReader", ObjectStat]:
        """Open path for reading and return its metadata in one request.

        Raises:
            NotExistError: If no object exists at path.
            BackendIOError: If the operation fails.
        """
        ...
