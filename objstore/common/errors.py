from __future__ import annotations


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""


class ConnectionSetupError(StorageError):
    """Raised when the backend session or client cannot be built."""


class NotExistError(StorageError):
    """Raised when no object exists at the requested path.

    Callers match on this type whatever the backend; ``code`` keeps the
    backend's raw not-found code for diagnostics only.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        path: str | None = None,
        bucket: str | None = None,
        code: str | None = None,
    ) -> None:
        self.path = path
        self.bucket = bucket
        self.code = code
        if message is None:
            message = f"{path} does not exist"
            if bucket:
                message += f" in bucket {bucket}"
            if code:
                message += f", code: {code}"
        super().__init__(message)


class ReadError(StorageError):
    """Raised when the local content stream cannot be read."""


class BackendIOError(StorageError):
    """Raised for any other backend or transport failure."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)


class CancellationError(StorageError):
    """Raised when the caller's context is cancelled or past its deadline."""
