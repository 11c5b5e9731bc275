"""Binary stream adapters used around uploads and downloads."""

from __future__ import annotations

import io
from typing import IO, Any

from objstore.common.context import Context, check
from objstore.common.errors import BackendIOError, CancellationError, StorageError


class ChainedReader(io.RawIOBase):
    """Read a sequence of chunks and streams one after another.

    Parts are ``bytes`` or readable binary file objects. The reader is not
    seekable, so upload helpers stream it rather than seeking around in it.
    Each read fills the caller's buffer across part boundaries and short
    reads, and comes back short only at the end of the last part.
    """

    def __init__(self, *parts: bytes | IO[bytes], ctx: Context | None = None) -> None:
        super().__init__()
        self._parts: list[IO[bytes]] = [
            io.BytesIO(part) if isinstance(part, (bytes, bytearray)) else part
            for part in parts
        ]
        self._ctx = ctx

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        view = memoryview(buffer).cast("B")
        filled = 0
        while filled < len(view) and self._parts:
            check(self._ctx)
            data = self._parts[0].read(len(view) - filled)
            if not data:
                self._parts.pop(0)
                continue
            view[filled : filled + len(data)] = data
            filled += len(data)
        if not filled:
            check(self._ctx)
        return filled


class ObjectReader(io.RawIOBase):
    """Readable stream over an object body returned by the backend.

    Closing the reader releases the underlying connection. Use it as a
    context manager so that happens even when reading stops early. Transport
    failures while reading surface as ``BackendIOError``.
    """

    def __init__(self, body: Any, *, ctx: Context | None = None) -> None:
        super().__init__()
        self._body = body
        self._ctx = ctx

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        self._check()
        view = memoryview(buffer).cast("B")
        data = self._read_body(len(view))
        if not data:
            return 0
        view[: len(data)] = data
        return len(data)

    def readall(self) -> bytes:
        chunks = []
        while True:
            self._check()
            data = self._read_body(io.DEFAULT_BUFFER_SIZE)
            if not data:
                break
            chunks.append(data)
        return b"".join(chunks)

    def close(self) -> None:
        if not self.closed:
            try:
                self._body.close()
            finally:
                super().close()

    def _read_body(self, size: int) -> bytes:
        try:
            return self._body.read(size)
        except StorageError:
            raise
        except Exception as exc:
            raise BackendIOError(f"Failed to read object: {exc}") from exc

    def _check(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed object reader")
        try:
            check(self._ctx)
        except CancellationError:
            self.close()
            raise
