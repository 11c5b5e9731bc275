"""S3-compatible storage adapter.

This module binds the ObjectStorage contract to AWS S3, MinIO and other
S3-compatible object storage services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

import logging
from concurrent import futures
from functools import lru_cache
from typing import IO, TYPE_CHECKING, Any, Callable

from objstore.common.config import StoreConfig, get_config
from objstore.common.context import Context, check
from objstore.common.errors import (
    BackendIOError,
    CancellationError,
    ConnectionSetupError,
    NotExistError,
    StorageError,
)
from objstore.infra.storage import content_type
from objstore.infra.storage.client import ObjectStat
from objstore.infra.storage.streams import ObjectReader

if TYPE_CHECKING:
    from boto3.s3.transfer import TransferConfig

logger = logging.getLogger("storage")

# Canned ACL applied to every upload.
PUBLIC_READ_ACL = "public-read"

# Backend error codes with a contract-level meaning. Anything else is a
# BackendIOError.
_ERROR_KINDS: dict[str, type[StorageError]] = {
    "NoSuchKey": NotExistError,
    "NotFound": NotExistError,
    "404": NotExistError,
}

# Upper bound on how long a waiting caller goes without looking at its context.
_POLL_INTERVAL = 0.05


def _error_code(exc: BaseException) -> str | None:
    response = getattr(exc, "response", None) or {}
    error = response.get("Error") or {}
    code = error.get("Code")
    return str(code) if code else None


def _wait_step(ctx: Context) -> float:
    remaining = ctx.remaining()
    if remaining is None:
        return _POLL_INTERVAL
    return min(_POLL_INTERVAL, remaining)


def _release_response(future: futures.Future) -> None:
    """Close the body of a response nobody is waiting for any more."""
    if future.cancelled() or future.exception() is not None:
        return
    response = future.result()
    body = response.get("Body") if isinstance(response, dict) else None
    if body is not None:
        body.close()


class S3Storage:
    """Object storage on one S3 bucket.

    Holds only the bucket name, the boto3 client, the upload helper
    configuration and a worker pool for context-bound calls, so one instance
    can be shared by concurrent callers.
    """

    def __init__(self, config: StoreConfig) -> None:
        """Build the backend session and client from config.

        Args:
            config: Credentials and bucket location.

        Raises:
            ConnectionSetupError: If the session or client cannot be created.
        """
        self._bucket = config.bucket
        self._client, self._transfer_config = self._build_client(config)
        self._executor = futures.ThreadPoolExecutor(thread_name_prefix="objstore-s3")
        logger.debug(
            "storage_client_ready bucket=%s region=%s endpoint=%s",
            config.bucket,
            config.region,
            config.endpoint_url or "<default>",
            extra={
                "extra": {
                    "bucket": config.bucket,
                    "region": config.region,
                    "endpoint": config.endpoint_url,
                }
            },
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    def close(self) -> None:
        """Wait for abandoned backend calls to finish and stop the worker pool."""
        self._executor.shutdown(wait=True)

    @staticmethod
    def _build_client(config: StoreConfig) -> tuple[Any, "TransferConfig"]:
        """Create a boto3 S3 client and upload helper config from config."""
        try:
            import boto3
            from boto3.s3.transfer import TransferConfig
            from botocore.config import Config
            from botocore.exceptions import BotoCoreError
        except ImportError as exc:
            raise ConnectionSetupError(
                "boto3 and botocore are required for S3 storage backend. "
                "Install with: pip install boto3"
            ) from exc

        try:
            session = boto3.session.Session(
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
            )
            client = session.client(
                "s3",
                endpoint_url=config.endpoint_url,
                use_ssl=config.resolved_use_ssl,
                config=Config(s3={"addressing_style": config.addressing_style}),
            )
        except (BotoCoreError, ValueError) as exc:
            raise ConnectionSetupError(f"Failed to create S3 session: {exc}") from exc

        return client, TransferConfig()

    def _translate(
        self,
        exc: Exception,
        *,
        action: str,
        path: str,
        not_found: bool = True,
    ) -> StorageError:
        """Map a backend exception onto the storage error taxonomy."""
        code = _error_code(exc)
        kind = _ERROR_KINDS.get(code or "", BackendIOError)
        logger.debug(
            "storage_error action=%s bucket=%s path=%s code=%s",
            action,
            self._bucket,
            path,
            code or "-",
            extra={
                "extra": {
                    "action": action,
                    "bucket": self._bucket,
                    "path": path,
                    "code": code,
                }
            },
        )
        if kind is NotExistError and not_found:
            return NotExistError(path=path, bucket=self._bucket, code=code)
        return BackendIOError(f"Failed to {action}: {exc}", code=code)

    def _call(
        self, ctx: Context | None, method: Callable[..., Any], *, action: str, **kwargs: Any
    ) -> Any:
        """Run a blocking client call, giving up as soon as ctx is done.

        With a context the call runs on the worker pool while the caller
        waits on the context. An abandoned call keeps running in the pool;
        a response it returns later has its body closed there.
        """
        if ctx is None:
            return method(**kwargs)
        check(ctx)
        future = self._executor.submit(method, **kwargs)
        while True:
            done, _ = futures.wait([future], timeout=_wait_step(ctx))
            if done:
                return future.result()
            reason = ctx.error()
            if reason is None:
                continue
            if not future.cancel():
                future.add_done_callback(_release_response)
            logger.debug(
                "storage_abandoned action=%s bucket=%s reason=%s",
                action,
                self._bucket,
                reason,
                extra={"extra": {"action": action, "bucket": self._bucket, "reason": reason}},
            )
            raise CancellationError(reason)

    def save(self, content: IO[bytes], path: str, *, ctx: Context | None = None) -> None:
        """Upload content to path with a public-read ACL."""
        check(ctx)
        ctype, body = content_type.resolve_content_type(path, content, ctx=ctx)

        extra_args = {"ACL": PUBLIC_READ_ACL}
        if ctype:
            extra_args["ContentType"] = ctype

        logger.debug(
            "storage_upload bucket=%s path=%s content_type=%s",
            self._bucket,
            path,
            ctype or "-",
        )
        try:
            self._call(
                ctx,
                self._client.upload_fileobj,
                action="upload object",
                Fileobj=body,
                Bucket=self._bucket,
                Key=path,
                ExtraArgs=extra_args,
                Config=self._transfer_config,
            )
        except StorageError:
            raise
        except Exception as exc:
            raise self._translate(
                exc, action="upload object", path=path, not_found=False
            ) from exc
        check(ctx)

    def stat(self, path: str, *, ctx: Context | None = None) -> ObjectStat:
        """Get object metadata without downloading the content."""
        check(ctx)
        try:
            response = self._call(
                ctx,
                self._client.head_object,
                action="get object metadata",
                Bucket=self._bucket,
                Key=path,
            )
        except StorageError:
            raise
        except Exception as exc:
            raise self._translate(exc, action="get object metadata", path=path) from exc
        check(ctx)
        return self._object_stat(response)

    def open(self, path: str, *, ctx: Context | None = None) -> ObjectReader:
        """Open path for reading."""
        reader, _ = self._get_object(path, ctx=ctx)
        return reader

    def delete(self, path: str, *, ctx: Context | None = None) -> None:
        """Delete path. Deleting a missing key succeeds when the backend says so."""
        check(ctx)
        try:
            self._call(
                ctx,
                self._client.delete_object,
                action="delete object",
                Bucket=self._bucket,
                Key=path,
            )
        except StorageError:
            raise
        except Exception as exc:
            raise self._translate(
                exc, action="delete object", path=path, not_found=False
            ) from exc
        check(ctx)

    def open_with_stat(
        self, path: str, *, ctx: Context | None = None
    ) -> tuple[ObjectReader, ObjectStat]:
        """Open path for reading along with its metadata, in one request."""
        reader, response = self._get_object(path, ctx=ctx)
        try:
            stat = self._object_stat(response)
        except BackendIOError:
            reader.close()
            raise
        return reader, stat

    def _get_object(
        self, path: str, *, ctx: Context | None
    ) -> tuple[ObjectReader, dict[str, Any]]:
        check(ctx)
        try:
            response = self._call(
                ctx,
                self._client.get_object,
                action="get object",
                Bucket=self._bucket,
                Key=path,
            )
        except StorageError:
            raise
        except Exception as exc:
            raise self._translate(exc, action="get object", path=path) from exc

        reader = ObjectReader(response["Body"], ctx=ctx)
        try:
            check(ctx)
        except CancellationError:
            reader.close()
            raise
        return reader, response

    @staticmethod
    def _object_stat(response: dict[str, Any]) -> ObjectStat:
        modified = response.get("LastModified")
        size = response.get("ContentLength")
        if modified is None or size is None:
            raise BackendIOError("S3 response missing LastModified or ContentLength")
        return ObjectStat(modified_time=modified, size=int(size))


@lru_cache(maxsize=1)
def get_storage() -> S3Storage:
    return S3Storage(get_config())
