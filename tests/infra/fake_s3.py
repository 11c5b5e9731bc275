"""In-memory stand-in for the boto3 S3 client used by storage tests."""

from __future__ import annotations

import io
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from unittest.mock import patch

from botocore.exceptions import ClientError
from botocore.response import StreamingBody


def client_error(code: str, operation: str, status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} error"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


@dataclass
class FakeS3Client:
    """In-memory mock of the four S3 primitives the adapter relies on.

    Missing keys surface the way S3 reports them: HeadObject fails with a bare
    ``404`` code, GetObject with ``NoSuchKey``, DeleteObject succeeds.
    """

    objects: dict[str, dict[str, Any]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)
    streams: list[io.BytesIO] = field(default_factory=list)
    gates: dict[str, threading.Event] = field(default_factory=dict)

    def block(self, operation: str) -> threading.Event:
        """Hold calls to operation until the returned event is set."""
        gate = self.gates[operation] = threading.Event()
        return gate

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.gates:
            self.gates[operation].wait(timeout=5)
        if operation in self.failures:
            raise self.failures[operation]

    def upload_fileobj(
        self,
        Fileobj: Any,
        Bucket: str,
        Key: str,
        ExtraArgs: dict[str, Any] | None = None,
        Callback: Any = None,
        Config: Any = None,
    ) -> None:
        self._maybe_fail("upload_fileobj")
        chunks = []
        while True:
            chunk = Fileobj.read(100)
            if not chunk:
                break
            chunks.append(chunk)
        self.objects[f"{Bucket}/{Key}"] = {
            "data": b"".join(chunks),
            "extra_args": dict(ExtraArgs or {}),
            "last_modified": datetime.now(timezone.utc),
        }

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self._maybe_fail("head_object")
        obj = self.objects.get(f"{Bucket}/{Key}")
        if obj is None:
            raise client_error("404", "HeadObject", 404)
        return {
            "ContentLength": len(obj["data"]),
            "LastModified": obj["last_modified"],
            "ContentType": obj["extra_args"].get("ContentType"),
        }

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self._maybe_fail("get_object")
        obj = self.objects.get(f"{Bucket}/{Key}")
        if obj is None:
            raise client_error("NoSuchKey", "GetObject", 404)
        raw = io.BytesIO(obj["data"])
        self.streams.append(raw)
        body = StreamingBody(raw, len(obj["data"]))
        return {
            "Body": body,
            "ContentLength": len(obj["data"]),
            "LastModified": obj["last_modified"],
            "ContentType": obj["extra_args"].get("ContentType"),
        }

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self._maybe_fail("delete_object")
        self.objects.pop(f"{Bucket}/{Key}", None)
        return {"ResponseMetadata": {"HTTPStatusCode": 204}}

    def put(self, bucket: str, key: str, data: bytes) -> None:
        """Test helper to seed an object without going through the adapter."""
        self.objects[f"{bucket}/{key}"] = {
            "data": data,
            "extra_args": {},
            "last_modified": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        }


@dataclass
class MultipartRecorder:
    """Stand-in for the S3 calls the boto3 transfer manager makes on upload.

    Install it on a real boto3 client so ``upload_fileobj`` runs its own
    single-part versus multipart logic against these methods.
    """

    calls: list[str] = field(default_factory=list)
    parts: dict[int, bytes] = field(default_factory=dict)
    bodies: list[bytes] = field(default_factory=list)
    create_args: dict[str, Any] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _record(self, operation: str) -> None:
        with self._lock:
            self.calls.append(operation)

    def put_object(self, *, Bucket: str, Key: str, Body: Any, **kwargs: Any) -> dict[str, Any]:
        data = Body.read()
        self._record("put_object")
        with self._lock:
            self.bodies.append(data)
        return {"ETag": '"single"'}

    def create_multipart_upload(self, *, Bucket: str, Key: str, **kwargs: Any) -> dict[str, Any]:
        self._record("create_multipart_upload")
        self.create_args = dict(kwargs)
        return {"UploadId": "upload-1"}

    def upload_part(
        self, *, Bucket: str, Key: str, UploadId: str, PartNumber: int, Body: Any, **kwargs: Any
    ) -> dict[str, Any]:
        data = Body.read()
        self._record("upload_part")
        with self._lock:
            self.parts[PartNumber] = data
        return {"ETag": f'"part-{PartNumber}"'}

    def complete_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:
        self._record("complete_multipart_upload")
        return {}

    def abort_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:
        self._record("abort_multipart_upload")
        return {}

    def install(self, client: Any):
        return patch.multiple(
            client,
            put_object=self.put_object,
            create_multipart_upload=self.create_multipart_upload,
            upload_part=self.upload_part,
            complete_multipart_upload=self.complete_multipart_upload,
            abort_multipart_upload=self.abort_multipart_upload,
        )

    @property
    def uploaded(self) -> bytes:
        if self.parts:
            return b"".join(self.parts[number] for number in sorted(self.parts))
        return b"".join(self.bodies)
