"""
In-Memory S3 Double for the Test Suites

Behaves like the subset of the aiobotocore S3 client the operator uses,
including the error shapes: every failure is a real
``botocore.exceptions.ClientError`` with the code and HTTP status S3
reports.

Extras for tests:
- ``calls``: ordered (operation, kwargs) log
- ``foreign_buckets``: names owned by another tenant
- ``hidden_buckets``: owned but not (yet) listed, for consistency checks
- ``fail_next(op, exc)``: raise ``exc`` on the next call of ``op``
- ``before[op]``: async hook awaited before ``op`` runs
"""

from __future__ import annotations

import hashlib
import io
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from botocore.exceptions import ClientError


def client_error(code: str, status: int, operation: str, message: str = "") -> ClientError:
    """A ClientError shaped like a real S3 response."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": message or code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def etag_of(data: bytes) -> str:
    return f'"{hashlib.md5(data).hexdigest()}"'


class FakeBody:
    """Streaming body with the aiobotocore read / async-with surface."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)
        self.closed = False

    async def read(self, amt: Optional[int] = None) -> bytes:
        if amt is None:
            return self._buffer.read()
        return self._buffer.read(amt)

    async def __aenter__(self) -> FakeBody:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True


class FakeS3Client:
    """Single-tenant in-memory S3."""

    def __init__(self) -> None:
        self.buckets: Dict[str, Dict[str, bytes]] = {}
        self.bucket_regions: Dict[str, Optional[str]] = {}
        self.created: Dict[str, datetime] = {}
        self.foreign_buckets: Set[str] = set()
        self.hidden_buckets: Set[str] = set()
        self.uploads: Dict[str, Tuple[str, str, Dict[int, bytes]]] = {}
        self.aborted: List[str] = []
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.before: Dict[str, Callable[..., Awaitable[None]]] = {}
        self._failures: Dict[str, BaseException] = {}
        self._upload_seq = 0

    # -------------------------------------------------------------------------
    # Test controls
    # -------------------------------------------------------------------------
    def fail_next(self, operation: str, exc: BaseException) -> None:
        self._failures[operation] = exc

    def calls_to(self, operation: str) -> List[Dict[str, Any]]:
        return [kwargs for op, kwargs in self.calls if op == operation]

    def mutating_calls(self) -> List[str]:
        writes = {
            "put_object", "create_multipart_upload", "upload_part",
            "complete_multipart_upload", "create_bucket", "delete_bucket", "delete_object",
        }
        return [op for op, _ in self.calls if op in writes]

    async def _enter(self, operation: str, kwargs: Dict[str, Any]) -> None:
        self.calls.append((operation, kwargs))
        hook = self.before.get(operation)
        if hook is not None:
            await hook(**kwargs)
        exc = self._failures.pop(operation, None)
        if exc is not None:
            raise exc

    def _objects(self, bucket: str, operation: str) -> Dict[str, bytes]:
        if bucket not in self.buckets:
            raise client_error("NoSuchBucket", 404, operation)
        return self.buckets[bucket]

    # -------------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------------
    async def create_bucket(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("create_bucket", kwargs)
        name = kwargs["Bucket"]
        if name in self.foreign_buckets:
            raise client_error("BucketAlreadyExists", 409, "CreateBucket")
        constraint = kwargs.get("CreateBucketConfiguration", {}).get("LocationConstraint")
        if name in self.buckets:
            # us-east-1 acknowledges a repeat create by the owner with 200.
            if constraint is None and self.bucket_regions.get(name) is None:
                return {"Location": f"/{name}"}
            raise client_error("BucketAlreadyOwnedByYou", 409, "CreateBucket")
        self.buckets[name] = {}
        self.bucket_regions[name] = constraint
        self.created[name] = datetime.now(timezone.utc)
        return {"Location": f"/{name}"}

    async def delete_bucket(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("delete_bucket", kwargs)
        name = kwargs["Bucket"]
        objects = self._objects(name, "DeleteBucket")
        if objects:
            raise client_error("BucketNotEmpty", 409, "DeleteBucket")
        del self.buckets[name]
        self.bucket_regions.pop(name, None)
        self.created.pop(name, None)
        return {}

    async def head_bucket(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("head_bucket", kwargs)
        name = kwargs["Bucket"]
        if name in self.buckets:
            return {}
        if name in self.foreign_buckets:
            raise client_error("403", 403, "HeadBucket", "Forbidden")
        raise client_error("404", 404, "HeadBucket", "Not Found")

    async def get_bucket_location(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("get_bucket_location", kwargs)
        name = kwargs["Bucket"]
        if name in self.foreign_buckets:
            raise client_error("AccessDenied", 403, "GetBucketLocation")
        self._objects(name, "GetBucketLocation")
        return {
            "LocationConstraint": self.bucket_regions.get(name),
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }

    async def list_buckets(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("list_buckets", kwargs)
        return {
            "Buckets": [
                {"Name": name, "CreationDate": self.created[name]}
                for name in sorted(self.buckets)
                if name not in self.hidden_buckets
            ],
        }

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------
    async def list_objects_v2(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("list_objects_v2", kwargs)
        objects = self._objects(kwargs["Bucket"], "ListObjectsV2")
        prefix = kwargs.get("Prefix", "")
        max_keys = kwargs.get("MaxKeys", 1000)
        start_after = kwargs.get("ContinuationToken")

        keys = sorted(k for k in objects if k.startswith(prefix))
        if start_after is not None:
            keys = [k for k in keys if k > start_after]
        page, rest = keys[:max_keys], keys[max_keys:]

        response: Dict[str, Any] = {
            "KeyCount": len(page),
            "IsTruncated": bool(rest),
        }
        if page:
            response["Contents"] = [
                {
                    "Key": k,
                    "Size": len(objects[k]),
                    "ETag": etag_of(objects[k]),
                    "LastModified": datetime.now(timezone.utc),
                    "StorageClass": "STANDARD",
                }
                for k in page
            ]
        if rest:
            response["NextContinuationToken"] = page[-1]
        return response

    async def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("put_object", kwargs)
        objects = self._objects(kwargs["Bucket"], "PutObject")
        body = kwargs.get("Body", b"")
        data = body.read() if hasattr(body, "read") else bytes(body)
        objects[kwargs["Key"]] = data
        return {"ETag": etag_of(data)}

    def _lookup(self, kwargs: Dict[str, Any], operation: str, head: bool = False) -> bytes:
        objects = self._objects(kwargs["Bucket"], operation)
        key = kwargs["Key"]
        if key not in objects:
            if head:
                raise client_error("404", 404, operation, "Not Found")
            raise client_error("NoSuchKey", 404, operation)
        data = objects[key]
        if_match = kwargs.get("IfMatch")
        if if_match is not None and if_match != etag_of(data):
            raise client_error("PreconditionFailed", 412, operation)
        return data

    async def head_object(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("head_object", kwargs)
        data = self._lookup(kwargs, "HeadObject", head=True)
        return {"ContentLength": len(data), "ETag": etag_of(data)}

    async def get_object(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("get_object", kwargs)
        data = self._lookup(kwargs, "GetObject")
        byte_range = kwargs.get("Range")
        if byte_range:
            start, end = byte_range.removeprefix("bytes=").split("-")
            data = data[int(start):int(end) + 1]
        return {"Body": FakeBody(data), "ContentLength": len(data)}

    async def delete_object(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("delete_object", kwargs)
        objects = self._objects(kwargs["Bucket"], "DeleteObject")
        objects.pop(kwargs["Key"], None)
        return {}

    # -------------------------------------------------------------------------
    # Multipart
    # -------------------------------------------------------------------------
    async def create_multipart_upload(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("create_multipart_upload", kwargs)
        self._objects(kwargs["Bucket"], "CreateMultipartUpload")
        self._upload_seq += 1
        upload_id = f"upload-{self._upload_seq}"
        self.uploads[upload_id] = (kwargs["Bucket"], kwargs["Key"], {})
        return {"UploadId": upload_id}

    async def upload_part(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("upload_part", kwargs)
        upload_id = kwargs["UploadId"]
        if upload_id not in self.uploads:
            raise client_error("NoSuchUpload", 404, "UploadPart")
        data = bytes(kwargs["Body"])
        self.uploads[upload_id][2][kwargs["PartNumber"]] = data
        return {"ETag": etag_of(data)}

    async def complete_multipart_upload(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("complete_multipart_upload", kwargs)
        upload_id = kwargs["UploadId"]
        if upload_id not in self.uploads:
            raise client_error("NoSuchUpload", 404, "CompleteMultipartUpload")
        bucket, key, parts = self.uploads.pop(upload_id)
        numbers = [p["PartNumber"] for p in kwargs["MultipartUpload"]["Parts"]]
        if numbers != sorted(numbers) or set(numbers) != set(parts):
            raise client_error("InvalidPartOrder", 400, "CompleteMultipartUpload")
        data = b"".join(parts[n] for n in numbers)
        self._objects(bucket, "CompleteMultipartUpload")[key] = data
        return {"ETag": f'"{hashlib.md5(data).hexdigest()}-{len(numbers)}"'}

    async def abort_multipart_upload(self, **kwargs: Any) -> Dict[str, Any]:
        await self._enter("abort_multipart_upload", kwargs)
        self.uploads.pop(kwargs["UploadId"], None)
        self.aborted.append(kwargs["UploadId"])
        return {}


# =============================================================================
# SESSION DOUBLES
# =============================================================================
class _ClientContext:
    def __init__(self, session: FakeSession) -> None:
        self._session = session

    async def __aenter__(self) -> FakeS3Client:
        self._session.open_clients += 1
        return self._session.s3

    async def __aexit__(self, *exc_info: Any) -> None:
        self._session.open_clients -= 1
        self._session.closed_clients += 1


class FakeSession:
    """Stands in for ``aioboto3.Session``; records how it was used."""

    def __init__(self, s3: Optional[FakeS3Client] = None, **session_kwargs: Any) -> None:
        self.s3 = s3 or FakeS3Client()
        self.session_kwargs = session_kwargs
        self.client_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.open_clients = 0
        self.closed_clients = 0

    def client(self, service_name: str, **kwargs: Any) -> _ClientContext:
        self.client_calls.append((service_name, kwargs))
        return _ClientContext(self)


class FakeSessionFactory:
    """Callable passed as ``session_factory``; hands out one shared session."""

    def __init__(self, s3: Optional[FakeS3Client] = None) -> None:
        self.session = FakeSession(s3)
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> FakeSession:
        self.calls.append(kwargs)
        self.session.session_kwargs = kwargs
        return self.session
