"""
S3 Operator: Idempotent Bucket and Object Operations
====================================================

Wraps a raw aioboto3 S3 client so that retrying any call is safe and
its outcome is deterministic.

Signal Normalization:
---------------------
| Operation                 | Absorbed signal          | Outcome            |
|---------------------------|--------------------------|--------------------|
| create_bucket             | BucketAlreadyOwnedByYou  | False              |
| create_bucket (us-east-1) | head_bucket 200          | False              |
| delete_bucket             | NoSuchBucket             | False              |
| bucket_exists_globally    | 404 / 403 / 301          | False / True / True|
| get_object_if_exists      | empty listing            | WasFound.absent()  |
| delete_object             | NoSuchKey                | no-op              |

Any other backend fault is raised as ``UnhandledBackendError`` with the
original exception chained. Nothing is retried here; transport retries
are configured on the botocore client.

Usage:
    operator = S3Operator(config)
    async with provider.connect() as conn:
        await operator.create_bucket(conn, BucketName("alpha"))    # True
        await operator.create_bucket(conn, BucketName("alpha"))    # False
"""

from __future__ import annotations

import os
import time
from typing import Any, BinaryIO, Dict, List, Optional

from s3ops.core import constants as C
from s3ops.core.config import S3Config
from s3ops.core.errors import (
    BackendQueryError,
    FileAlreadyExistsError,
    UnhandledBackendError,
    ValidationError,
)
from s3ops.core.types import BucketName, ObjectKey, S3Region, WasFound
from s3ops.observability.logging import StructuredLogger
from s3ops.observability.metrics import OperatorMetrics
from s3ops.s3.connection import S3Connection
from s3ops.s3.faults import (
    BACKEND_FAULTS,
    FaultKind,
    backend_error_code,
    classify_fault,
    describe_fault,
    http_status,
)
from s3ops.s3.models import BucketInfo, ObjectInfo
from s3ops.s3.transfer import TransferManager

# head_bucket outcomes meaning "the name is taken", whoever owns it.
_GLOBALLY_TAKEN = frozenset({FaultKind.ACCESS_DENIED, FaultKind.REDIRECT})
_GLOBALLY_FREE = frozenset({FaultKind.NOT_FOUND, FaultKind.BUCKET_NOT_FOUND})


class S3Operator:
    """
    Production ``ObjectStorageOperator`` over aioboto3.

    Holds no connection and no per-call state: the caller passes an
    ``S3Connection`` to every method and remains its owner.

    Args:
        config: Supplies the multipart sizing (defaults when omitted).
        metrics: Counter sink; a private instance is created when omitted.
        transfer: Override the transfer strategy (mainly for tests).
    """

    __slots__ = ("_transfer", "_metrics", "_logger")

    def __init__(
        self,
        config: Optional[S3Config] = None,
        metrics: Optional[OperatorMetrics] = None,
        transfer: Optional[TransferManager] = None,
    ) -> None:
        config = config or S3Config()
        self._transfer = transfer or TransferManager.from_config(config)
        self._metrics = metrics or OperatorMetrics()
        self._logger = StructuredLogger("s3ops.operator")

    @property
    def metrics(self) -> OperatorMetrics:
        return self._metrics

    @property
    def transfer(self) -> TransferManager:
        return self._transfer

    # =========================================================================
    # BUCKET OPERATIONS
    # =========================================================================
    async def create_bucket(self, conn: S3Connection, bucket: BucketName) -> bool:
        """
        Create ``bucket`` in the connection's region.

        us-east-1 answers 200 to a repeat CreateBucket from the owner
        instead of BucketAlreadyOwnedByYou, so there a ``head_bucket``
        probe runs first. Probe and create are two calls: a bucket created
        by someone else between them still reports True.
        """
        op = "create_bucket"
        self._metrics.record_call(op)

        kwargs: Dict[str, Any] = {"Bucket": bucket.value}
        if conn.region.is_default:
            if await self._already_reachable(conn, bucket):
                self._metrics.record_absorbed(op)
                self._logger.debug("Bucket already present", operation=op, bucket=bucket.value)
                return False
        else:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": conn.region.value}

        try:
            await conn.client.create_bucket(**kwargs)
        except BACKEND_FAULTS as e:
            if classify_fault(e) is FaultKind.BUCKET_ALREADY_OWNED:
                self._absorbed(op, e, bucket=bucket.value)
                return False
            raise self._unhandled(op, e, bucket=bucket.value) from e

        self._logger.info("Bucket created", bucket=bucket.value, region=conn.region.value)
        return True

    async def _already_reachable(self, conn: S3Connection, bucket: BucketName) -> bool:
        try:
            await conn.client.head_bucket(Bucket=bucket.value)
        except BACKEND_FAULTS as e:
            # Absent, foreign or elsewhere: CreateBucket reports the real outcome.
            if classify_fault(e) in _GLOBALLY_FREE | _GLOBALLY_TAKEN:
                return False
            raise self._unhandled("create_bucket", e, bucket=bucket.value) from e
        return True

    async def delete_bucket(
        self,
        conn: S3Connection,
        bucket: BucketName,
        allow_delete_if_not_empty: bool = False,
    ) -> bool:
        op = "delete_bucket"
        self._metrics.record_call(op)
        if allow_delete_if_not_empty:
            # Reserved; a non-empty bucket still fails with BucketNotEmpty.
            self._logger.debug("allow_delete_if_not_empty has no effect", bucket=bucket.value)

        try:
            await conn.client.delete_bucket(Bucket=bucket.value)
        except BACKEND_FAULTS as e:
            if classify_fault(e) is FaultKind.BUCKET_NOT_FOUND:
                self._absorbed(op, e, bucket=bucket.value)
                return False
            raise self._unhandled(op, e, bucket=bucket.value) from e

        self._logger.info("Bucket deleted", bucket=bucket.value)
        return True

    async def bucket_exists_globally(self, conn: S3Connection, bucket: BucketName) -> bool:
        """
        Check whether the name is taken by any tenant.

        A 403 means someone else owns it; a 301 means it lives in another
        region. Both count as existing.
        """
        op = "bucket_exists_globally"
        self._metrics.record_call(op)
        try:
            await conn.client.head_bucket(Bucket=bucket.value)
        except BACKEND_FAULTS as e:
            kind = classify_fault(e)
            if kind in _GLOBALLY_FREE:
                self._absorbed(op, e, bucket=bucket.value)
                return False
            if kind in _GLOBALLY_TAKEN:
                self._absorbed(op, e, bucket=bucket.value)
                return True
            raise self._unhandled(op, e, bucket=bucket.value) from e
        return True

    async def get_region_for_bucket(self, conn: S3Connection, bucket: BucketName) -> S3Region:
        """
        Resolve a bucket's region from GetBucketLocation.

        Raises:
            BackendQueryError: The lookup failed or returned a non-200 status.
        """
        op = "get_region_for_bucket"
        self._metrics.record_call(op)
        try:
            response = await conn.client.get_bucket_location(Bucket=bucket.value)
        except BACKEND_FAULTS as e:
            self._metrics.record_failure(op)
            self._logger.warning("Bucket location query failed", bucket=bucket.value,
                                 fault=describe_fault(e), status=http_status(e))
            raise BackendQueryError.failed(
                "get_bucket_location", describe_fault(e), cause=e, bucket=bucket.value
            ) from e

        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
        if status != 200:
            self._metrics.record_failure(op)
            raise BackendQueryError.failed(
                "get_bucket_location", f"HTTP {status}", bucket=bucket.value
            )
        return S3Region.from_location_constraint(response.get("LocationConstraint"))

    async def list_buckets_for_owner(self, conn: S3Connection) -> List[BucketInfo]:
        """All buckets owned by the connection's identity, in backend order."""
        op = "list_buckets_for_owner"
        self._metrics.record_call(op)
        try:
            response = await conn.client.list_buckets()
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e) from e
        return [BucketInfo.from_response(entry) for entry in response.get("Buckets", [])]

    async def list_objects_in_bucket(
        self,
        conn: S3Connection,
        bucket: BucketName,
        prefix: str = C.DEFAULT_PREFIX,
        max_count: Optional[int] = C.DEFAULT_PAGE_SIZE,
    ) -> List[ObjectInfo]:
        """
        List objects under ``prefix``.

        Follows continuation tokens until ``max_count`` entries are
        collected or the listing ends. ``max_count=None`` lists everything.

        Raises:
            ValidationError: If ``max_count`` is less than 1.
        """
        op = "list_objects_in_bucket"
        if max_count is not None and max_count < 1:
            raise ValidationError.invalid("max_count", max_count, "must be >= 1")
        self._metrics.record_call(op)

        page_size = C.MAX_PAGE_SIZE if max_count is None else min(max_count, C.MAX_PAGE_SIZE)
        kwargs: Dict[str, Any] = {"Bucket": bucket.value, "Prefix": prefix}
        results: List[ObjectInfo] = []

        try:
            while True:
                if max_count is None:
                    kwargs["MaxKeys"] = page_size
                else:
                    kwargs["MaxKeys"] = min(page_size, max_count - len(results))
                response = await conn.client.list_objects_v2(**kwargs)
                results.extend(
                    ObjectInfo.from_response(entry) for entry in response.get("Contents", [])
                )
                if max_count is not None and len(results) >= max_count:
                    break
                token = response.get("NextContinuationToken")
                if not response.get("IsTruncated") or not token:
                    break
                kwargs["ContinuationToken"] = token
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e, bucket=bucket.value, prefix=prefix) from e

        if max_count is not None:
            return results[:max_count]
        return results

    # =========================================================================
    # OBJECT OPERATIONS
    # =========================================================================
    async def get_object_if_exists(
        self,
        conn: S3Connection,
        bucket: BucketName,
        key: ObjectKey,
    ) -> WasFound[ObjectInfo]:
        """
        Look a key up with a one-entry listing.

        Keys list in lexicographic order and a key sorts before every
        longer key it prefixes, so the first entry under ``Prefix=key``
        is the key itself whenever it exists.
        """
        op = "get_object_if_exists"
        self._metrics.record_call(op)
        try:
            response = await conn.client.list_objects_v2(
                Bucket=bucket.value, Prefix=key.value, MaxKeys=1
            )
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e, bucket=bucket.value, key=key.value) from e

        contents = response.get("Contents") or []
        if contents and contents[0].get("Key") == key.value:
            return WasFound.of(ObjectInfo.from_response(contents[0]))
        return WasFound.absent()

    async def upload_stream_overwrite(
        self,
        conn: S3Connection,
        bucket: BucketName,
        key: ObjectKey,
        stream: BinaryIO,
    ) -> None:
        """Upload from a stream, replacing any existing object. Reads the stream once, in order."""
        op = "upload_stream_overwrite"
        self._metrics.record_call(op)
        start_ns = time.perf_counter_ns()
        try:
            size = await self._transfer.upload_stream(conn.client, bucket.value, key.value, stream)
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e, bucket=bucket.value, key=key.value) from e

        self._metrics.record_upload(size, time.perf_counter_ns() - start_ns)
        self._logger.info("Object uploaded", bucket=bucket.value, key=key.value, size_bytes=size)

    async def upload_file_overwrite(
        self,
        conn: S3Connection,
        bucket: BucketName,
        key: ObjectKey,
        path: str,
    ) -> None:
        """Upload a local file, replacing any existing object. Large files go up in parallel parts."""
        op = "upload_file_overwrite"
        self._metrics.record_call(op)
        start_ns = time.perf_counter_ns()
        try:
            size = await self._transfer.upload_file(conn.client, bucket.value, key.value, str(path))
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e, bucket=bucket.value, key=key.value) from e

        self._metrics.record_upload(size, time.perf_counter_ns() - start_ns)
        self._logger.info("File uploaded", bucket=bucket.value, key=key.value,
                          size_bytes=size, path=str(path))

    async def download_to_stream(
        self,
        conn: S3Connection,
        stream: BinaryIO,
        bucket: BucketName,
        key: ObjectKey,
    ) -> int:
        """Write the object's bytes into ``stream``. Returns the byte count."""
        op = "download_to_stream"
        self._metrics.record_call(op)
        start_ns = time.perf_counter_ns()
        try:
            written = await self._transfer.download_to_stream(
                conn.client, bucket.value, key.value, stream
            )
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e, bucket=bucket.value, key=key.value) from e

        self._metrics.record_download(written, time.perf_counter_ns() - start_ns)
        return written

    async def download_to_file(
        self,
        conn: S3Connection,
        path: str,
        bucket: BucketName,
        key: ObjectKey,
        overwrite: bool = False,
    ) -> int:
        """
        Download the object to ``path``.

        The destination is only replaced once the download completes.

        Raises:
            FileAlreadyExistsError: ``path`` exists and ``overwrite`` is
                False. Checked before any network call.
        """
        op = "download_to_file"
        path = str(path)
        if not overwrite and os.path.exists(path):
            raise FileAlreadyExistsError.for_path(path)
        self._metrics.record_call(op)

        start_ns = time.perf_counter_ns()
        try:
            written = await self._transfer.download_to_file(
                conn.client, bucket.value, key.value, path
            )
        except BACKEND_FAULTS as e:
            raise self._unhandled(op, e, bucket=bucket.value, key=key.value, path=path) from e

        self._metrics.record_download(written, time.perf_counter_ns() - start_ns)
        self._logger.info("Object downloaded", bucket=bucket.value, key=key.value,
                          size_bytes=written, path=path)
        return written

    async def delete_object(self, conn: S3Connection, bucket: BucketName, key: ObjectKey) -> None:
        op = "delete_object"
        self._metrics.record_call(op)
        try:
            await conn.client.delete_object(Bucket=bucket.value, Key=key.value)
        except BACKEND_FAULTS as e:
            # S3 itself answers 204 for absent keys; some compatible servers do not.
            if classify_fault(e) is FaultKind.KEY_NOT_FOUND:
                self._absorbed(op, e, bucket=bucket.value, key=key.value)
                return
            raise self._unhandled(op, e, bucket=bucket.value, key=key.value) from e
        self._logger.debug("Object deleted", bucket=bucket.value, key=key.value)

    # =========================================================================
    # INTERNALS
    # =========================================================================
    def _absorbed(self, operation: str, exc: BaseException, **context: Any) -> None:
        self._metrics.record_absorbed(operation)
        self._logger.debug(
            "Absorbed expected backend signal",
            operation=operation,
            fault=describe_fault(exc),
            **context,
        )

    def _unhandled(self, operation: str, exc: BaseException, **context: Any) -> UnhandledBackendError:
        self._metrics.record_failure(operation)
        self._logger.warning(
            "Unhandled backend fault",
            operation=operation,
            fault=describe_fault(exc),
            status=http_status(exc),
            **context,
        )
        return UnhandledBackendError.wrap(
            operation, exc, backend_code=backend_error_code(exc), **context
        )
