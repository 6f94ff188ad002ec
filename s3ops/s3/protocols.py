"""
Operator Protocol: the Public Object-Storage Contract

Structural subtyping (PEP 544) for anything the extension helpers can
compose over. ``S3Operator`` is the production implementation; tests
may supply in-memory doubles.

Contract Summary:
    - Idempotent primitives (create_bucket, delete_bucket, delete_object)
      report "did this call change state" and never raise for the
      expected already-exists / not-found signal
    - Object existence is a value (WasFound), never an exception
    - Every other backend fault surfaces as UnhandledBackendError
    - Every call takes a caller-owned connection; none is retained
"""

from __future__ import annotations

from abc import abstractmethod
from typing import BinaryIO, List, Optional, Protocol, runtime_checkable

from s3ops.core import constants as C
from s3ops.core.types import BucketName, ObjectKey, S3Region, WasFound
from s3ops.s3.connection import S3Connection
from s3ops.s3.models import BucketInfo, ObjectInfo


@runtime_checkable
class ObjectStorageOperator(Protocol):
    """
    Bucket and object operations with normalized idempotency outcomes.

    Note:
        No ordering is guaranteed across independent calls, and listing
        is eventually consistent: a just-created bucket may not show up
        in ``list_buckets_for_owner`` right away.
    """

    # -------------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------------
    @abstractmethod
    async def create_bucket(self, conn: S3Connection, bucket: BucketName) -> bool:
        """
        Create a bucket in the connection's region.

        Returns:
            True if newly created, False if the caller already owned it.
        """
        ...

    @abstractmethod
    async def delete_bucket(
        self,
        conn: S3Connection,
        bucket: BucketName,
        allow_delete_if_not_empty: bool = False,
    ) -> bool:
        """
        Delete an empty bucket.

        Returns:
            True if deleted, False if it did not exist.
        """
        ...

    @abstractmethod
    async def bucket_exists_globally(self, conn: S3Connection, bucket: BucketName) -> bool:
        """True if any tenant owns a bucket with this name."""
        ...

    @abstractmethod
    async def get_region_for_bucket(self, conn: S3Connection, bucket: BucketName) -> S3Region:
        ...

    @abstractmethod
    async def list_buckets_for_owner(self, conn: S3Connection) -> List[BucketInfo]:
        ...

    @abstractmethod
    async def list_objects_in_bucket(
        self,
        conn: S3Connection,
        bucket: BucketName,
        prefix: str = C.DEFAULT_PREFIX,
        max_count: Optional[int] = C.DEFAULT_PAGE_SIZE,
    ) -> List[ObjectInfo]:
        ...

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------
    @abstractmethod
    async def get_object_if_exists(
        self,
        conn: S3Connection,
        bucket: BucketName,
        key: ObjectKey,
    ) -> WasFound[ObjectInfo]:
        ...

    @abstractmethod
    async def upload_stream_overwrite(
        self,
        conn: S3Connection,
        bucket: BucketName,
        key: ObjectKey,
        stream: BinaryIO,
    ) -> None:
        ...

    @abstractmethod
    async def upload_file_overwrite(
        self,
        conn: S3Connection,
        bucket: BucketName,
        key: ObjectKey,
        path: str,
    ) -> None:
        ...

    @abstractmethod
    async def download_to_stream(
        self,
        conn: S3Connection,
        stream: BinaryIO,
        bucket: BucketName,
        key: ObjectKey,
    ) -> int:
        ...

    @abstractmethod
    async def download_to_file(
        self,
        conn: S3Connection,
        path: str,
        bucket: BucketName,
        key: ObjectKey,
        overwrite: bool = False,
    ) -> int:
        ...

    @abstractmethod
    async def delete_object(self, conn: S3Connection, bucket: BucketName, key: ObjectKey) -> None:
        """Delete a key; deleting an absent key is a successful no-op."""
        ...
