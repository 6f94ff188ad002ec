"""
Operator Extensions: Strict, Ensure and Convenience Variants

Pure compositions over the ``ObjectStorageOperator`` contract; nothing
here talks to the backend directly.

Variants:
    *_ok_if_*       idempotent, outcome discarded
    *_throw_if_*    strict, StateConflictError on the no-op branch
    ensure_*        mutation followed by a verifying re-check

None of the check-then-act helpers are atomic: another writer can slip
in between the check and the act.
"""

from __future__ import annotations

from typing import BinaryIO

from s3ops.core.errors import (
    InvariantViolationError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    StateConflictError,
)
from s3ops.core.types import BucketName, ObjectKey, WasFound
from s3ops.s3.connection import S3Connection, StaticRegionProvider
from s3ops.s3.models import ObjectInfo
from s3ops.s3.protocols import ObjectStorageOperator


# =============================================================================
# BUCKETS
# =============================================================================
async def bucket_exists(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> bool:
    """
    Caller-scoped existence: is the bucket among the caller's own buckets?

    See ``bucket_exists_globally`` for the any-owner check.
    """
    buckets = await operator.list_buckets_for_owner(conn)
    return any(info.name == bucket.value for info in buckets)


async def is_bucket_name_available(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> bool:
    """True if no tenant owns the name."""
    return not await operator.bucket_exists_globally(conn, bucket)


async def get_region_provider_for_bucket(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> StaticRegionProvider:
    """
    Region provider pinned to the bucket's home region.

    Feed it to a connection provider to talk to the bucket without
    cross-region redirects.
    """
    region = await operator.get_region_for_bucket(conn, bucket)
    return StaticRegionProvider(region)


async def create_bucket_ok_if_exists(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> None:
    await operator.create_bucket(conn, bucket)


async def create_bucket_throw_if_exists(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> None:
    """
    Raises:
        StateConflictError: The caller already owned the bucket.
    """
    created = await operator.create_bucket(conn, bucket)
    if not created:
        raise StateConflictError.bucket_exists(bucket.value)


async def delete_bucket_ok_if_absent(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> None:
    await operator.delete_bucket(conn, bucket)


async def delete_bucket_throw_if_absent(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> None:
    """
    Raises:
        StateConflictError: The bucket did not exist.
    """
    deleted = await operator.delete_bucket(conn, bucket)
    if not deleted:
        raise StateConflictError.bucket_absent(bucket.value)


async def ensure_bucket_exists(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> bool:
    """
    Create the bucket if needed, then confirm it is listed.

    Returns:
        Whether this call created the bucket.

    Raises:
        InvariantViolationError: The bucket is not listed after creation.
    """
    created = await operator.create_bucket(conn, bucket)
    if not await bucket_exists(operator, conn, bucket):
        raise InvariantViolationError.bucket_missing_after_create(bucket.value)
    return created


async def ensure_bucket_absent(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
) -> bool:
    """
    Delete the bucket if present, then confirm it is no longer listed.

    Returns:
        Whether this call deleted the bucket.

    Raises:
        InvariantViolationError: The bucket is still listed after deletion.
    """
    deleted = await operator.delete_bucket(conn, bucket)
    if await bucket_exists(operator, conn, bucket):
        raise InvariantViolationError.bucket_present_after_delete(bucket.value)
    return deleted


# =============================================================================
# OBJECTS
# =============================================================================
async def object_exists(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
) -> bool:
    found = await operator.get_object_if_exists(conn, bucket, key)
    return found.found


async def get_object(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
) -> ObjectInfo:
    """
    Raises:
        ObjectNotFoundError: No object under ``key``.
    """
    found: WasFound[ObjectInfo] = await operator.get_object_if_exists(conn, bucket, key)
    if not found:
        raise ObjectNotFoundError.for_key(bucket.value, key.value)
    return found.result


async def _reject_existing(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
) -> None:
    if await object_exists(operator, conn, bucket, key):
        raise ObjectAlreadyExistsError.for_key(bucket.value, key.value)


async def upload_file(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
    path: str,
    overwrite: bool = True,
) -> None:
    """
    Upload a file.

    With ``overwrite=False`` an existing key raises ObjectAlreadyExistsError
    and nothing is written.
    """
    if not overwrite:
        await _reject_existing(operator, conn, bucket, key)
    await operator.upload_file_overwrite(conn, bucket, key, path)


async def upload_stream(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
    stream: BinaryIO,
    overwrite: bool = True,
) -> None:
    """Stream counterpart of ``upload_file``."""
    if not overwrite:
        await _reject_existing(operator, conn, bucket, key)
    await operator.upload_stream_overwrite(conn, bucket, key, stream)


async def delete_object_return_result(
    operator: ObjectStorageOperator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
) -> bool:
    """Delete ``key``; True if an object was present to delete."""
    existed = await object_exists(operator, conn, bucket, key)
    await operator.delete_object(conn, bucket, key)
    return existed
