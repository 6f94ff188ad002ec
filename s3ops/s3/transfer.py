"""
Transfer Strategy: Single-Shot vs Multipart
===========================================

Chooses how bytes move between the caller and the backend.

| Operation     | Below threshold | At/above threshold                      |
|---------------|-----------------|-----------------------------------------|
| upload_stream | put_object      | sequential multipart (one part at once) |
| upload_file   | put_object      | concurrent parts, bounded by semaphore  |
| download_file | single GET      | concurrent ranged GETs pinned by ETag   |

Failure Semantics:
------------------
- A multipart upload that fails or is cancelled is aborted before the
  exception propagates, so no partial object ever becomes current.
- A file download writes to a sibling temp file and only replaces the
  destination once every byte has arrived; the temp file is removed on
  failure or cancellation.

Backend exceptions propagate unchanged; the operator wraps them.
"""

from __future__ import annotations

import asyncio
import math
import os
import tempfile
from typing import Any, Awaitable, BinaryIO, Dict, Iterable, Iterator, List, TypeVar

from s3ops.core import constants as C
from s3ops.core.config import S3Config
from s3ops.core.errors import ValidationError
from s3ops.observability.logging import StructuredLogger
from s3ops.s3.faults import BACKEND_FAULTS, describe_fault

T = TypeVar("T")


# =============================================================================
# HELPERS
# =============================================================================
async def _gather_all(aws: Iterable[Awaitable[T]]) -> List[T]:
    """gather() that cancels and drains the remaining tasks when one fails."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _read_range(path: str, offset: int, length: int) -> bytes:
    with open(path, "rb") as f:
        f.seek(offset)
        return f.read(length)


def _read_all(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _read_exactly(stream: BinaryIO, size: int) -> bytes:
    """Read until ``size`` bytes arrive or the stream is exhausted."""
    buffer = bytearray()
    while len(buffer) < size:
        more = stream.read(size - len(buffer))
        if not more:
            break
        buffer += more
    return bytes(buffer)


def _allocate(path: str, size: int) -> None:
    with open(path, "r+b") as f:
        f.truncate(size)


def _write_at(path: str, offset: int, data: bytes) -> None:
    with open(path, "r+b") as f:
        f.seek(offset)
        f.write(data)


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


# =============================================================================
# TRANSFER MANAGER
# =============================================================================
class TransferManager:
    """
    Multipart-aware upload/download against a raw S3 client.

    Stateless apart from its sizing parameters; one instance can serve
    any number of concurrent calls.
    """

    __slots__ = ("_threshold", "_chunk_size", "_max_concurrency", "_logger")

    def __init__(
        self,
        threshold_bytes: int = C.DEFAULT_MULTIPART_THRESHOLD,
        chunk_size_bytes: int = C.DEFAULT_MULTIPART_CHUNK,
        max_concurrency: int = C.DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if chunk_size_bytes < C.MIN_MULTIPART_CHUNK:
            raise ValidationError.invalid(
                "chunk_size_bytes", chunk_size_bytes, f"must be >= {C.MIN_MULTIPART_CHUNK}"
            )
        if threshold_bytes < 1:
            raise ValidationError.invalid("threshold_bytes", threshold_bytes, "must be > 0")
        if max_concurrency < 1:
            raise ValidationError.invalid("max_concurrency", max_concurrency, "must be > 0")
        self._threshold = threshold_bytes
        self._chunk_size = chunk_size_bytes
        self._max_concurrency = max_concurrency
        self._logger = StructuredLogger("s3ops.transfer")

    @classmethod
    def from_config(cls, config: S3Config) -> TransferManager:
        return cls(
            threshold_bytes=config.multipart_threshold_bytes,
            chunk_size_bytes=config.multipart_chunksize_bytes,
            max_concurrency=config.max_concurrency,
        )

    @property
    def threshold_bytes(self) -> int:
        return self._threshold

    @property
    def chunk_size_bytes(self) -> int:
        return self._chunk_size

    def part_size_for(self, total_size: int) -> int:
        """Smallest part size >= the configured chunk that fits the part limit."""
        return max(self._chunk_size, math.ceil(total_size / C.MAX_MULTIPART_PARTS))

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------
    async def upload_stream(self, client: Any, bucket: str, key: str, stream: BinaryIO) -> int:
        """
        Upload a readable binary stream from its current position.

        Returns:
            Number of bytes uploaded.
        """
        head = _read_exactly(stream, self._threshold)
        if len(head) < self._threshold:
            await client.put_object(Bucket=bucket, Key=key, Body=head)
            return len(head)

        upload_id = await self._create_upload(client, bucket, key)
        try:
            parts: List[Dict[str, Any]] = []
            total = 0
            for part_number, data in enumerate(self._stream_parts(head, stream), start=1):
                if part_number > C.MAX_MULTIPART_PARTS:
                    raise ValidationError.invalid(
                        "stream", key, f"needs more than {C.MAX_MULTIPART_PARTS} parts"
                    )
                response = await client.upload_part(
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=data,
                )
                parts.append({"PartNumber": part_number, "ETag": response["ETag"]})
                total += len(data)

            await client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except BaseException:
            await self._abort(client, bucket, key, upload_id)
            raise

        self._logger.debug("Multipart stream upload complete", bucket=bucket, key=key,
                           parts=len(parts), size_bytes=total)
        return total

    async def upload_file(self, client: Any, bucket: str, key: str, path: str) -> int:
        """
        Upload a local file, in concurrent parts when large.

        Part reads run on worker threads; at most ``max_concurrency``
        parts are in flight.

        Returns:
            Number of bytes uploaded.
        """
        size = await asyncio.to_thread(os.path.getsize, path)
        if size < self._threshold:
            data = await asyncio.to_thread(_read_all, path)
            await client.put_object(Bucket=bucket, Key=key, Body=data)
            return len(data)

        part_size = self.part_size_for(size)
        semaphore = asyncio.Semaphore(self._max_concurrency)

        upload_id = await self._create_upload(client, bucket, key)
        try:
            async def upload_part(part_number: int, offset: int) -> Dict[str, Any]:
                async with semaphore:
                    data = await asyncio.to_thread(_read_range, path, offset, part_size)
                    response = await client.upload_part(
                        Bucket=bucket,
                        Key=key,
                        UploadId=upload_id,
                        PartNumber=part_number,
                        Body=data,
                    )
                    return {"PartNumber": part_number, "ETag": response["ETag"]}

            parts = await _gather_all(
                upload_part(number, offset)
                for number, offset in enumerate(range(0, size, part_size), start=1)
            )
            parts.sort(key=lambda p: p["PartNumber"])

            await client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except BaseException:
            await self._abort(client, bucket, key, upload_id)
            raise

        self._logger.debug("Multipart file upload complete", bucket=bucket, key=key,
                           parts=len(parts), size_bytes=size)
        return size

    def _stream_parts(self, head: bytes, stream: BinaryIO) -> Iterator[bytes]:
        """Re-chunk ``head`` plus the rest of ``stream`` into part-sized blocks."""
        buffer = bytearray(head)
        while True:
            if len(buffer) < self._chunk_size:
                buffer += _read_exactly(stream, self._chunk_size - len(buffer))
            if not buffer:
                return
            size = min(self._chunk_size, len(buffer))
            yield bytes(buffer[:size])
            del buffer[:size]

    async def _create_upload(self, client: Any, bucket: str, key: str) -> str:
        response = await client.create_multipart_upload(Bucket=bucket, Key=key)
        return response["UploadId"]

    async def _abort(self, client: Any, bucket: str, key: str, upload_id: str) -> None:
        """Abort an in-progress upload; an abort failure never masks the original error."""
        try:
            await asyncio.shield(
                client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
            )
        except BACKEND_FAULTS as e:
            self._logger.warning(
                "Failed to abort multipart upload",
                bucket=bucket,
                key=key,
                upload_id=upload_id,
                fault=describe_fault(e),
            )
        else:
            self._logger.info("Aborted multipart upload", bucket=bucket, key=key,
                              upload_id=upload_id)

    # -------------------------------------------------------------------------
    # Downloads
    # -------------------------------------------------------------------------
    async def download_to_stream(
        self,
        client: Any,
        bucket: str,
        key: str,
        sink: BinaryIO,
        **get_kwargs: Any,
    ) -> int:
        """
        Copy an object's body into ``sink`` chunk by chunk.

        Returns:
            Number of bytes written.
        """
        response = await client.get_object(Bucket=bucket, Key=key, **get_kwargs)
        written = 0
        async with response["Body"] as body:
            while True:
                chunk = await body.read(C.DOWNLOAD_CHUNK_BYTES)
                if not chunk:
                    break
                sink.write(chunk)
                written += len(chunk)
        return written

    async def download_to_file(self, client: Any, bucket: str, key: str, path: str) -> int:
        """
        Download an object into ``path``, replacing it atomically.

        Returns:
            Number of bytes written.
        """
        head = await client.head_object(Bucket=bucket, Key=key)
        size = head.get("ContentLength", 0)
        etag = head.get("ETag")

        target = os.path.abspath(path)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{os.path.basename(target)}.",
            suffix=".part",
            dir=os.path.dirname(target),
        )
        os.close(fd)
        try:
            if size < self._threshold:
                pin = {"IfMatch": etag} if etag else {}
                with open(tmp_path, "wb") as f:
                    written = await self.download_to_stream(client, bucket, key, f, **pin)
            else:
                written = await self._download_ranges(client, bucket, key, tmp_path, size, etag)
            await asyncio.to_thread(os.replace, tmp_path, target)
        except BaseException:
            _remove_quietly(tmp_path)
            raise
        return written

    async def _download_ranges(
        self,
        client: Any,
        bucket: str,
        key: str,
        tmp_path: str,
        size: int,
        etag: Any,
    ) -> int:
        part_size = self.part_size_for(size)
        semaphore = asyncio.Semaphore(self._max_concurrency)
        await asyncio.to_thread(_allocate, tmp_path, size)

        async def fetch_range(offset: int) -> int:
            end = min(offset + part_size, size) - 1
            kwargs: Dict[str, Any] = {"Range": f"bytes={offset}-{end}"}
            if etag:
                kwargs["IfMatch"] = etag
            async with semaphore:
                response = await client.get_object(Bucket=bucket, Key=key, **kwargs)
                async with response["Body"] as body:
                    data = await body.read()
                await asyncio.to_thread(_write_at, tmp_path, offset, data)
                return len(data)

        counts = await _gather_all(fetch_range(offset) for offset in range(0, size, part_size))
        return sum(counts)
