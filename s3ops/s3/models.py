"""
Listing projections of backend metadata.

Read-only, pass-through views of ListBuckets / ListObjectsV2 entries.
This layer never owns or mutates the data they describe.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional


@dataclass(frozen=True, slots=True)
class BucketInfo:
    """
    One entry of ListBuckets.

    Attributes:
        name: Raw bucket name as reported by the backend.
        created_at: Creation timestamp, when reported.
    """

    name: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_response(cls, entry: Mapping[str, Any]) -> BucketInfo:
        return cls(name=entry["Name"], created_at=entry.get("CreationDate"))


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    """
    One entry of ListObjectsV2.

    Attributes:
        key: Raw object key.
        size_bytes: Object size in bytes.
        etag: Entity tag without surrounding quotes.
        last_modified: Last modification timestamp, when reported.
        storage_class: Storage class (STANDARD, GLACIER, ...), when reported.
    """

    key: str
    size_bytes: int
    etag: str
    last_modified: Optional[datetime] = None
    storage_class: Optional[str] = None

    @classmethod
    def from_response(cls, entry: Mapping[str, Any]) -> ObjectInfo:
        return cls(
            key=entry["Key"],
            size_bytes=entry.get("Size", 0),
            etag=entry.get("ETag", "").strip('"'),
            last_modified=entry.get("LastModified"),
            storage_class=entry.get("StorageClass"),
        )
