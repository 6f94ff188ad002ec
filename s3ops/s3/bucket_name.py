"""
Default-bucket providers.

Single-bucket deployments inject one of these instead of reading a
global; the bucket is fixed at construction.
"""

from __future__ import annotations

from typing import Protocol, Union, runtime_checkable

from s3ops.core.config import S3Config
from s3ops.core.errors import ValidationError
from s3ops.core.types import BucketName


@runtime_checkable
class BucketNameProvider(Protocol):
    """Supplies the default bucket for a deployment."""

    def get_bucket_name(self) -> BucketName:
        ...


class ConstructorBucketNameProvider:
    """Returns the bucket name given at construction."""

    __slots__ = ("_bucket_name",)

    def __init__(self, bucket_name: Union[BucketName, str]) -> None:
        if not isinstance(bucket_name, BucketName):
            bucket_name = BucketName(bucket_name)
        self._bucket_name = bucket_name

    @classmethod
    def from_config(cls, config: S3Config) -> ConstructorBucketNameProvider:
        """
        Build from ``S3Config.bucket_name``.

        Raises:
            ValidationError: If the config names no default bucket.
        """
        if not config.bucket_name:
            raise ValidationError.empty("bucket_name")
        return cls(config.bucket_name)

    def get_bucket_name(self) -> BucketName:
        return self._bucket_name

    def __repr__(self) -> str:
        return f"ConstructorBucketNameProvider({self._bucket_name.value!r})"
