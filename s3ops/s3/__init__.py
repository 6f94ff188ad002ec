"""
S3 module: connection providers, the idempotent operator and its extensions.

Operator:
- S3Operator: aioboto3-backed ObjectStorageOperator
- TransferManager: single-shot vs multipart transfer strategy

Providers:
- AioBoto3ConnectionProvider: region + credentials -> S3Connection
- ConstructorBucketNameProvider: default bucket for single-bucket setups
"""

from s3ops.s3.connection import (
    RegionProvider,
    StaticRegionProvider,
    EnvironmentRegionProvider,
    ConfigRegionProvider,
    S3Connection,
    ConnectionProvider,
    AioBoto3ConnectionProvider,
    run_with_connection,
)
from s3ops.s3.bucket_name import BucketNameProvider, ConstructorBucketNameProvider
from s3ops.s3.models import BucketInfo, ObjectInfo
from s3ops.s3.faults import FaultKind, classify_fault
from s3ops.s3.transfer import TransferManager
from s3ops.s3.protocols import ObjectStorageOperator
from s3ops.s3.operator import S3Operator
from s3ops.s3 import extensions

__all__ = [
    "RegionProvider",
    "StaticRegionProvider",
    "EnvironmentRegionProvider",
    "ConfigRegionProvider",
    "S3Connection",
    "ConnectionProvider",
    "AioBoto3ConnectionProvider",
    "run_with_connection",
    "BucketNameProvider",
    "ConstructorBucketNameProvider",
    "BucketInfo",
    "ObjectInfo",
    "FaultKind",
    "classify_fault",
    "TransferManager",
    "ObjectStorageOperator",
    "S3Operator",
    "extensions",
]
