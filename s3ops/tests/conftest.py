"""
Shared fixtures: an in-memory S3, a connection over it and an operator
sized so multipart paths trigger at 5 MiB.
"""

from __future__ import annotations

import pytest

from s3ops.core import constants as C
from s3ops.core.config import S3Config
from s3ops.core.types import BucketName, ObjectKey, S3Region
from s3ops.observability.metrics import OperatorMetrics
from s3ops.s3.connection import S3Connection
from s3ops.s3.operator import S3Operator
from s3ops.tests.fake_s3 import FakeS3Client


@pytest.fixture
def s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def conn(s3: FakeS3Client) -> S3Connection:
    return S3Connection(s3, S3Region(C.DEFAULT_REGION))


@pytest.fixture
def small_config() -> S3Config:
    return S3Config(
        multipart_threshold_bytes=C.MIN_MULTIPART_CHUNK,
        multipart_chunksize_bytes=C.MIN_MULTIPART_CHUNK,
        max_concurrency=3,
    )


@pytest.fixture
def metrics() -> OperatorMetrics:
    return OperatorMetrics()


@pytest.fixture
def operator(small_config: S3Config, metrics: OperatorMetrics) -> S3Operator:
    return S3Operator(small_config, metrics=metrics)


@pytest.fixture
def alpha() -> BucketName:
    return BucketName("alpha")


@pytest.fixture
def k1() -> ObjectKey:
    return ObjectKey("k1")
