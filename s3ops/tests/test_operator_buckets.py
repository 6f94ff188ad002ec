"""
Bucket operation tests for S3Operator.

Covers the idempotency contract: repeat calls differ from first calls
only in the returned boolean, and only the one expected backend signal
per operation is absorbed.

Run: python -m pytest s3ops/tests/test_operator_buckets.py -v
"""

from __future__ import annotations

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from s3ops.core.errors import (
    BackendQueryError,
    UnhandledBackendError,
    ValidationError,
)
from s3ops.core.types import BucketName, ObjectKey, S3Region
from s3ops.s3.connection import S3Connection
from s3ops.s3.operator import S3Operator
from s3ops.s3.protocols import ObjectStorageOperator
from s3ops.tests.fake_s3 import FakeS3Client, client_error


def test_operator_satisfies_protocol(operator: S3Operator) -> None:
    assert isinstance(operator, ObjectStorageOperator)


# =============================================================================
# CREATE / DELETE
# =============================================================================
class TestCreateBucket:
    @pytest.mark.asyncio
    async def test_lifecycle(self, operator, conn, alpha) -> None:
        assert await operator.create_bucket(conn, alpha) is True
        assert await operator.create_bucket(conn, alpha) is False
        assert await operator.delete_bucket(conn, alpha) is True
        assert await operator.delete_bucket(conn, alpha) is False

    @pytest.mark.asyncio
    async def test_repeat_create_leaves_state_unchanged(self, operator, conn, s3, alpha) -> None:
        await operator.create_bucket(conn, alpha)
        s3.buckets["alpha"]["existing"] = b"data"
        await operator.create_bucket(conn, alpha)
        assert s3.buckets["alpha"] == {"existing": b"data"}

    @pytest.mark.asyncio
    async def test_default_region_sends_no_constraint(self, operator, conn, s3, alpha) -> None:
        await operator.create_bucket(conn, alpha)
        assert "CreateBucketConfiguration" not in s3.calls_to("create_bucket")[0]

    @pytest.mark.asyncio
    async def test_other_region_sends_constraint(self, operator, s3, alpha) -> None:
        conn = S3Connection(s3, S3Region("eu-west-1"))
        await operator.create_bucket(conn, alpha)
        assert s3.calls_to("create_bucket")[0]["CreateBucketConfiguration"] == {
            "LocationConstraint": "eu-west-1"
        }
        assert await operator.get_region_for_bucket(conn, alpha) == S3Region("eu-west-1")

    @pytest.mark.asyncio
    async def test_default_region_repeat_create_acknowledged_by_backend(self, operator, conn, s3, alpha) -> None:
        await s3.create_bucket(Bucket="alpha")
        await s3.create_bucket(Bucket="alpha")

        assert await operator.create_bucket(conn, alpha) is False
        assert len(s3.calls_to("create_bucket")) == 2
        assert s3.calls_to("head_bucket") == [{"Bucket": "alpha"}]

    @pytest.mark.asyncio
    async def test_default_region_checks_before_creating(self, operator, conn, s3, alpha) -> None:
        assert await operator.create_bucket(conn, alpha) is True
        assert await operator.create_bucket(conn, alpha) is False
        assert len(s3.calls_to("head_bucket")) == 2
        assert len(s3.calls_to("create_bucket")) == 1

    @pytest.mark.asyncio
    async def test_default_region_head_fault_is_wrapped(self, operator, conn, s3, metrics, alpha) -> None:
        s3.fail_next("head_bucket", client_error("InternalError", 500, "HeadBucket"))
        with pytest.raises(UnhandledBackendError) as exc_info:
            await operator.create_bucket(conn, alpha)
        assert exc_info.value.backend_code == "InternalError"
        assert s3.calls_to("create_bucket") == []
        assert metrics.failures["create_bucket"] == 1

    @pytest.mark.asyncio
    async def test_other_region_repeat_create_absorbs_conflict(self, operator, s3, metrics, alpha) -> None:
        conn = S3Connection(s3, S3Region("eu-west-1"))
        assert await operator.create_bucket(conn, alpha) is True
        assert await operator.create_bucket(conn, alpha) is False
        assert s3.calls_to("head_bucket") == []
        assert metrics.absorbed_signals["create_bucket"] == 1

    @pytest.mark.asyncio
    async def test_bucket_owned_by_someone_else_is_not_absorbed(self, operator, conn, s3) -> None:
        s3.foreign_buckets.add("taken")
        with pytest.raises(UnhandledBackendError) as exc_info:
            await operator.create_bucket(conn, BucketName("taken"))
        assert exc_info.value.backend_code == "BucketAlreadyExists"
        assert isinstance(exc_info.value.cause, ClientError)
        assert exc_info.value.__cause__ is exc_info.value.cause

    @pytest.mark.asyncio
    async def test_transport_fault_is_wrapped(self, operator, conn, s3, alpha) -> None:
        s3.fail_next("create_bucket", EndpointConnectionError(endpoint_url="http://x"))
        with pytest.raises(UnhandledBackendError) as exc_info:
            await operator.create_bucket(conn, alpha)
        assert exc_info.value.context["bucket"] == "alpha"

    @pytest.mark.asyncio
    async def test_metrics(self, operator, conn, metrics, alpha) -> None:
        await operator.create_bucket(conn, alpha)
        await operator.create_bucket(conn, alpha)
        assert metrics.calls["create_bucket"] == 2
        assert metrics.absorbed_signals["create_bucket"] == 1


class TestDeleteBucket:
    @pytest.mark.asyncio
    async def test_never_existed(self, operator, conn, alpha) -> None:
        assert await operator.delete_bucket(conn, alpha) is False
        assert await operator.delete_bucket(conn, alpha) is False

    @pytest.mark.asyncio
    async def test_not_empty_surfaces_backend_failure(self, operator, conn, s3, alpha) -> None:
        await operator.create_bucket(conn, alpha)
        s3.buckets["alpha"]["k"] = b"x"
        for allow in (False, True):
            with pytest.raises(UnhandledBackendError) as exc_info:
                await operator.delete_bucket(conn, alpha, allow_delete_if_not_empty=allow)
            assert exc_info.value.backend_code == "BucketNotEmpty"
        assert "alpha" in s3.buckets

    @pytest.mark.asyncio
    async def test_access_denied_is_not_absorbed(self, operator, conn, s3, alpha) -> None:
        s3.fail_next("delete_bucket", client_error("AccessDenied", 403, "DeleteBucket"))
        with pytest.raises(UnhandledBackendError):
            await operator.delete_bucket(conn, alpha)


# =============================================================================
# EXISTENCE / REGION
# =============================================================================
class TestBucketExistsGlobally:
    @pytest.mark.asyncio
    async def test_owned(self, operator, conn, alpha) -> None:
        await operator.create_bucket(conn, alpha)
        assert await operator.bucket_exists_globally(conn, alpha) is True

    @pytest.mark.asyncio
    async def test_foreign(self, operator, conn, s3) -> None:
        s3.foreign_buckets.add("taken")
        assert await operator.bucket_exists_globally(conn, BucketName("taken")) is True

    @pytest.mark.asyncio
    async def test_redirect_counts_as_existing(self, operator, conn, s3, alpha) -> None:
        s3.fail_next("head_bucket", client_error("301", 301, "HeadBucket"))
        assert await operator.bucket_exists_globally(conn, alpha) is True

    @pytest.mark.asyncio
    async def test_absent(self, operator, conn) -> None:
        assert await operator.bucket_exists_globally(conn, BucketName("free-name")) is False

    @pytest.mark.asyncio
    async def test_other_fault(self, operator, conn, s3, alpha) -> None:
        s3.fail_next("head_bucket", client_error("500", 500, "HeadBucket"))
        with pytest.raises(UnhandledBackendError):
            await operator.bucket_exists_globally(conn, alpha)


class TestGetRegionForBucket:
    @pytest.mark.asyncio
    async def test_us_east_1_reports_empty_constraint(self, operator, conn, alpha) -> None:
        await operator.create_bucket(conn, alpha)
        assert await operator.get_region_for_bucket(conn, alpha) == S3Region("us-east-1")

    @pytest.mark.asyncio
    async def test_missing_bucket(self, operator, conn, alpha) -> None:
        with pytest.raises(BackendQueryError) as exc_info:
            await operator.get_region_for_bucket(conn, alpha)
        assert isinstance(exc_info.value.cause, ClientError)

    @pytest.mark.asyncio
    async def test_non_200_status(self, operator, alpha) -> None:
        class Client:
            async def get_bucket_location(self, **kwargs):
                return {"LocationConstraint": None, "ResponseMetadata": {"HTTPStatusCode": 500}}

        conn = S3Connection(Client(), S3Region("us-east-1"))
        with pytest.raises(BackendQueryError, match="HTTP 500"):
            await operator.get_region_for_bucket(conn, alpha)


# =============================================================================
# LISTINGS
# =============================================================================
class TestListBucketsForOwner:
    @pytest.mark.asyncio
    async def test_lists_only_owned(self, operator, conn, s3) -> None:
        s3.foreign_buckets.add("taken")
        for name in ("beta", "alpha"):
            await operator.create_bucket(conn, BucketName(name))
        buckets = await operator.list_buckets_for_owner(conn)
        assert [b.name for b in buckets] == ["alpha", "beta"]
        assert all(b.created_at is not None for b in buckets)

    @pytest.mark.asyncio
    async def test_empty(self, operator, conn) -> None:
        assert await operator.list_buckets_for_owner(conn) == []


class TestListObjectsInBucket:
    @pytest.fixture
    def populated(self, s3: FakeS3Client) -> FakeS3Client:
        s3.buckets["alpha"] = {f"logs/{i:04d}": b"x" * i for i in range(25)}
        s3.buckets["alpha"]["data/one"] = b"1"
        return s3

    @pytest.mark.asyncio
    async def test_prefix_filter(self, operator, conn, populated, alpha) -> None:
        objects = await operator.list_objects_in_bucket(conn, alpha, prefix="data/")
        assert [o.key for o in objects] == ["data/one"]
        assert objects[0].size_bytes == 1
        assert objects[0].storage_class == "STANDARD"
        assert not objects[0].etag.startswith('"')

    @pytest.mark.asyncio
    async def test_max_count_caps_results(self, operator, conn, populated, alpha) -> None:
        objects = await operator.list_objects_in_bucket(conn, alpha, prefix="logs/", max_count=10)
        assert len(objects) == 10
        assert populated.calls_to("list_objects_v2")[0]["MaxKeys"] == 10

    @pytest.mark.asyncio
    async def test_follows_pages(self, operator, conn, populated, alpha, monkeypatch) -> None:
        monkeypatch.setattr("s3ops.core.constants.MAX_PAGE_SIZE", 10)
        objects = await operator.list_objects_in_bucket(conn, alpha, prefix="logs/", max_count=None)
        assert [o.key for o in objects] == [f"logs/{i:04d}" for i in range(25)]
        requests = populated.calls_to("list_objects_v2")
        assert len(requests) == 3
        assert "ContinuationToken" not in requests[0]
        assert requests[1]["ContinuationToken"] == "logs/0009"

    @pytest.mark.asyncio
    async def test_empty_bucket(self, operator, conn, s3, alpha) -> None:
        s3.buckets["alpha"] = {}
        assert await operator.list_objects_in_bucket(conn, alpha) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_count", [0, -5])
    async def test_rejects_non_positive_max_count(self, operator, conn, alpha, max_count) -> None:
        with pytest.raises(ValidationError):
            await operator.list_objects_in_bucket(conn, alpha, max_count=max_count)

    @pytest.mark.asyncio
    async def test_missing_bucket(self, operator, conn, alpha) -> None:
        with pytest.raises(UnhandledBackendError) as exc_info:
            await operator.list_objects_in_bucket(conn, alpha)
        assert exc_info.value.backend_code == "NoSuchBucket"

    @pytest.mark.asyncio
    async def test_listing_does_not_reveal_unrelated_keys(self, operator, conn, populated, alpha) -> None:
        found = await operator.get_object_if_exists(conn, alpha, ObjectKey("logs/"))
        assert not found
