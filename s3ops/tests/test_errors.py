"""
Error hierarchy tests.

Run: python -m pytest s3ops/tests/test_errors.py -v
"""

from __future__ import annotations

import pytest

from s3ops.core.errors import (
    BackendQueryError,
    ErrorCode,
    FileAlreadyExistsError,
    InvariantViolationError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    S3OpsError,
    StateConflictError,
    UnhandledBackendError,
    ValidationError,
)
from s3ops.tests.fake_s3 import client_error


class TestErrorHierarchy:
    def test_conflicts_share_a_base(self) -> None:
        assert issubclass(ObjectAlreadyExistsError, StateConflictError)
        assert issubclass(FileAlreadyExistsError, StateConflictError)
        assert not issubclass(ObjectNotFoundError, StateConflictError)

    def test_everything_is_an_s3ops_error(self) -> None:
        for cls in (ValidationError, UnhandledBackendError, BackendQueryError,
                    StateConflictError, InvariantViolationError):
            assert issubclass(cls, S3OpsError)

    def test_raisable_and_catchable(self) -> None:
        with pytest.raises(S3OpsError, match="already exists"):
            raise StateConflictError.bucket_exists("alpha")


class TestFactories:
    def test_unhandled_keeps_cause_and_code(self) -> None:
        cause = client_error("InternalError", 500, "CreateBucket")
        err = UnhandledBackendError.wrap("create_bucket", cause, backend_code="InternalError",
                                         bucket="alpha")
        assert err.cause is cause
        assert err.backend_code == "InternalError"
        assert err.context["bucket"] == "alpha"
        assert err.code is ErrorCode.BACKEND_UNHANDLED_FAULT
        assert "InternalError" in err.message

    def test_unhandled_without_backend_code_uses_type_name(self) -> None:
        err = UnhandledBackendError.wrap("list_buckets", TimeoutError())
        assert "TimeoutError" in err.message
        assert err.backend_code is None

    def test_object_conflict_context(self) -> None:
        err = ObjectAlreadyExistsError.for_key("alpha", "k1")
        assert err.context == {"bucket": "alpha", "key": "k1"}
        assert err.code is ErrorCode.CONFLICT_OBJECT_EXISTS

    def test_invariant_codes(self) -> None:
        assert (InvariantViolationError.bucket_missing_after_create("a").code
                is ErrorCode.INVARIANT_BUCKET_MISSING_AFTER_CREATE)
        assert (InvariantViolationError.bucket_present_after_delete("a").code
                is ErrorCode.INVARIANT_BUCKET_PRESENT_AFTER_DELETE)


class TestSerialization:
    def test_to_dict(self) -> None:
        err = BackendQueryError.failed("get_bucket_location", "HTTP 500", bucket="alpha")
        data = err.to_dict()
        assert data["code"] == "BACKEND_QUERY_FAILED"
        assert data["code_value"] == ErrorCode.BACKEND_QUERY_FAILED.value
        assert data["context"]["bucket"] == "alpha"
        assert data["error_id"] == err.error_id

    def test_with_context_returns_same_type(self) -> None:
        err = StateConflictError.bucket_absent("alpha").with_context(attempt=2)
        assert isinstance(err, StateConflictError)
        assert err.context == {"bucket": "alpha", "attempt": 2}

    def test_str_and_repr(self) -> None:
        err = ValidationError.empty("bucket_name")
        assert str(err).startswith("[VALIDATION_EMPTY]")
        assert repr(err).startswith("ValidationError(code=VALIDATION_EMPTY")

    def test_errors_compare_by_identity(self) -> None:
        assert ValidationError.empty("x") != ValidationError.empty("x")
