"""
Error Hierarchy for the Idempotent S3 Operator

Design Principles:
- Expected backend outcomes ("already exists", "not found") never reach
  callers as errors; the operator turns them into booleans / WasFound
- Every other backend fault is wrapped once, with the original cause kept
- Strict-mode conflicts and post-condition failures get their own types
- Nothing here retries; retry policy belongs to the transport

Each error carries:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Context dict (bucket, key, backend error code, ...)

Usage:
    try:
        await create_bucket_throw_if_exists(operator, conn, bucket)
    except StateConflictError as e:
        log.warning("bucket taken", **e.context)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Input validation
    - 2xxx: Connection establishment
    - 3xxx: Backend faults
    - 4xxx: Strict-mode state conflicts
    - 5xxx: Post-condition violations
    """

    # Validation (1xxx)
    VALIDATION_EMPTY = 1001
    VALIDATION_INVALID = 1002

    # Connection (2xxx)
    CONNECTION_AUTHENTICATION_FAILED = 2001
    CONNECTION_REGION_UNRESOLVED = 2002

    # Backend (3xxx)
    BACKEND_UNHANDLED_FAULT = 3001
    BACKEND_QUERY_FAILED = 3002

    # Conflicts (4xxx)
    CONFLICT_BUCKET_EXISTS = 4001
    CONFLICT_BUCKET_ABSENT = 4002
    CONFLICT_OBJECT_EXISTS = 4003
    CONFLICT_FILE_EXISTS = 4004
    CONFLICT_OBJECT_NOT_FOUND = 4005

    # Invariants (5xxx)
    INVARIANT_BUCKET_MISSING_AFTER_CREATE = 5001
    INVARIANT_BUCKET_PRESENT_AFTER_DELETE = 5002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass(eq=False)
class S3OpsError(Exception):
    """
    Base class for all operator errors.

    Provides:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp of the failure
    - Cause for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def with_context(self, **kwargs: Any) -> S3OpsError:
        """Add context to error (returns new instance of the same type)."""
        return dataclasses.replace(self, context={**self.context, **kwargs})

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for structured logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "occurred_at": self.occurred_at.isoformat(),
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================
@dataclass(eq=False, repr=False)
class ValidationError(S3OpsError, ValueError):
    """
    Malformed input at construction time.

    Never retried; the caller must fix the input.
    """

    @classmethod
    def empty(cls, field_name: str) -> ValidationError:
        return cls(
            code=ErrorCode.VALIDATION_EMPTY,
            message=f"'{field_name}' must not be empty",
            context={"field": field_name},
        )

    @classmethod
    def invalid(cls, field_name: str, value: Any, reason: str) -> ValidationError:
        return cls(
            code=ErrorCode.VALIDATION_INVALID,
            message=f"Invalid '{field_name}': {reason}",
            context={"field": field_name, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# CONNECTION ERRORS
# =============================================================================
@dataclass(eq=False, repr=False)
class AuthenticationError(S3OpsError):
    """Credentials missing, malformed or rejected while opening a connection."""

    @classmethod
    def rejected(cls, reason: str, cause: Optional[BaseException] = None) -> AuthenticationError:
        return cls(
            code=ErrorCode.CONNECTION_AUTHENTICATION_FAILED,
            message=f"Authentication failed: {reason}",
            cause=cause,
            context={"reason": reason},
        )


@dataclass(eq=False, repr=False)
class RegionResolutionError(S3OpsError):
    """No region could be resolved for a new connection."""

    @classmethod
    def unresolved(cls, sources: list[str], cause: Optional[BaseException] = None) -> RegionResolutionError:
        return cls(
            code=ErrorCode.CONNECTION_REGION_UNRESOLVED,
            message=f"Could not resolve a region from: {', '.join(sources)}",
            cause=cause,
            context={"sources": sources},
        )


# =============================================================================
# BACKEND ERRORS
# =============================================================================
@dataclass(eq=False, repr=False)
class UnhandledBackendError(S3OpsError):
    """
    A backend fault that is not one of the expected idempotency signals.

    Wraps the original exception; raised with ``from`` so the traceback
    chain is kept as well.
    """

    @classmethod
    def wrap(
        cls,
        operation: str,
        cause: BaseException,
        backend_code: Optional[str] = None,
        **context: Any,
    ) -> UnhandledBackendError:
        detail = backend_code or type(cause).__name__
        return cls(
            code=ErrorCode.BACKEND_UNHANDLED_FAULT,
            message=f"Unhandled backend fault during {operation}: {detail}",
            cause=cause,
            context={"operation": operation, "backend_code": backend_code, **context},
        )

    @property
    def backend_code(self) -> Optional[str]:
        return self.context.get("backend_code")


@dataclass(eq=False, repr=False)
class BackendQueryError(S3OpsError):
    """A metadata query (bucket location) did not succeed."""

    @classmethod
    def failed(
        cls,
        query: str,
        reason: str,
        cause: Optional[BaseException] = None,
        **context: Any,
    ) -> BackendQueryError:
        return cls(
            code=ErrorCode.BACKEND_QUERY_FAILED,
            message=f"Backend query '{query}' failed: {reason}",
            cause=cause,
            context={"query": query, "reason": reason, **context},
        )


# =============================================================================
# STRICT-MODE CONFLICTS
# =============================================================================
@dataclass(eq=False, repr=False)
class StateConflictError(S3OpsError):
    """
    A strict variant hit the case its idempotent twin treats as a no-op.

    Only raised by extension helpers, never by the idempotent primitives.
    """

    @classmethod
    def bucket_exists(cls, bucket: str) -> StateConflictError:
        return cls(
            code=ErrorCode.CONFLICT_BUCKET_EXISTS,
            message=f"Failed to create bucket '{bucket}': bucket already exists",
            context={"bucket": bucket},
        )

    @classmethod
    def bucket_absent(cls, bucket: str) -> StateConflictError:
        return cls(
            code=ErrorCode.CONFLICT_BUCKET_ABSENT,
            message=f"Failed to delete bucket '{bucket}': bucket did not exist",
            context={"bucket": bucket},
        )


@dataclass(eq=False, repr=False)
class ObjectAlreadyExistsError(StateConflictError):
    """Upload with overwrite disabled found an existing object."""

    @classmethod
    def for_key(cls, bucket: str, key: str) -> ObjectAlreadyExistsError:
        return cls(
            code=ErrorCode.CONFLICT_OBJECT_EXISTS,
            message=f"Object already exists. Bucket: {bucket}, key: {key}",
            context={"bucket": bucket, "key": key},
        )


@dataclass(eq=False, repr=False)
class FileAlreadyExistsError(StateConflictError):
    """Download destination exists and overwrite is disabled."""

    @classmethod
    def for_path(cls, path: str) -> FileAlreadyExistsError:
        return cls(
            code=ErrorCode.CONFLICT_FILE_EXISTS,
            message=f"Destination file already exists: {path}",
            context={"path": path},
        )


@dataclass(eq=False, repr=False)
class ObjectNotFoundError(S3OpsError):
    """A helper that requires the object found none."""

    @classmethod
    def for_key(cls, bucket: str, key: str) -> ObjectNotFoundError:
        return cls(
            code=ErrorCode.CONFLICT_OBJECT_NOT_FOUND,
            message=f"Object not found. Bucket: {bucket}, key: {key}",
            context={"bucket": bucket, "key": key},
        )


# =============================================================================
# POST-CONDITION VIOLATIONS
# =============================================================================
@dataclass(eq=False, repr=False)
class InvariantViolationError(S3OpsError):
    """
    A verifying re-check disagreed with the mutation that preceded it.

    Signals an eventual-consistency anomaly or backend misbehavior.
    Fatal to the calling operation; never retried here.
    """

    @classmethod
    def bucket_missing_after_create(cls, bucket: str) -> InvariantViolationError:
        return cls(
            code=ErrorCode.INVARIANT_BUCKET_MISSING_AFTER_CREATE,
            message=f"Bucket '{bucket}' did not exist even after creation",
            context={"bucket": bucket},
        )

    @classmethod
    def bucket_present_after_delete(cls, bucket: str) -> InvariantViolationError:
        return cls(
            code=ErrorCode.INVARIANT_BUCKET_PRESENT_AFTER_DELETE,
            message=f"Bucket '{bucket}' still existed even after deletion",
            context={"bucket": bucket},
        )
