"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the operator:
- Typed identifiers validated once at construction
- WasFound outcome for expected-absence lookups
- Error hierarchy with stable codes
- Configuration with validation
"""

from s3ops.core.types import (
    Result,
    Ok,
    Err,
    BucketName,
    ObjectKey,
    S3Region,
    WasFound,
)
from s3ops.core.errors import (
    ErrorCode,
    S3OpsError,
    ValidationError,
    AuthenticationError,
    RegionResolutionError,
    UnhandledBackendError,
    BackendQueryError,
    StateConflictError,
    ObjectAlreadyExistsError,
    FileAlreadyExistsError,
    ObjectNotFoundError,
    InvariantViolationError,
)
from s3ops.core.config import S3Config

__all__ = [
    "Result",
    "Ok",
    "Err",
    "BucketName",
    "ObjectKey",
    "S3Region",
    "WasFound",
    "ErrorCode",
    "S3OpsError",
    "ValidationError",
    "AuthenticationError",
    "RegionResolutionError",
    "UnhandledBackendError",
    "BackendQueryError",
    "StateConflictError",
    "ObjectAlreadyExistsError",
    "FileAlreadyExistsError",
    "ObjectNotFoundError",
    "InvariantViolationError",
    "S3Config",
]
