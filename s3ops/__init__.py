"""
s3ops: Idempotent Operations over S3-Compatible Object Storage

Bucket and object operations whose outcomes are deterministic and safe
to retry:
- "Already exists" / "not found" backend signals become booleans or
  WasFound values instead of exceptions
- Every other backend fault is wrapped once and propagated
- Connections are scoped resources, released on every exit path
- Large transfers use multipart uploads that are aborted on failure

Usage:
    from s3ops import AioBoto3ConnectionProvider, BucketName, S3Config, S3Operator

    config = S3Config.from_env()
    operator = S3Operator(config)
    async with AioBoto3ConnectionProvider(config).connect() as conn:
        await operator.create_bucket(conn, BucketName("alpha"))
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
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

from s3ops.s3 import (
    S3Connection,
    ConnectionProvider,
    AioBoto3ConnectionProvider,
    run_with_connection,
    StaticRegionProvider,
    EnvironmentRegionProvider,
    ConfigRegionProvider,
    BucketNameProvider,
    ConstructorBucketNameProvider,
    BucketInfo,
    ObjectInfo,
    ObjectStorageOperator,
    S3Operator,
    extensions,
)

from s3ops.observability import StructuredLogger, setup_logging, OperatorMetrics

__all__ = [
    # Version
    "__version__",
    # Core types
    "Result",
    "Ok",
    "Err",
    "BucketName",
    "ObjectKey",
    "S3Region",
    "WasFound",
    # Errors
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
    # Config
    "S3Config",
    # Connections and providers
    "S3Connection",
    "ConnectionProvider",
    "AioBoto3ConnectionProvider",
    "run_with_connection",
    "StaticRegionProvider",
    "EnvironmentRegionProvider",
    "ConfigRegionProvider",
    "BucketNameProvider",
    "ConstructorBucketNameProvider",
    # Operator
    "BucketInfo",
    "ObjectInfo",
    "ObjectStorageOperator",
    "S3Operator",
    "extensions",
    # Observability
    "StructuredLogger",
    "setup_logging",
    "OperatorMetrics",
]
