"""
Backend Fault Classification
============================

The S3 API reports expected outcomes ("bucket already exists", "no such
bucket") as errors. This module maps botocore exceptions onto a small,
stable set of fault kinds so the operator can absorb exactly the signal
each idempotent call expects and wrap everything else.

Error-code sources:
- Body-carrying responses report ``Error.Code`` ("NoSuchBucket", ...)
- HEAD responses have no body; botocore reports the HTTP status as the
  code ("404", "403", "301")
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

# Exceptions that originate in the backend client rather than in caller code.
BACKEND_FAULTS: tuple[type[Exception], ...] = (ClientError, BotoCoreError)


class FaultKind(Enum):
    """Normalized backend fault kinds."""
    BUCKET_ALREADY_OWNED = auto()   # exists and the caller owns it
    BUCKET_ALREADY_EXISTS = auto()  # exists, owned by someone else
    BUCKET_NOT_FOUND = auto()
    KEY_NOT_FOUND = auto()
    NOT_FOUND = auto()              # bare 404 from a HEAD request
    REDIRECT = auto()               # bucket lives in another region
    ACCESS_DENIED = auto()
    AUTHENTICATION = auto()
    GENERIC = auto()


_CODE_KINDS: dict[str, FaultKind] = {
    "BucketAlreadyOwnedByYou": FaultKind.BUCKET_ALREADY_OWNED,
    "BucketAlreadyExists": FaultKind.BUCKET_ALREADY_EXISTS,
    "NoSuchBucket": FaultKind.BUCKET_NOT_FOUND,
    "NoSuchKey": FaultKind.KEY_NOT_FOUND,
    "404": FaultKind.NOT_FOUND,
    "NotFound": FaultKind.NOT_FOUND,
    "301": FaultKind.REDIRECT,
    "PermanentRedirect": FaultKind.REDIRECT,
    "AccessDenied": FaultKind.ACCESS_DENIED,
    "AllAccessDisabled": FaultKind.ACCESS_DENIED,
    "Forbidden": FaultKind.ACCESS_DENIED,
    "403": FaultKind.ACCESS_DENIED,
    "InvalidAccessKeyId": FaultKind.AUTHENTICATION,
    "SignatureDoesNotMatch": FaultKind.AUTHENTICATION,
    "ExpiredToken": FaultKind.AUTHENTICATION,
    "InvalidToken": FaultKind.AUTHENTICATION,
    "TokenRefreshRequired": FaultKind.AUTHENTICATION,
}


def backend_error_code(exc: BaseException) -> Optional[str]:
    """``Error.Code`` of a ClientError, None for anything else."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def http_status(exc: BaseException) -> Optional[int]:
    """HTTP status of a ClientError response, when reported."""
    if isinstance(exc, ClientError):
        return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


def classify_fault(exc: BaseException) -> FaultKind:
    """
    Map a backend exception to its FaultKind.

    Unknown codes and non-backend exceptions are GENERIC.
    """
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return FaultKind.AUTHENTICATION
    code = backend_error_code(exc)
    if code is None:
        return FaultKind.GENERIC
    return _CODE_KINDS.get(code, FaultKind.GENERIC)


def describe_fault(exc: BaseException) -> str:
    """Short identifier for logs: the backend code or the exception type."""
    return backend_error_code(exc) or type(exc).__name__
