"""
Core Type Definitions for the Idempotent S3 Operator

Typed identifiers and outcome containers shared by every layer:
- Result/Ok/Err for fallible parsing without exceptions
- BucketName / ObjectKey / S3Region typed strings, validated once
- WasFound[T] for expected-absence lookups

Design Principles:
- Construction is the single validation point for identifiers
- Identifiers never convert implicitly back to raw strings
- "Absent" is a value (WasFound), not an exception

Complexity: O(len(value)) validation, O(1) for everything else
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Optional,
    TypeVar,
    Union,
)

from s3ops.core import constants as C
from s3ops.core.errors import ValidationError

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result.

    Immutable container for a successful computation.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """Extract value. Safe to call after is_ok() check."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result.

    Carries the error value unchanged through map().
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]


# =============================================================================
# TYPED STRING IDENTIFIERS
# =============================================================================
# Lowercase letters, digits, dots and hyphens; alphanumeric at both ends.
_BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$")


def _is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True, slots=True, order=True)
class BucketName:
    """
    Validated S3 bucket name.

    Bucket names are globally unique across every tenant of the backend,
    so a name says nothing about ownership until it is resolved.

    Rules enforced (S3 general-purpose bucket naming):
        - 3 to 63 characters
        - lowercase letters, digits, '.' and '-'
        - begins and ends with a letter or digit
        - no consecutive dots, not an IPv4 address

    Raises:
        ValidationError: On any rule violation.
    """

    value: str

    def __post_init__(self) -> None:
        value = self.value
        if not isinstance(value, str) or not value:
            raise ValidationError.empty("bucket_name")
        if not C.BUCKET_NAME_MIN_LENGTH <= len(value) <= C.BUCKET_NAME_MAX_LENGTH:
            raise ValidationError.invalid(
                "bucket_name",
                value,
                f"length must be between {C.BUCKET_NAME_MIN_LENGTH} "
                f"and {C.BUCKET_NAME_MAX_LENGTH}",
            )
        if not _BUCKET_NAME_PATTERN.match(value):
            raise ValidationError.invalid(
                "bucket_name",
                value,
                "only lowercase letters, digits, '.' and '-' are allowed, "
                "starting and ending with a letter or digit",
            )
        if ".." in value:
            raise ValidationError.invalid("bucket_name", value, "consecutive dots")
        if _is_ipv4(value):
            raise ValidationError.invalid("bucket_name", value, "IP address format")

    @classmethod
    def parse(cls, s: str) -> Result[BucketName, str]:
        """
        Parse a bucket name without raising.

        Returns:
            Ok[BucketName]: Valid name
            Err[str]: Validation error message
        """
        try:
            return Ok(cls(s))
        except ValidationError as e:
            return Err(e.message)

    def unwrap(self) -> str:
        """Explicit conversion back to the raw string."""
        return self.value


@dataclass(frozen=True, slots=True, order=True)
class ObjectKey:
    """
    Validated object key, unique only within its bucket.

    Keys are opaque: '/' has no special meaning to this layer.

    Raises:
        ValidationError: If empty or longer than 1024 UTF-8 bytes.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValidationError.empty("object_key")
        size = len(self.value.encode("utf-8"))
        if size > C.OBJECT_KEY_MAX_BYTES:
            raise ValidationError.invalid(
                "object_key",
                self.value,
                f"{size} bytes exceeds {C.OBJECT_KEY_MAX_BYTES} byte limit",
            )

    @classmethod
    def parse(cls, s: str) -> Result[ObjectKey, str]:
        try:
            return Ok(cls(s))
        except ValidationError as e:
            return Err(e.message)

    def unwrap(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True, order=True)
class S3Region:
    """
    Opaque storage region name (e.g. "eu-west-1").

    Resolved from bucket metadata or a region provider, never guessed.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError.empty("region")

    @classmethod
    def from_location_constraint(cls, constraint: Optional[str]) -> S3Region:
        """
        Map a GetBucketLocation LocationConstraint to a region.

        The API reports us-east-1 as an empty constraint and eu-west-1
        as the legacy "EU" value.
        """
        if not constraint:
            return cls(C.DEFAULT_REGION)
        if constraint == "EU":
            return cls("eu-west-1")
        return cls(constraint)

    @property
    def is_default(self) -> bool:
        """us-east-1 takes no LocationConstraint on bucket creation."""
        return self.value == C.DEFAULT_REGION

    def unwrap(self) -> str:
        return self.value


# =============================================================================
# WAS-FOUND OUTCOME
# =============================================================================
_MISSING: Any = object()


@dataclass(frozen=True, slots=True)
class WasFound(Generic[T]):
    """
    Outcome of a lookup where absence is normal, not exceptional.

    Use the constructors rather than the raw fields:
        WasFound.of(value)          -> found
        WasFound.absent()           -> not found
        WasFound.from_optional(v)   -> found iff v is not None

    Accessing ``result`` on a not-found outcome is a programming error
    and fails fast.
    """

    found: bool
    _result: Any = field(default=_MISSING, repr=False)

    def __post_init__(self) -> None:
        has_result = self._result is not _MISSING
        if self.found and not has_result:
            raise ValueError("WasFound(found=True) requires a result")
        if not self.found and has_result:
            raise ValueError("WasFound(found=False) cannot carry a result")

    @classmethod
    def of(cls, value: T) -> WasFound[T]:
        return cls(True, value)

    @classmethod
    def absent(cls) -> WasFound[T]:
        return cls(False)

    @classmethod
    def from_optional(cls, value: Optional[T]) -> WasFound[T]:
        if value is None:
            return cls.absent()
        return cls.of(value)

    @property
    def result(self) -> T:
        """
        The found value.

        Raises:
            RuntimeError: If nothing was found.
        """
        if not self.found:
            raise RuntimeError("Accessed WasFound.result on a not-found outcome")
        return self._result

    def unwrap_or(self, default: T) -> T:
        return self._result if self.found else default

    def map(self, fn: Callable[[T], U]) -> WasFound[U]:
        if not self.found:
            return WasFound.absent()
        return WasFound.of(fn(self._result))

    def __bool__(self) -> bool:
        return self.found

    def __repr__(self) -> str:
        if self.found:
            return f"WasFound({self._result!r})"
        return "WasFound(<absent>)"
