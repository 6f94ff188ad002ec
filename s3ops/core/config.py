"""
Configuration for the S3 Operator

Type-safe, immutable configuration for the connection provider,
the transfer strategy and the default-bucket provider.

Design Principles:
------------------
1. **Immutability**: Frozen dataclass, safe to share between tasks
2. **Validation**: Pre-conditions checked at construction time
3. **Explicit passing**: Built once and threaded through constructors,
   never read from a process-wide singleton
4. **Environment**: Optional loading from environment variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from s3ops.core import constants as C
from s3ops.core.errors import ValidationError

_ADDRESSING_STYLES = ("auto", "virtual", "path")


@dataclass(frozen=True)
class S3Config:
    """
    S3-compatible backend configuration.

    Supports AWS S3, MinIO, Cloudflare R2, and other S3-compatible stores.

    Attributes:
        bucket_name: Default bucket for single-bucket deployments (optional).
        region: Region name; None defers to the region provider chain.
        endpoint_url: Custom endpoint for MinIO/R2 (None for AWS).
        access_key_id: Access key (None for the default credential chain).
        secret_access_key: Secret key (None for the default credential chain).
        session_token: Temporary session token for STS.
        profile_name: Named profile from the shared credentials file.
        multipart_threshold_bytes: Payloads at or above this size use multipart.
        multipart_chunksize_bytes: Part size for multipart transfers.
        max_concurrency: Max parallel part transfers for file variants.
        connect_timeout_seconds: TCP connect timeout.
        read_timeout_seconds: Read operation timeout.
        max_retries: Transport-level retry attempts (botocore).
        use_ssl: Use HTTPS for connections.
        verify_ssl: Verify SSL certificates (disable for self-signed).
        addressing_style: "auto", "virtual" or "path" (MinIO wants "path").
        verify_on_connect: Probe credentials when a connection is opened.
    """

    bucket_name: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    profile_name: Optional[str] = None

    multipart_threshold_bytes: int = C.DEFAULT_MULTIPART_THRESHOLD
    multipart_chunksize_bytes: int = C.DEFAULT_MULTIPART_CHUNK

    max_concurrency: int = C.DEFAULT_MAX_CONCURRENCY
    connect_timeout_seconds: int = C.DEFAULT_CONNECT_TIMEOUT_S
    read_timeout_seconds: int = C.DEFAULT_READ_TIMEOUT_S
    max_retries: int = C.DEFAULT_MAX_RETRIES

    use_ssl: bool = True
    verify_ssl: bool = True
    addressing_style: str = "auto"
    verify_on_connect: bool = False

    def __post_init__(self) -> None:
        """
        Validate configuration invariants.

        Raises:
            ValidationError: If any invariant is violated.
        """
        if self.multipart_threshold_bytes < C.MIN_MULTIPART_CHUNK:
            raise ValidationError.invalid(
                "multipart_threshold_bytes",
                self.multipart_threshold_bytes,
                f"must be >= {C.MIN_MULTIPART_CHUNK}",
            )
        if self.multipart_chunksize_bytes < C.MIN_MULTIPART_CHUNK:
            raise ValidationError.invalid(
                "multipart_chunksize_bytes",
                self.multipart_chunksize_bytes,
                f"must be >= {C.MIN_MULTIPART_CHUNK}",
            )
        if self.max_concurrency <= 0:
            raise ValidationError.invalid("max_concurrency", self.max_concurrency, "must be > 0")
        if self.connect_timeout_seconds <= 0:
            raise ValidationError.invalid(
                "connect_timeout_seconds", self.connect_timeout_seconds, "must be > 0"
            )
        if self.read_timeout_seconds <= 0:
            raise ValidationError.invalid(
                "read_timeout_seconds", self.read_timeout_seconds, "must be > 0"
            )
        if self.max_retries < 0:
            raise ValidationError.invalid("max_retries", self.max_retries, "must be >= 0")
        if self.addressing_style not in _ADDRESSING_STYLES:
            raise ValidationError.invalid(
                "addressing_style",
                self.addressing_style,
                f"must be one of {', '.join(_ADDRESSING_STYLES)}",
            )
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValidationError.invalid(
                "access_key_id",
                "<redacted>",
                "access_key_id and secret_access_key must be set together",
            )

    @classmethod
    def from_env(cls, prefix: str = "S3") -> S3Config:
        """
        Construct configuration from environment variables.

        Environment Variables:
        - {prefix}_BUCKET: Default bucket name
        - {prefix}_REGION: Region (falls back to the region provider chain)
        - {prefix}_ENDPOINT_URL: Custom endpoint URL
        - {prefix}_ACCESS_KEY_ID / AWS_ACCESS_KEY_ID: Access key ID
        - {prefix}_SECRET_ACCESS_KEY / AWS_SECRET_ACCESS_KEY: Secret key
        - AWS_SESSION_TOKEN: STS session token
        - {prefix}_PROFILE / AWS_PROFILE: Shared-credentials profile
        - {prefix}_MULTIPART_THRESHOLD / {prefix}_MULTIPART_CHUNKSIZE: Bytes
        - {prefix}_MAX_CONCURRENCY: Parallel part transfers (default: 10)
        - {prefix}_CONNECT_TIMEOUT / {prefix}_READ_TIMEOUT: Seconds
        - {prefix}_MAX_RETRIES: Transport retries (default: 3)
        - {prefix}_USE_SSL / {prefix}_VERIFY_SSL: Booleans (default: true)
        - {prefix}_ADDRESSING_STYLE: auto|virtual|path
        - {prefix}_VERIFY_ON_CONNECT: Boolean (default: false)

        Raises:
            ValidationError: If a numeric variable does not parse or any
                invariant is violated.
        """
        def _get(key: str, default: str = "") -> str:
            return os.environ.get(f"{prefix}_{key}", default)

        def _get_int(key: str, default: int) -> int:
            val = _get(key)
            if not val:
                return default
            try:
                return int(val)
            except ValueError:
                raise ValidationError.invalid(f"{prefix}_{key}", val, "not an integer") from None

        def _get_bool(key: str, default: bool) -> bool:
            val = _get(key).lower()
            if val in ("true", "1", "yes"):
                return True
            if val in ("false", "0", "no"):
                return False
            return default

        return cls(
            bucket_name=_get("BUCKET") or None,
            region=_get("REGION") or None,
            endpoint_url=_get("ENDPOINT_URL") or None,
            access_key_id=_get("ACCESS_KEY_ID") or os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=_get("SECRET_ACCESS_KEY") or os.environ.get("AWS_SECRET_ACCESS_KEY"),
            session_token=os.environ.get("AWS_SESSION_TOKEN"),
            profile_name=_get("PROFILE") or os.environ.get("AWS_PROFILE"),
            multipart_threshold_bytes=_get_int("MULTIPART_THRESHOLD", C.DEFAULT_MULTIPART_THRESHOLD),
            multipart_chunksize_bytes=_get_int("MULTIPART_CHUNKSIZE", C.DEFAULT_MULTIPART_CHUNK),
            max_concurrency=_get_int("MAX_CONCURRENCY", C.DEFAULT_MAX_CONCURRENCY),
            connect_timeout_seconds=_get_int("CONNECT_TIMEOUT", C.DEFAULT_CONNECT_TIMEOUT_S),
            read_timeout_seconds=_get_int("READ_TIMEOUT", C.DEFAULT_READ_TIMEOUT_S),
            max_retries=_get_int("MAX_RETRIES", C.DEFAULT_MAX_RETRIES),
            use_ssl=_get_bool("USE_SSL", True),
            verify_ssl=_get_bool("VERIFY_SSL", True),
            addressing_style=_get("ADDRESSING_STYLE", "auto"),
            verify_on_connect=_get_bool("VERIFY_ON_CONNECT", False),
        )

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``aioboto3.Session``."""
        kwargs: Dict[str, Any] = {}
        if self.access_key_id and self.secret_access_key:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        if self.profile_name:
            kwargs["profile_name"] = self.profile_name
        return kwargs

    def get_boto_config(self) -> Dict[str, Any]:
        """
        Keyword arguments for ``botocore.config.Config``.

        Connection pool is sized for the concurrent part transfers.
        """
        return {
            "max_pool_connections": self.max_concurrency,
            "connect_timeout": self.connect_timeout_seconds,
            "read_timeout": self.read_timeout_seconds,
            "retries": {"max_attempts": self.max_retries, "mode": "standard"},
            "s3": {"addressing_style": self.addressing_style},
        }

    def get_client_kwargs(self, region: str) -> Dict[str, Any]:
        """
        Keyword arguments for ``session.client("s3", ...)`` minus ``config``.

        Args:
            region: Resolved region name.
        """
        kwargs: Dict[str, Any] = {
            "region_name": region,
            "use_ssl": self.use_ssl,
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if not self.verify_ssl:
            kwargs["verify"] = False
        return kwargs
