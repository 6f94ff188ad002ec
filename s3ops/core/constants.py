"""
System-Wide Constants for the S3 Operator

Backend limits and defaults centralized here. Limits mirror the
documented S3 service quotas; S3-compatible servers (MinIO, R2)
accept the same values.
"""

from typing import Final

# =============================================================================
# SIZE UNITS
# =============================================================================
KB: Final[int] = 1024
MB: Final[int] = 1024 * KB
GB: Final[int] = 1024 * MB

# =============================================================================
# REGIONS
# =============================================================================
DEFAULT_REGION: Final[str] = "us-east-1"
REGION_ENV_VARS: Final[tuple[str, ...]] = ("AWS_REGION", "AWS_DEFAULT_REGION")

# =============================================================================
# IDENTIFIERS
# =============================================================================
BUCKET_NAME_MIN_LENGTH: Final[int] = 3
BUCKET_NAME_MAX_LENGTH: Final[int] = 63
OBJECT_KEY_MAX_BYTES: Final[int] = 1024

# =============================================================================
# LISTING
# =============================================================================
# ListObjectsV2 never returns more than 1000 keys per page.
MAX_PAGE_SIZE: Final[int] = 1000
DEFAULT_PAGE_SIZE: Final[int] = MAX_PAGE_SIZE
DEFAULT_PREFIX: Final[str] = ""

# =============================================================================
# MULTIPART TRANSFER
# =============================================================================
MIN_MULTIPART_CHUNK: Final[int] = 5 * MB
DEFAULT_MULTIPART_THRESHOLD: Final[int] = 8 * MB
DEFAULT_MULTIPART_CHUNK: Final[int] = 8 * MB
MAX_MULTIPART_PARTS: Final[int] = 10_000
DEFAULT_MAX_CONCURRENCY: Final[int] = 10
DOWNLOAD_CHUNK_BYTES: Final[int] = 1 * MB

# =============================================================================
# CLIENT DEFAULTS
# =============================================================================
DEFAULT_CONNECT_TIMEOUT_S: Final[int] = 5
DEFAULT_READ_TIMEOUT_S: Final[int] = 60
DEFAULT_MAX_RETRIES: Final[int] = 3
