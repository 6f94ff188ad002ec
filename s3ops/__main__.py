#!/usr/bin/env python3
"""
s3ops command line

Small operational entry points over the idempotent operator.

Usage:
    python -m s3ops buckets
    python -m s3ops lifecycle my-scratch-bucket
    python -m s3ops exists my-bucket path/to/key

    # Against MinIO
    S3_ENDPOINT_URL=http://localhost:9000 S3_ADDRESSING_STYLE=path \
        python -m s3ops buckets
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from s3ops.core.config import S3Config
from s3ops.core.errors import S3OpsError
from s3ops.core.types import BucketName, ObjectKey
from s3ops.observability.logging import LogLevel, StructuredLogger, setup_logging
from s3ops.s3.connection import AioBoto3ConnectionProvider, S3Connection
from s3ops.s3.operator import S3Operator

logger = StructuredLogger("s3ops.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3ops",
        description="Idempotent S3 bucket and object operations",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.name for level in LogLevel],
        default="WARNING",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("buckets", help="List buckets owned by the caller")

    lifecycle = sub.add_parser(
        "lifecycle", help="Create twice, then delete twice, printing each outcome"
    )
    lifecycle.add_argument("bucket")

    exists = sub.add_parser("exists", help="Check whether an object exists")
    exists.add_argument("bucket")
    exists.add_argument("key")

    return parser


async def _list_buckets(operator: S3Operator, conn: S3Connection) -> None:
    for info in await operator.list_buckets_for_owner(conn):
        created = info.created_at.isoformat() if info.created_at else "-"
        print(f"{info.name}\t{created}")


async def _lifecycle(operator: S3Operator, conn: S3Connection, bucket: BucketName) -> None:
    print(f"create {bucket.value}: {await operator.create_bucket(conn, bucket)}")
    print(f"create {bucket.value}: {await operator.create_bucket(conn, bucket)}")
    print(f"delete {bucket.value}: {await operator.delete_bucket(conn, bucket)}")
    print(f"delete {bucket.value}: {await operator.delete_bucket(conn, bucket)}")


async def _exists(
    operator: S3Operator,
    conn: S3Connection,
    bucket: BucketName,
    key: ObjectKey,
) -> None:
    found = await operator.get_object_if_exists(conn, bucket, key)
    if found:
        info = found.result
        print(f"found\t{info.key}\t{info.size_bytes}\t{info.etag}")
    else:
        print("absent")


async def run_command(args: argparse.Namespace, config: S3Config) -> None:
    operator = S3Operator(config)
    provider = AioBoto3ConnectionProvider(config)

    async with provider.connect() as conn:
        if args.command == "buckets":
            await _list_buckets(operator, conn)
        elif args.command == "lifecycle":
            await _lifecycle(operator, conn, BucketName(args.bucket))
        elif args.command == "exists":
            await _exists(operator, conn, BucketName(args.bucket), ObjectKey(args.key))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Synchronous entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(LogLevel[args.log_level], json_output=args.json_logs)

    with logger.context(command=args.command):
        try:
            config = S3Config.from_env()
            asyncio.run(run_command(args, config))
        except S3OpsError as e:
            logger.error("Command failed", exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            print("\nInterrupted", file=sys.stderr)
            return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
