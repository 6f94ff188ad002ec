"""
Connection Provider
===================

Resolves a region and credentials and opens an aioboto3 S3 client,
handed to callers as an ``S3Connection``: a disposable handle that is
released deterministically on every exit path.

Usage:
    provider = AioBoto3ConnectionProvider(S3Config.from_env())

    async with provider.connect() as conn:
        created = await operator.create_bucket(conn, BucketName("alpha"))

Thread Safety:
--------------
A connection is not shared between concurrent operator calls unless the
caller knows the client tolerates it; acquire one handle per concurrent
unit of work. Internal part-level parallelism within a single transfer
call is fine.
"""

from __future__ import annotations

import os
from contextlib import AsyncExitStack, asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    Union,
    runtime_checkable,
)

import aioboto3
from botocore.config import Config
from botocore.exceptions import ProfileNotFound

from s3ops.core import constants as C
from s3ops.core.config import S3Config
from s3ops.core.errors import (
    AuthenticationError,
    RegionResolutionError,
    UnhandledBackendError,
    ValidationError,
)
from s3ops.core.types import S3Region
from s3ops.observability.logging import StructuredLogger
from s3ops.s3.faults import BACKEND_FAULTS, FaultKind, backend_error_code, classify_fault, describe_fault

logger = StructuredLogger("s3ops.connection")

T = TypeVar("T")


# =============================================================================
# REGION PROVIDERS
# =============================================================================
@runtime_checkable
class RegionProvider(Protocol):
    """Resolves the region a new connection should target."""

    async def get_region(self) -> S3Region:
        ...


class StaticRegionProvider:
    """Always returns the region it was built with."""

    __slots__ = ("_region",)

    def __init__(self, region: Union[S3Region, str]) -> None:
        self._region = region if isinstance(region, S3Region) else S3Region(region)

    async def get_region(self) -> S3Region:
        return self._region


class EnvironmentRegionProvider:
    """
    Reads the region from the first populated environment variable.

    Defaults to AWS_REGION, then AWS_DEFAULT_REGION, the same order the
    AWS SDKs use.
    """

    __slots__ = ("_env_vars", "_environ")

    def __init__(
        self,
        env_vars: Sequence[str] = C.REGION_ENV_VARS,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._env_vars = tuple(env_vars)
        self._environ = environ

    async def get_region(self) -> S3Region:
        environ = os.environ if self._environ is None else self._environ
        for name in self._env_vars:
            value = environ.get(name, "").strip()
            if value:
                return S3Region(value)
        raise RegionResolutionError.unresolved(list(self._env_vars))


class ConfigRegionProvider:
    """Uses ``S3Config.region`` and falls back to another provider."""

    __slots__ = ("_config", "_fallback")

    def __init__(
        self,
        config: S3Config,
        fallback: Optional[RegionProvider] = None,
    ) -> None:
        self._config = config
        self._fallback = fallback or EnvironmentRegionProvider()

    async def get_region(self) -> S3Region:
        if self._config.region:
            try:
                return S3Region(self._config.region)
            except ValidationError as e:
                raise RegionResolutionError.unresolved(["S3Config.region"], cause=e) from e
        try:
            return await self._fallback.get_region()
        except RegionResolutionError as e:
            raise RegionResolutionError.unresolved(
                ["S3Config.region", *e.context.get("sources", [])], cause=e
            ) from e


# =============================================================================
# CONNECTION HANDLE
# =============================================================================
class S3Connection:
    """
    Live S3 client plus the region it was opened for.

    Owned by the caller; release with ``close()`` or ``async with``.
    Closing is idempotent. Using the client after close is an error.
    """

    __slots__ = ("_client", "_region", "_closer", "_closed")

    def __init__(
        self,
        client: Any,
        region: S3Region,
        closer: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self._client = client
        self._region = region
        self._closer = closer
        self._closed = False

    @property
    def client(self) -> Any:
        if self._closed:
            raise RuntimeError("S3Connection is closed")
        return self._client

    @property
    def region(self) -> S3Region:
        return self._region

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Release the underlying client. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        if self._closer is not None:
            await self._closer()

    async def __aenter__(self) -> S3Connection:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"S3Connection(region={self._region.value!r}, {state})"


# =============================================================================
# CONNECTION PROVIDERS
# =============================================================================
@runtime_checkable
class ConnectionProvider(Protocol):
    """Hands out connections valid for immediate use."""

    async def get_connection(self) -> S3Connection:
        ...


class AioBoto3ConnectionProvider:
    """
    Opens a fresh aioboto3 S3 client per ``get_connection()`` call.

    Region comes from the region provider (``ConfigRegionProvider`` by
    default); credentials from the config or the default AWS chain.

    Raises (from get_connection):
        RegionResolutionError: No region could be resolved.
        AuthenticationError: Profile missing, or credentials rejected
            by the connect-time probe (``verify_on_connect``).
    """

    __slots__ = ("_config", "_region_provider", "_session_factory")

    def __init__(
        self,
        config: S3Config,
        region_provider: Optional[RegionProvider] = None,
        session_factory: Callable[..., Any] = aioboto3.Session,
    ) -> None:
        self._config = config
        self._region_provider = region_provider or ConfigRegionProvider(config)
        self._session_factory = session_factory

    async def get_connection(self) -> S3Connection:
        region = await self._region_provider.get_region()
        session = self._make_session()

        stack = AsyncExitStack()
        try:
            client = await stack.enter_async_context(
                session.client(
                    "s3",
                    config=Config(**self._config.get_boto_config()),
                    **self._config.get_client_kwargs(region.value),
                )
            )
            if self._config.verify_on_connect:
                await self._verify(client)
        except BaseException:
            await stack.aclose()
            raise

        logger.debug("Opened S3 connection", region=region.value, endpoint=self._config.endpoint_url)
        return S3Connection(client, region, stack.aclose)

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[S3Connection]:
        """Scoped acquisition: the connection is closed on every exit path."""
        conn = await self.get_connection()
        async with conn:
            yield conn

    def _make_session(self) -> Any:
        try:
            return self._session_factory(**self._config.get_session_kwargs())
        except ProfileNotFound as e:
            raise AuthenticationError.rejected(
                f"profile '{self._config.profile_name}' not found", cause=e
            ) from e

    async def _verify(self, client: Any) -> None:
        """Probe credentials with a cheap authenticated call."""
        try:
            await client.list_buckets()
        except BACKEND_FAULTS as e:
            if classify_fault(e) is FaultKind.AUTHENTICATION:
                raise AuthenticationError.rejected(describe_fault(e), cause=e) from e
            raise UnhandledBackendError.wrap(
                "verify_connection", e, backend_code=backend_error_code(e)
            ) from e


async def run_with_connection(
    provider: ConnectionProvider,
    action: Callable[[S3Connection], Awaitable[T]],
) -> T:
    """Run ``action`` with a connection that is released afterwards."""
    conn = await provider.get_connection()
    async with conn:
        return await action(conn)
