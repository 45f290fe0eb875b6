"""Async HTTP client with rate limiting, retries and an optional response cache.

The stack from the outside in: the ``aiolimiter`` limiter gates every call,
the hishel cache answers repeated reads, and the ``httpx-retries`` transport
retries failed reads against the network.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from personsync.config.http_resilience import (
    CacheConfig,
    HttpRetryPolicy,
    RateLimit,
    ResilienceConfig,
)
from personsync.config.storage import get_http_cache_path

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

log = getLogger(__name__)

READ_METHODS = ("GET", "HEAD")


class _ClientOptions(TypedDict, total=False):
    base_url: str
    timeout: float
    headers: dict[str, str]
    transport: httpx.AsyncBaseTransport


def build_retry(policy: HttpRetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        backoff_jitter=policy.backoff_jitter,
        respect_retry_after_header=policy.respect_retry_after,
        allowed_methods=READ_METHODS,
        status_forcelist=tuple(sorted(policy.retry_statuses)),
    )


def build_cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None:
        return None
    if config.backend == "memory":
        database_path = ":memory:"
    else:
        database_path = str(config.sqlite_path or get_http_cache_path())
    return AsyncSqliteStorage(database_path=database_path, default_ttl=config.ttl_seconds)


class ResilientClient:
    """``httpx.AsyncClient`` for one external service, built from a ``ResilienceConfig``."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = _build_limiter(config.ratelimit)

        options: _ClientOptions = {
            "timeout": config.timeout_seconds,
            "headers": dict(config.headers),
            "transport": RetryTransport(retry=build_retry(config.retry)),
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url

        storage = build_cache_storage(config.cache)
        if storage is None:
            self._client = httpx.AsyncClient(**options)
        else:
            self._client = AsyncCacheClient(**options, storage=storage)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> httpx.Response:
        if self._limiter is None:
            response = await self._client.get(url, params=params)
        else:
            async with self._limiter:
                response = await self._client.get(url, params=params)
        log.debug("%s GET %s -> %s", self.config.name, response.url, response.status_code)
        return response


def _build_limiter(ratelimit: RateLimit | None) -> AsyncLimiter | None:
    if ratelimit is None:
        return None
    return AsyncLimiter(ratelimit.max_calls, ratelimit.per_seconds)


__all__ = [
    "CacheConfig",
    "HttpRetryPolicy",
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "build_cache_storage",
    "build_retry",
]
