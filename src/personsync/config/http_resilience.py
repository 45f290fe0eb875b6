"""HTTP client settings shared by external record sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class HttpRetryPolicy:
    """Retries for idempotent reads; ``total`` counts retries, not attempts."""

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    backoff_jitter: float = 0.5
    retry_statuses: frozenset[int] = RETRYABLE_STATUSES
    respect_retry_after: bool = True


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float

    @classmethod
    def per_minute(cls, calls: int) -> RateLimit:
        return cls(max_calls=calls, per_seconds=60.0)


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Response cache; ``sqlite`` persists next to the database unless a path is given."""

    backend: Literal["memory", "sqlite"] = "memory"
    ttl_seconds: float | None = None
    sqlite_path: Path | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: HttpRetryPolicy = field(default_factory=HttpRetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    headers: Mapping[str, str] = field(default_factory=dict[str, str])
