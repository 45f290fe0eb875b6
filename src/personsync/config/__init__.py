"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, HttpRetryPolicy, RateLimit, ResilienceConfig
from .ingest import IngestConfig, get_ingest_config
from .logging import configure_logging
from .posthog import PostHogConfig, get_posthog_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_http_cache_path,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "HttpRetryPolicy",
    "IngestConfig",
    "MissingConfigurationError",
    "PostHogConfig",
    "RateLimit",
    "ResilienceConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_http_cache_path",
    "get_ingest_config",
    "get_posthog_config",
    "get_storage_config",
    "require_env_vars",
]
