"""Reconciliation defaults for batch ingestion."""

from __future__ import annotations

from dataclasses import dataclass, field

from personsync.domain.reconciliation.retry import RetryPolicy

from .env import optional_float, optional_int

DEFAULT_MAX_WORKERS = 4
DEFAULT_STORE_RETRY_TOTAL = 3
DEFAULT_STORE_RETRY_BACKOFF = 0.1
DEFAULT_IMPORT_BATCH_SIZE = 100


@dataclass(frozen=True, slots=True)
class IngestConfig:
    max_workers: int = DEFAULT_MAX_WORKERS
    batch_timeout_seconds: float | None = None
    store_retry: RetryPolicy = field(default_factory=RetryPolicy)
    import_batch_size: int = DEFAULT_IMPORT_BATCH_SIZE


def get_ingest_config() -> IngestConfig:
    backoff = optional_float("PERSONSYNC_STORE_RETRY_BACKOFF", DEFAULT_STORE_RETRY_BACKOFF)
    return IngestConfig(
        max_workers=optional_int("PERSONSYNC_MAX_WORKERS", DEFAULT_MAX_WORKERS, minimum=1),
        batch_timeout_seconds=optional_float("PERSONSYNC_BATCH_TIMEOUT_SECONDS", None),
        store_retry=RetryPolicy(
            total=optional_int("PERSONSYNC_STORE_RETRY_TOTAL", DEFAULT_STORE_RETRY_TOTAL),
            backoff_factor=DEFAULT_STORE_RETRY_BACKOFF if backoff is None else backoff,
        ),
    )
