from __future__ import annotations

import pytest

from personsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_ingest_config,
    get_posthog_config,
)
from personsync.config.ingest import DEFAULT_MAX_WORKERS, DEFAULT_STORE_RETRY_TOTAL
from personsync.config.posthog import DEFAULT_POSTHOG_HOST

_INGEST_VARS = (
    "PERSONSYNC_MAX_WORKERS",
    "PERSONSYNC_BATCH_TIMEOUT_SECONDS",
    "PERSONSYNC_STORE_RETRY_TOTAL",
    "PERSONSYNC_STORE_RETRY_BACKOFF",
)


@pytest.fixture
def clean_ingest_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _INGEST_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_ingest_config_defaults(clean_ingest_env: pytest.MonkeyPatch) -> None:
    del clean_ingest_env

    config = get_ingest_config()

    assert config.max_workers == DEFAULT_MAX_WORKERS
    assert config.batch_timeout_seconds is None
    assert config.store_retry.total == DEFAULT_STORE_RETRY_TOTAL


def test_ingest_config_reads_overrides(clean_ingest_env: pytest.MonkeyPatch) -> None:
    clean_ingest_env.setenv("PERSONSYNC_MAX_WORKERS", "8")
    clean_ingest_env.setenv("PERSONSYNC_BATCH_TIMEOUT_SECONDS", "30")
    clean_ingest_env.setenv("PERSONSYNC_STORE_RETRY_TOTAL", "0")
    clean_ingest_env.setenv("PERSONSYNC_STORE_RETRY_BACKOFF", "0.25")

    config = get_ingest_config()

    assert config.max_workers == 8
    assert config.batch_timeout_seconds == 30.0
    assert config.store_retry.total == 0
    assert config.store_retry.backoff_factor == 0.25


def test_ingest_config_requires_a_worker(clean_ingest_env: pytest.MonkeyPatch) -> None:
    clean_ingest_env.setenv("PERSONSYNC_MAX_WORKERS", "0")

    with pytest.raises(ConfigurationError, match="PERSONSYNC_MAX_WORKERS"):
        get_ingest_config()


def test_posthog_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("POSTHOG_API_KEY", raising=False)
    monkeypatch.setenv("POSTHOG_PROJECT_ID", "4242")

    with pytest.raises(MissingConfigurationError, match="POSTHOG_API_KEY"):
        get_posthog_config()


def test_posthog_config_builds_authenticated_resilience(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POSTHOG_API_KEY", "phx_secret")
    monkeypatch.setenv("POSTHOG_PROJECT_ID", "4242")
    monkeypatch.delenv("POSTHOG_HOST", raising=False)

    config = get_posthog_config()

    assert config.project_id == "4242"
    assert config.resilience.base_url == DEFAULT_POSTHOG_HOST
    assert config.resilience.headers == {"Authorization": "Bearer phx_secret"}
    assert config.resilience.ratelimit is not None


def test_posthog_host_override_drops_trailing_slash(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POSTHOG_API_KEY", "phx_secret")
    monkeypatch.setenv("POSTHOG_PROJECT_ID", "4242")
    monkeypatch.setenv("POSTHOG_HOST", "https://eu.posthog.com/")

    assert get_posthog_config().resilience.base_url == "https://eu.posthog.com"
