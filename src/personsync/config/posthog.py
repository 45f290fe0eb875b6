"""PostHog configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

DEFAULT_POSTHOG_HOST = "https://app.posthog.com"
POSTHOG_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True, slots=True)
class PostHogConfig:
    """Credentials and HTTP behaviour for the PostHog persons API."""

    api_key: str
    project_id: str
    resilience: ResilienceConfig


def get_posthog_config(*, resilience: ResilienceConfig | None = None) -> PostHogConfig:
    values = require_env_vars(("POSTHOG_API_KEY", "POSTHOG_PROJECT_ID"))
    host = (os.getenv("POSTHOG_HOST") or DEFAULT_POSTHOG_HOST).strip().rstrip("/")
    return PostHogConfig(
        api_key=values["POSTHOG_API_KEY"],
        project_id=values["POSTHOG_PROJECT_ID"],
        resilience=resilience
        or ResilienceConfig(
            name="posthog",
            base_url=host,
            timeout_seconds=POSTHOG_TIMEOUT_SECONDS,
            # Personal API keys are limited to 240 requests per minute.
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
            cache=CacheConfig(backend="memory", ttl_seconds=300.0),
            headers={"Authorization": f"Bearer {values['POSTHOG_API_KEY']}"},
        ),
    )
