"""Shared fixtures for PostHog adapter tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from personsync.adapters.posthog.schema import PostHogPerson
from personsync.config.http_resilience import ResilienceConfig
from personsync.config.posthog import PostHogConfig

PostHogPayload = dict[str, object]
FIXTURES = Path("tests/data/posthog")


def _load_fixture(name: str) -> PostHogPayload:
    return json.loads((FIXTURES / name).read_text())


@pytest.fixture
def persons_pages() -> tuple[PostHogPayload, PostHogPayload]:
    return _load_fixture("persons_page_1.json"), _load_fixture("persons_page_2.json")


@pytest.fixture
def person_payloads(persons_pages: tuple[PostHogPayload, PostHogPayload]) -> list[PostHogPayload]:
    payloads: list[PostHogPayload] = []
    for page in persons_pages:
        results = page["results"]
        assert isinstance(results, list)
        payloads.extend(results)
    return payloads


@pytest.fixture
def persons(person_payloads: list[PostHogPayload]) -> list[PostHogPerson]:
    return [PostHogPerson.model_validate(payload) for payload in person_payloads]


@pytest.fixture
def posthog_config() -> PostHogConfig:
    return PostHogConfig(
        api_key="phx_test",
        project_id="4242",
        resilience=ResilienceConfig(
            name="posthog",
            base_url="https://posthog.example.com",
            cache=None,
            headers={"Authorization": "Bearer phx_test"},
        ),
    )
