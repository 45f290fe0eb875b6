"""HTTP client for the PostHog persons API."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from personsync.adapters.http_resilience import ResilientClient

from .schema import ErrorResponse, PersonsPage, PostHogPerson

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from personsync.config.http_resilience import ResilienceConfig
    from personsync.config.posthog import PostHogConfig

log = getLogger(__name__)


class PostHogAPIError(RuntimeError):
    """Raised when the PostHog API returns an error or an unexpected payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PostHogClient:
    """Low-level client paging through the persons of one project."""

    def __init__(
        self,
        *,
        config: PostHogConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_persons(
        self,
        *,
        page_size: int = 100,
        max_persons: int | None = None,
    ) -> list[PostHogPerson]:
        return asyncio.run(self._fetch_persons_async(page_size=page_size, max_persons=max_persons))

    async def _fetch_persons_async(
        self,
        *,
        page_size: int,
        max_persons: int | None,
    ) -> list[PostHogPerson]:
        persons: list[PostHogPerson] = []
        url: str | None = f"/api/projects/{self._config.project_id}/persons/"
        params: dict[str, str] | None = {"limit": str(page_size)}
        page_number = 0

        async with self._client_factory(self._resilience) as client:
            while url is not None:
                page_number += 1
                page = await self._perform_request(client=client, url=url, params=params)
                log.debug("PostHog page %s returned %s persons", page_number, len(page.results))
                for person in page.results:
                    persons.append(person)
                    if max_persons is not None and len(persons) >= max_persons:
                        return persons
                # ``next`` is an absolute URL that already carries the cursor.
                url = page.next
                params = None

        log.info("Fetched %s PostHog persons in %s pages", len(persons), page_number)
        return persons

    async def _perform_request(
        self,
        *,
        client: ResilientClient,
        url: str,
        params: dict[str, str] | None,
    ) -> PersonsPage:
        response = await client.get(url, params=params)
        if response.is_error:
            message = _error_message(response)
            log.error("PostHog API error %s: %s", response.status_code, message)
            raise PostHogAPIError(message, status_code=response.status_code)

        payload = response.json()
        if not isinstance(payload, dict) or "results" not in payload:
            raise PostHogAPIError("Unexpected PostHog response payload")
        try:
            return PersonsPage.model_validate(payload)
        except ValidationError as exc:
            raise PostHogAPIError(f"Malformed PostHog persons page: {exc}") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).detail
    except (ValueError, ValidationError):
        return response.text or response.reason_phrase
