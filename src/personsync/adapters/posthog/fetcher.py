"""PostHog persons importer."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from personsync.config.posthog import PostHogConfig, get_posthog_config
from personsync.domain.ports.fetching import RecordFetchResult

from .client import PostHogClient
from .translator import translate_person

if TYPE_CHECKING:
    from personsync.domain.reconciliation import IncomingRecord

    from .schema import PostHogPerson

log = getLogger(__name__)


def _default_client(config: PostHogConfig) -> PostHogClient:
    return PostHogClient(config=config)


@dataclass(slots=True)
class PostHogPersonFetcher:
    """Fetch PostHog persons and translate them into incoming records."""

    config: PostHogConfig = field(default_factory=get_posthog_config)
    client: PostHogClient | None = None
    include_internal: bool = False

    def __call__(
        self,
        *,
        batch_size: int = 100,
        max_records: int | None = None,
    ) -> RecordFetchResult:
        client = self.client or _default_client(self.config)
        persons = client.fetch_persons(page_size=batch_size, max_persons=max_records)
        return self.translate(persons)

    def translate(self, persons: list[PostHogPerson]) -> RecordFetchResult:
        records: list[IncomingRecord] = []
        seen: set[str] = set()
        skipped = 0
        for person in persons:
            record = translate_person(person, include_internal=self.include_internal)
            if record is None:
                skipped += 1
                continue
            if record.user_id in seen:
                # Two PostHog persons can share a first distinct id after a merge.
                log.warning("Skipping duplicate PostHog distinct id %s", record.user_id)
                skipped += 1
                continue
            seen.add(record.user_id)
            records.append(record)
        return RecordFetchResult(records=records, fetched=len(persons), skipped=skipped)


if TYPE_CHECKING:
    from personsync.domain.ports.fetching import RecordFetcher

    _fetcher_check: RecordFetcher = PostHogPersonFetcher()
