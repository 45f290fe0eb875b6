from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from personsync import app
from personsync.config.ingest import IngestConfig
from personsync.domain.errors import EnvironmentNotFoundError
from personsync.domain.ports import RecordFetchResult
from personsync.domain.reconciliation import IncomingRecord, RecordStatus
from personsync.domain.reconciliation.retry import NO_RETRY

if TYPE_CHECKING:
    from uuid import UUID

    from tests.support.identity_store import InMemoryIdentityDatabase

CONFIG = IngestConfig(max_workers=1, store_retry=NO_RETRY, import_batch_size=2)


class FakeRecordFetcher:
    def __init__(self, records: list[IncomingRecord], *, skipped: int = 0) -> None:
        self._records = records
        self._skipped = skipped
        self.calls: list[tuple[int, int | None]] = []

    def __call__(
        self,
        *,
        batch_size: int = 100,
        max_records: int | None = None,
    ) -> RecordFetchResult:
        self.calls.append((batch_size, max_records))
        records = self._records if max_records is None else self._records[:max_records]
        return RecordFetchResult(
            records=records, fetched=len(records) + self._skipped, skipped=self._skipped
        )


def _records(*user_ids: str) -> list[IncomingRecord]:
    return [IncomingRecord(user_id=user_id, attributes={"plan": "free"}) for user_id in user_ids]


def test_import_reconciles_in_chunks(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    source = FakeRecordFetcher(_records("u1", "u2", "u3"), skipped=1)

    result = app.import_posthog_persons(
        environment_id,
        source=source,
        unit_of_work_factory=memory_database.unit_of_work,
        config=CONFIG,
    )

    assert source.calls == [(2, None)]
    assert [len(batch.outcomes) for batch in result.batches] == [2, 1]
    assert result.ok
    assert result.fetched == 4
    assert result.skipped == 1
    assert result.counts()[RecordStatus.CREATED] == 3
    assert memory_database.count_persons(environment_id) == 3

    payload = result.to_payload()
    assert payload["fetched"] == 4
    assert [item["userId"] for item in payload["results"]] == ["u1", "u2", "u3"]


def test_reimport_is_unchanged(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    source = FakeRecordFetcher(_records("u1", "u2"))
    for _ in range(2):
        result = app.import_posthog_persons(
            environment_id,
            source=source,
            unit_of_work_factory=memory_database.unit_of_work,
            config=CONFIG,
        )

    assert result.counts()[RecordStatus.UNCHANGED] == 2


def test_import_passes_limits_to_the_source(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    source = FakeRecordFetcher(_records("u1", "u2", "u3"))

    result = app.import_posthog_persons(
        environment_id,
        source=source,
        unit_of_work_factory=memory_database.unit_of_work,
        config=CONFIG,
        batch_size=5,
        max_persons=1,
    )

    assert source.calls == [(5, 1)]
    assert len(result.outcomes) == 1


def test_import_checks_environment_before_fetching(
    memory_database: InMemoryIdentityDatabase,
) -> None:
    source = FakeRecordFetcher(_records("u1"))

    with pytest.raises(EnvironmentNotFoundError):
        app.import_posthog_persons(
            uuid4(),
            source=source,
            unit_of_work_factory=memory_database.unit_of_work,
            config=CONFIG,
        )

    assert source.calls == []


def test_import_with_no_records_is_ok(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    result = app.import_posthog_persons(
        environment_id,
        source=FakeRecordFetcher([]),
        unit_of_work_factory=memory_database.unit_of_work,
        config=CONFIG,
    )

    assert result.batches == []
    assert result.ok
