from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from personsync.domain.errors import (
    BatchValidationError,
    EnvironmentNotFoundError,
    UnsupportedOperationError,
)
from personsync.domain.ingest import BatchIngestAPI, IngestOperation, parse_batch
from personsync.domain.reconciliation import AttributeSchema, ReconciliationEngine, RecordStatus
from tests.support.identity_store import InMemoryIdentityDatabase, make_store

if TYPE_CHECKING:
    from uuid import UUID


def _api(database: InMemoryIdentityDatabase, *, max_workers: int = 1) -> BatchIngestAPI:
    store = make_store(database)
    engine = ReconciliationEngine(store=store, schema=AttributeSchema(store))
    return BatchIngestAPI(engine=engine, store=store, max_workers=max_workers)


def test_parse_batch_flattens_users() -> None:
    records = parse_batch(
        {
            "users": [
                {"userId": "u1", "attributes": {"userId": "u1", "plan": "free"}},
                {"userId": "u2", "attributes": {"email": "u2@example.com"}},
                {"userId": "u3"},
            ]
        }
    )

    assert [record.user_id for record in records] == ["u1", "u2", "u3"]
    assert dict(records[1].attributes) == {"email": "u2@example.com", "userId": "u2"}
    assert dict(records[2].attributes) == {"userId": "u3"}


@pytest.mark.parametrize(
    ("payload", "problem"),
    [
        ({}, "users: Field required"),
        ({"users": [{"attributes": {}}]}, "users.0.userId: Field required"),
        ({"users": [{"userId": ""}]}, "users.0.userId"),
        ({"users": [{"userId": 7}]}, "users.0.userId"),
        ({"users": [{"userId": "u1", "attributes": {"plan": 3}}]}, "users.0.attributes.plan"),
        ({"users": [{"userId": "u1", "extra": True}]}, "users.0.extra"),
    ],
)
def test_parse_batch_reports_every_problem(payload: object, problem: str) -> None:
    with pytest.raises(BatchValidationError) as excinfo:
        parse_batch(payload)

    assert any(item.startswith(problem) for item in excinfo.value.problems), excinfo.value.problems


def test_parse_batch_rejects_disagreeing_user_id_attribute() -> None:
    with pytest.raises(BatchValidationError) as excinfo:
        parse_batch(
            {
                "users": [
                    {"userId": "u1", "attributes": {"userId": "u1"}},
                    {"userId": "u2", "attributes": {"userId": "someone-else"}},
                ]
            }
        )

    assert excinfo.value.problems == (
        "users.1.attributes.userId: 'someone-else' disagrees with userId 'u2'",
    )


def test_parse_batch_rejects_non_object_payload() -> None:
    with pytest.raises(BatchValidationError):
        parse_batch([{"userId": "u1"}])


def test_handle_rejects_unknown_operations_before_processing(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    api = _api(memory_database)

    with pytest.raises(UnsupportedOperationError):
        api.handle("delete_batch", environment_id, {"users": [{"userId": "u1"}]})

    assert memory_database.count_persons(environment_id) == 0


def test_handle_rejects_invalid_batches_before_processing(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    api = _api(memory_database)
    payload = {"users": [{"userId": "u1"}, {"userId": "u2", "attributes": {"plan": None}}]}

    with pytest.raises(BatchValidationError):
        api.handle(IngestOperation.SUBMIT_BATCH, environment_id, payload)

    assert memory_database.count_persons(environment_id) == 0


def test_handle_rejects_unknown_environment(memory_database: InMemoryIdentityDatabase) -> None:
    api = _api(memory_database)

    with pytest.raises(EnvironmentNotFoundError):
        api.handle("submit_batch", uuid4(), {"users": [{"userId": "u1"}]})


def test_submit_batch_reports_per_record_results(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    api = _api(memory_database, max_workers=2)
    api.handle("submit_batch", environment_id, {"users": [{"userId": "u1"}]})

    result = api.handle(
        "submit_batch",
        environment_id,
        {
            "users": [
                {"userId": "u1", "attributes": {"plan": "pro"}},
                {"userId": "u2", "attributes": {"plan": "free"}},
                {"userId": "u1"},
            ]
        },
    )

    assert result.ok
    assert [outcome.status for outcome in result.outcomes] == [
        RecordStatus.UPDATED,
        RecordStatus.CREATED,
        RecordStatus.UNCHANGED,
    ]
    assert result.counts()[RecordStatus.CREATED] == 1
    payload = result.to_payload()
    assert payload["environmentId"] == str(environment_id)
    assert payload["ok"] is True
    assert [item["userId"] for item in payload["results"]] == ["u1", "u2", "u1"]
    assert payload["counts"]["failed"] == 0


def test_batch_result_is_not_ok_when_a_record_failed(
    memory_database: InMemoryIdentityDatabase,
    environment_id: UUID,
) -> None:
    memory_database.insert_person_row(environment_id, "legacy-1", {"userId": "dup"})
    memory_database.insert_person_row(environment_id, "legacy-2", {"userId": "dup"})
    api = _api(memory_database)

    result = api.handle(
        "submit_batch", environment_id, {"users": [{"userId": "dup"}, {"userId": "u2"}]}
    )

    assert not result.ok
    assert result.counts()[RecordStatus.FAILED] == 1
    assert result.counts()[RecordStatus.CREATED] == 1
    failed = result.to_payload()["results"][0]
    assert failed["status"] == "failed"
    assert failed["personId"] is None
    assert "DataIntegrityError" in failed["error"]
