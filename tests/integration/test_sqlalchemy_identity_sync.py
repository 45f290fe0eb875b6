from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from personsync.domain.errors import ConflictError
from personsync.domain.ingest import BatchIngestAPI
from personsync.domain.model import AttributeClass, AttributeType, Environment, Person
from personsync.domain.reconciliation import (
    AttributeSchema,
    IdentityStore,
    ReconciliationEngine,
    RecordStatus,
)
from personsync.domain.reconciliation.retry import NO_RETRY
from tests.support.identity_store import StaleLookupStore

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID

    from personsync.adapters.sqlalchemy import SqlAlchemyUnitOfWork


def _api(store: IdentityStore) -> BatchIngestAPI:
    engine = ReconciliationEngine(store=store, schema=AttributeSchema(store))
    return BatchIngestAPI(engine=engine, store=store)


def _seed_persons(
    unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    environment_id: UUID,
    persons: Mapping[str, Mapping[str, str]],
) -> None:
    """Insert persons directly, without the natural-key checks of the store."""

    with unit_of_work() as uow:
        classes: dict[str, AttributeClass] = {}
        for natural_key, attributes in persons.items():
            person = Person(environment_id=environment_id, natural_key=natural_key)
            for name, value in attributes.items():
                if name not in classes:
                    classes[name] = AttributeClass(
                        environment_id=environment_id, name=name, type=AttributeType.NO_CODE
                    )
                    uow.repositories.attribute_classes.add(classes[name])
                person.add_attribute(classes[name], value)
            uow.repositories.persons.add(person)
        uow.commit()


def test_batch_creates_then_updates_persons(sqlite_store: IdentityStore) -> None:
    environment = sqlite_store.create_environment("production")
    api = _api(sqlite_store)

    first = api.submit_batch(
        environment.id,
        {
            "users": [
                {"userId": "u1", "attributes": {"plan": "free", "locale": "de"}},
                {"userId": "u2", "attributes": {"plan": "pro"}},
            ]
        },
    )
    second = api.submit_batch(
        environment.id,
        {"users": [{"userId": "u1", "attributes": {"plan": "pro", "email": "a@example.com"}}]},
    )

    assert [outcome.status for outcome in first.outcomes] == [
        RecordStatus.CREATED,
        RecordStatus.CREATED,
    ]
    (outcome,) = second.outcomes
    assert outcome.status is RecordStatus.UPDATED
    assert outcome.updated == ("plan",)
    assert outcome.created == ("email",)
    assert outcome.unchanged == ("userId",)

    subject = sqlite_store.find_subject_by_attribute(environment.id, "userId", "u1")
    assert subject is not None
    assert subject.values() == {
        "userId": "u1",
        "plan": "pro",
        "locale": "de",
        "email": "a@example.com",
    }
    assert [item.name for item in sqlite_store.list_attribute_classes(environment.id)] == [
        "email",
        "locale",
        "plan",
        "userId",
    ]
    assert len(sqlite_store.list_subjects(environment.id)) == 2


def test_resubmission_is_unchanged(sqlite_store: IdentityStore) -> None:
    environment = sqlite_store.create_environment("production")
    api = _api(sqlite_store)
    payload = {"users": [{"userId": "u1", "attributes": {"plan": "free"}}]}

    api.submit_batch(environment.id, payload)
    result = api.submit_batch(environment.id, payload)

    (outcome,) = result.outcomes
    assert outcome.status is RecordStatus.UNCHANGED
    assert not outcome.wrote


def test_persons_are_scoped_by_environment(sqlite_store: IdentityStore) -> None:
    production = sqlite_store.create_environment("production")
    staging = sqlite_store.create_environment("staging")
    api = _api(sqlite_store)
    payload = {"users": [{"userId": "u1", "attributes": {"plan": "free"}}]}

    api.submit_batch(production.id, payload)
    (outcome,) = api.submit_batch(staging.id, payload).outcomes

    assert outcome.status is RecordStatus.CREATED
    assert len(sqlite_store.list_subjects(production.id)) == 1
    assert len(sqlite_store.list_subjects(staging.id)) == 1


def test_creation_race_against_the_database_falls_back_to_update(
    sqlite_store: IdentityStore,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    environment = sqlite_store.create_environment("production")
    sqlite_store.create_subject(
        environment.id, "u1", {"userId": "u1", "plan": "free"}, attribute_type=AttributeType.NO_CODE
    )
    stale = StaleLookupStore(sqlite_unit_of_work, stale_lookups=1, retry=NO_RETRY)

    (outcome,) = _api(stale).submit_batch(
        environment.id, {"users": [{"userId": "u1", "attributes": {"plan": "pro"}}]}
    ).outcomes

    assert outcome.status is RecordStatus.UPDATED
    assert outcome.updated == ("plan",)
    assert stale.lookups == 2
    assert len(sqlite_store.list_subjects(environment.id)) == 1


def test_conflicting_creation_persists_nothing(sqlite_store: IdentityStore) -> None:
    environment = sqlite_store.create_environment("production")
    sqlite_store.create_subject(
        environment.id, "u1", {"userId": "u1"}, attribute_type=AttributeType.NO_CODE
    )

    with pytest.raises(ConflictError):
        sqlite_store.create_subject(
            environment.id,
            "u1",
            {"userId": "u1", "nickname": "ada"},
            attribute_type=AttributeType.NO_CODE,
        )

    assert sqlite_store.get_attribute_class(environment.id, "nickname") is None
    assert len(sqlite_store.list_subjects(environment.id)) == 1


def test_duplicate_natural_keys_fail_the_record(
    sqlite_store: IdentityStore,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    environment = sqlite_store.create_environment("production")
    _seed_persons(
        sqlite_unit_of_work,
        environment.id,
        {"legacy-1": {"userId": "dup"}, "legacy-2": {"userId": "dup"}},
    )

    result = _api(sqlite_store).submit_batch(
        environment.id,
        {
            "users": [
                {"userId": "dup", "attributes": {"plan": "pro"}},
                {"userId": "fresh", "attributes": {"plan": "pro"}},
            ]
        },
    )

    failed, created = result.outcomes
    assert failed.status is RecordStatus.FAILED
    assert failed.error is not None
    assert "DataIntegrityError" in failed.error
    assert created.status is RecordStatus.CREATED
    assert not result.ok


def test_environment_round_trip(
    sqlite_store: IdentityStore,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    environment = sqlite_store.create_environment("production")

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.environments.get(environment.id)
        assert isinstance(stored, Environment)
        assert stored.name == "production"
        assert stored.created_at is not None
        assert stored.created_at.tzinfo is not None
    assert sqlite_store.environment_exists(environment.id)
