"""Transactional identity store built on a unit of work.

Every public operation opens its own unit of work, so each one is atomic on
its own and nothing else is: creating a person with all of its attributes is
a single transaction, while bringing an existing person up to date is a
series of independent attribute writes.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from personsync.domain.errors import ConflictError, DataIntegrityError
from personsync.domain.model import AttributeClass, Environment, Person
from personsync.domain.reconciliation.contracts import (
    AttributeClassRef,
    AttributeView,
    SubjectView,
)
from personsync.domain.reconciliation.retry import RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID

    from personsync.domain.model import AttributeType
    from personsync.domain.ports.unit_of_work import IdentityUnitOfWork

    UnitOfWorkFactory = Callable[[], IdentityUnitOfWork]

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IdentityStore:
    """Environment-scoped persistence operations needed by reconciliation."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._retry = retry or RetryPolicy()
        self._sleep = sleep

    # Environments -------------------------------------------------------------

    def create_environment(self, name: str) -> Environment:
        def run() -> Environment:
            with self._unit_of_work_factory() as uow:
                environment = Environment(name=name, created_at=_utcnow())
                uow.repositories.environments.add(environment)
                uow.commit()
                return environment

        return self._call(run, "create_environment")

    def environment_exists(self, environment_id: UUID) -> bool:
        def run() -> bool:
            with self._unit_of_work_factory() as uow:
                return uow.repositories.environments.get(environment_id) is not None

        return self._call(run, "environment_exists")

    # Attribute classes --------------------------------------------------------

    def get_attribute_class(self, environment_id: UUID, name: str) -> AttributeClassRef | None:
        def run() -> AttributeClassRef | None:
            with self._unit_of_work_factory() as uow:
                attribute_class = uow.repositories.attribute_classes.get_by_name(
                    environment_id, name
                )
                if attribute_class is None:
                    return None
                return AttributeClassRef.from_entity(attribute_class)

        return self._call(run, "get_attribute_class")

    def add_attribute_class(
        self,
        environment_id: UUID,
        name: str,
        attribute_type: AttributeType,
    ) -> AttributeClassRef:
        """Insert a new attribute class; ``ConflictError`` if the name is taken."""

        def run() -> AttributeClassRef:
            with self._unit_of_work_factory() as uow:
                attribute_class = AttributeClass(
                    environment_id=environment_id,
                    name=name,
                    type=attribute_type,
                    created_at=_utcnow(),
                )
                uow.repositories.attribute_classes.add(attribute_class)
                uow.commit()
                return AttributeClassRef.from_entity(attribute_class)

        return self._call(run, "add_attribute_class")

    def list_attribute_classes(self, environment_id: UUID) -> list[AttributeClassRef]:
        def run() -> list[AttributeClassRef]:
            with self._unit_of_work_factory() as uow:
                return [
                    AttributeClassRef.from_entity(attribute_class)
                    for attribute_class in uow.repositories.attribute_classes.list_for_environment(
                        environment_id
                    )
                ]

        return self._call(run, "list_attribute_classes")

    # Subjects -----------------------------------------------------------------

    def find_subject_by_attribute(
        self,
        environment_id: UUID,
        name: str,
        value: str,
    ) -> SubjectView | None:
        """Return the one person whose attribute ``name`` holds ``value``.

        More than one match means the natural key is no longer unique in the
        store, which is reported as ``DataIntegrityError`` instead of guessing.
        """

        def run() -> SubjectView | None:
            with self._unit_of_work_factory() as uow:
                matches = uow.repositories.persons.find_by_attribute(environment_id, name, value)
                if len(matches) > 1:
                    raise DataIntegrityError(
                        f"More than one person in environment {environment_id} "
                        f"has {name}={value!r}"
                    )
                if not matches:
                    return None
                return SubjectView.from_entity(matches[0])

        return self._call(run, "find_subject_by_attribute")

    def get_subject(self, subject_id: UUID) -> SubjectView | None:
        def run() -> SubjectView | None:
            with self._unit_of_work_factory() as uow:
                person = uow.repositories.persons.get(subject_id)
                return SubjectView.from_entity(person) if person is not None else None

        return self._call(run, "get_subject")

    def list_subjects(self, environment_id: UUID) -> list[SubjectView]:
        def run() -> list[SubjectView]:
            with self._unit_of_work_factory() as uow:
                return [
                    SubjectView.from_entity(person)
                    for person in uow.repositories.persons.list_for_environment(environment_id)
                ]

        return self._call(run, "list_subjects")

    def create_subject(
        self,
        environment_id: UUID,
        natural_key: str,
        attributes: Mapping[str, str],
        *,
        attribute_type: AttributeType,
    ) -> SubjectView:
        """Create a person and all of its attributes in one transaction.

        Missing attribute classes are created in the same transaction. Raises
        ``ConflictError`` when another writer created the same person (or one
        of the classes) first; nothing from this call is persisted then.
        """

        def run() -> SubjectView:
            with self._unit_of_work_factory() as uow:
                classes = uow.repositories.attribute_classes
                now = _utcnow()
                person = Person(
                    environment_id=environment_id,
                    natural_key=natural_key,
                    created_at=now,
                )
                for name, value in attributes.items():
                    attribute_class = classes.get_by_name(environment_id, name)
                    if attribute_class is None:
                        attribute_class = AttributeClass(
                            environment_id=environment_id,
                            name=name,
                            type=attribute_type,
                            created_at=now,
                        )
                        classes.add(attribute_class)
                    attribute = person.add_attribute(attribute_class, value)
                    attribute.updated_at = now
                uow.repositories.persons.add(person)
                uow.commit()
                return SubjectView.from_entity(person)

        return self._call(run, "create_subject")

    # Attributes ---------------------------------------------------------------

    def get_attribute(self, subject_id: UUID, name: str) -> AttributeView | None:
        def run() -> AttributeView | None:
            with self._unit_of_work_factory() as uow:
                person = uow.repositories.persons.get(subject_id)
                if person is None:
                    raise DataIntegrityError(f"Person {subject_id} does not exist")
                attribute = person.attribute_named(name)
                return AttributeView.from_entity(attribute) if attribute is not None else None

        return self._call(run, "get_attribute")

    def create_attribute(
        self,
        subject_id: UUID,
        attribute_class: AttributeClassRef,
        value: str,
    ) -> AttributeView:
        """Attach one new attribute to an existing person.

        Raises ``ConflictError`` when the person already holds an attribute of
        that class, or when ``attribute_class`` is not (or no longer) stored.
        """

        def run() -> AttributeView:
            with self._unit_of_work_factory() as uow:
                person = uow.repositories.persons.get(subject_id)
                if person is None:
                    raise DataIntegrityError(f"Person {subject_id} does not exist")
                stored_class = uow.repositories.attribute_classes.get(attribute_class.id)
                if stored_class is None:
                    raise ConflictError(
                        f"Attribute class {attribute_class.name!r} ({attribute_class.id}) "
                        "is not in the store"
                    )
                try:
                    attribute = person.add_attribute(stored_class, value)
                except ValueError as exc:
                    raise ConflictError(str(exc)) from exc
                attribute.updated_at = _utcnow()
                uow.repositories.attributes.add(attribute)
                uow.commit()
                return AttributeView.from_entity(attribute)

        return self._call(run, "create_attribute")

    def update_attribute_value(self, attribute_id: UUID, value: str) -> None:
        def run() -> None:
            with self._unit_of_work_factory() as uow:
                attribute = uow.repositories.attributes.get(attribute_id)
                if attribute is None:
                    raise DataIntegrityError(f"Attribute {attribute_id} does not exist")
                attribute.value = value
                attribute.updated_at = _utcnow()
                uow.commit()

        self._call(run, "update_attribute_value")

    def _call[T](self, func: Callable[[], T], operation: str) -> T:
        return call_with_retry(func, policy=self._retry, operation=operation, sleep=self._sleep)
