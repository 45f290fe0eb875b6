"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import select

from personsync.adapters.sqlalchemy.mappings import (
    attribute_class_table,
    attribute_table,
    person_table,
)
from personsync.domain.model import Attribute, AttributeClass, Environment, Person

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    """Shared add/get for repositories keyed by surrogate id."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: uuid.UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)


class SqlAlchemyEnvironmentRepository(SqlAlchemyRepository[Environment]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Environment)


class SqlAlchemyAttributeClassRepository(SqlAlchemyRepository[AttributeClass]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, AttributeClass)

    def get_by_name(self, environment_id: uuid.UUID, name: str) -> AttributeClass | None:
        stmt = (
            select(AttributeClass)
            .where(attribute_class_table.c.environment_id == environment_id)
            .where(attribute_class_table.c.name == name)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_environment(self, environment_id: uuid.UUID) -> Sequence[AttributeClass]:
        stmt = (
            select(AttributeClass)
            .where(attribute_class_table.c.environment_id == environment_id)
            .order_by(attribute_class_table.c.name)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyPersonRepository(SqlAlchemyRepository[Person]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Person)

    def find_by_attribute(
        self,
        environment_id: uuid.UUID,
        name: str,
        value: str,
    ) -> Sequence[Person]:
        # Resolve the class first so the person lookup hits the
        # (attribute_class_id, value) index instead of joining by name.
        class_stmt = (
            select(attribute_class_table.c.id)
            .where(attribute_class_table.c.environment_id == environment_id)
            .where(attribute_class_table.c.name == name)
        )
        attribute_class_id = self.session.execute(class_stmt).scalar_one_or_none()
        if attribute_class_id is None:
            return []

        stmt = (
            select(Person)
            .join(attribute_table, attribute_table.c.person_id == person_table.c.id)
            .where(attribute_table.c.attribute_class_id == attribute_class_id)
            .where(attribute_table.c.value == value)
            .limit(2)
        )
        return self.session.execute(stmt).scalars().unique().all()

    def list_for_environment(self, environment_id: uuid.UUID) -> Sequence[Person]:
        stmt = (
            select(Person)
            .where(person_table.c.environment_id == environment_id)
            .order_by(person_table.c.natural_key)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyAttributeRepository(SqlAlchemyRepository[Attribute]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Attribute)


if TYPE_CHECKING:
    from personsync.domain.ports.persistence import (
        AttributeClassRepository,
        AttributeRepository,
        EnvironmentRepository,
        PersonRepository,
    )

    _session_stub = cast("Session", object())
    _environment_repo: EnvironmentRepository = SqlAlchemyEnvironmentRepository(_session_stub)
    _class_repo: AttributeClassRepository = SqlAlchemyAttributeClassRepository(_session_stub)
    _person_repo: PersonRepository = SqlAlchemyPersonRepository(_session_stub)
    _attribute_repo: AttributeRepository = SqlAlchemyAttributeRepository(_session_stub)
