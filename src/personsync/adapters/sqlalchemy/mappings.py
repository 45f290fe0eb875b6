"""SQLAlchemy mapping metadata for the identity domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from personsync.domain.model import (
    Attribute,
    AttributeClass,
    AttributeType,
    Environment,
    Person,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    """Timestamps are stored in UTC; SQLite hands them back naive, so they are re-tagged."""

    impl = DateTime(timezone=True)
    cache_ok = True

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        del dialect
        return None if value is None else self._as_utc(value)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        del dialect
        return None if value is None else self._as_utc(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

environment_table = Table(
    "environment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
)

attribute_class_table = Table(
    "attribute_class",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "environment_id",
        UUIDColumnType,
        ForeignKey("environment.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String, nullable=False),
    Column(
        "type",
        Enum(AttributeType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    ),
    Column("created_at", UTCDateTime(), nullable=True),
    UniqueConstraint("environment_id", "name"),
)

person_table = Table(
    "person",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "environment_id",
        UUIDColumnType,
        ForeignKey("environment.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("natural_key", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
    UniqueConstraint("environment_id", "natural_key"),
)

attribute_table = Table(
    "attribute",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "person_id",
        UUIDColumnType,
        ForeignKey("person.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "attribute_class_id",
        UUIDColumnType,
        ForeignKey("attribute_class.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("value", String, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint("person_id", "attribute_class_id"),
    Index("ix_attribute_class_value", "attribute_class_id", "value"),
)


@cache
def start_mappers() -> orm.registry:
    """Map the identity model onto its tables; later calls return the cached registry."""

    log.info("Mapping identity model to %d tables", len(mapper_registry.metadata.tables))

    mapper_registry.map_imperatively(Environment, environment_table)

    mapper_registry.map_imperatively(AttributeClass, attribute_class_table)

    mapper_registry.map_imperatively(
        Person,
        person_table,
        properties={
            "_attributes": relationship(
                Attribute,
                back_populates="person",
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
        },
    )

    mapper_registry.map_imperatively(
        Attribute,
        attribute_table,
        properties={
            "person": relationship(
                Person,
                back_populates="_attributes",
            ),
            "attribute_class": relationship(
                AttributeClass,
                lazy="joined",
                innerjoin=True,
            ),
        },
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create the tables directly, bypassing migrations. Used by tests and throwaway stores."""

    log.info("Creating identity tables on %s", engine.url.render_as_string())
    mapper_registry.metadata.create_all(engine)
