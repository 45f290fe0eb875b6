"""Value objects shared by the reconciliation stages.

Everything here is an immutable snapshot: the engine never holds on to ORM
entities, so records can be reconciled on worker threads without sharing
sessions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from personsync.domain.model import NATURAL_KEY_ATTRIBUTE

if TYPE_CHECKING:
    from uuid import UUID

    from personsync.domain.model import Attribute, AttributeClass, AttributeType, Person


@dataclass(frozen=True, slots=True)
class IncomingRecord:
    """One externally-sourced identity record.

    ``user_id`` is also written as the ``userId`` attribute, which is what the
    next batch looks the person up by. It is filled in when missing and must
    agree with ``user_id`` when given.
    """

    user_id: str
    attributes: Mapping[str, str]

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("Record userId must not be empty")
        attributes = dict(self.attributes)
        natural_key = attributes.setdefault(NATURAL_KEY_ATTRIBUTE, self.user_id)
        if natural_key != self.user_id:
            raise ValueError(
                f"Attribute {NATURAL_KEY_ATTRIBUTE}={natural_key!r} disagrees with "
                f"record userId {self.user_id!r}"
            )
        object.__setattr__(self, "attributes", MappingProxyType(attributes))


@dataclass(frozen=True, slots=True)
class AttributeClassRef:
    id: UUID
    environment_id: UUID
    name: str
    type: AttributeType

    @classmethod
    def from_entity(cls, attribute_class: AttributeClass) -> AttributeClassRef:
        return cls(
            id=attribute_class.id,
            environment_id=attribute_class.environment_id,
            name=attribute_class.name,
            type=attribute_class.type,
        )


@dataclass(frozen=True, slots=True)
class AttributeView:
    id: UUID
    attribute_class: AttributeClassRef
    value: str

    @property
    def name(self) -> str:
        return self.attribute_class.name

    @classmethod
    def from_entity(cls, attribute: Attribute) -> AttributeView:
        return cls(
            id=attribute.id,
            attribute_class=AttributeClassRef.from_entity(attribute.attribute_class),
            value=attribute.value,
        )


@dataclass(frozen=True, slots=True)
class SubjectView:
    """A person together with the attributes loaded at read time."""

    id: UUID
    environment_id: UUID
    natural_key: str
    attributes: Mapping[str, AttributeView] = field(default_factory=dict[str, AttributeView])

    def values(self) -> dict[str, str]:
        return {name: attribute.value for name, attribute in self.attributes.items()}

    @classmethod
    def from_entity(cls, person: Person) -> SubjectView:
        return cls(
            id=person.id,
            environment_id=person.environment_id,
            natural_key=person.natural_key,
            attributes=MappingProxyType(
                {
                    attribute.name: AttributeView.from_entity(attribute)
                    for attribute in person.attributes
                }
            ),
        )


class RecordStatus(StrEnum):
    """Per-record outcome reported back to the caller."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True, kw_only=True)
class RecordOutcome:
    user_id: str
    status: RecordStatus
    subject_id: UUID | None = None
    created: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()
    error: str | None = None

    @property
    def wrote(self) -> bool:
        return bool(self.created or self.updated)
