"""Identity entities. Ownership lives on the Person aggregate.

Aggregate roots here:
- Environment scopes everything below it
- Person owns its Attributes (1:n, at most one per AttributeClass)
- AttributeClass is shared by every Attribute using that name
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from personsync.domain.model.entity import Entity

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from personsync.domain.model.enums import AttributeType

NATURAL_KEY_ATTRIBUTE = "userId"


@dataclass(eq=False, kw_only=True)
class Environment(Entity):
    name: str
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class AttributeClass(Entity):
    """Environment-scoped schema entry for an attribute name. Never changes once created."""

    environment_id: UUID
    name: str
    type: AttributeType
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Person(Entity):
    """Reconciled identity of one external end-user within one environment."""

    environment_id: UUID
    natural_key: str
    created_at: datetime | None = None

    _attributes: list[Attribute] = field(default_factory=list["Attribute"], repr=False)

    @property
    def attributes(self) -> tuple[Attribute, ...]:
        return tuple(self._attributes)

    def attribute_named(self, name: str) -> Attribute | None:
        for attribute in self._attributes:
            if attribute.attribute_class.name == name:
                return attribute
        return None

    def attribute_values(self) -> dict[str, str]:
        return {attribute.attribute_class.name: attribute.value for attribute in self._attributes}

    def add_attribute(self, attribute_class: AttributeClass, value: str) -> Attribute:
        if attribute_class.environment_id != self.environment_id:
            raise ValueError(
                f"Attribute class {attribute_class.name!r} belongs to another environment"
            )
        if self.attribute_named(attribute_class.name) is not None:
            raise ValueError(f"Person already has an attribute named {attribute_class.name!r}")
        return Attribute(person=self, attribute_class=attribute_class, value=value)

    # Friend primitive (called only by Attribute)
    def _attach_attribute(self, attribute: Attribute) -> None:
        self._attributes.append(attribute)


@dataclass(eq=False, kw_only=True)
class Attribute(Entity):
    person: Person = field(repr=False)
    attribute_class: AttributeClass
    value: str
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        # Keep person graph consistent without ORM; a mapped backref may already have.
        if self not in self.person._attributes:  # noqa: SLF001
            self.person._attach_attribute(self)  # noqa: SLF001

    @property
    def name(self) -> str:
        return self.attribute_class.name
