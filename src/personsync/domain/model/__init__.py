"""Public domain model surface."""

from __future__ import annotations

from personsync.domain.model.entity import Entity, new_id
from personsync.domain.model.enums import AttributeType
from personsync.domain.model.identity import (
    NATURAL_KEY_ATTRIBUTE,
    Attribute,
    AttributeClass,
    Environment,
    Person,
)

__all__ = [
    "NATURAL_KEY_ATTRIBUTE",
    "Attribute",
    "AttributeClass",
    "AttributeType",
    "Entity",
    "Environment",
    "Person",
    "new_id",
]
