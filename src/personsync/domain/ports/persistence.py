"""Ports for persisting identity aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from personsync.domain.model import Attribute, AttributeClass, Environment, Person

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, entity_id: UUID) -> TEntity | None: ...


@runtime_checkable
class EnvironmentRepository(Repository[Environment], Protocol):
    """Persistence contract for environments."""


@runtime_checkable
class AttributeClassRepository(Repository[AttributeClass], Protocol):
    """Persistence contract for environment-scoped attribute classes."""

    def get_by_name(self, environment_id: UUID, name: str) -> AttributeClass | None: ...

    def list_for_environment(self, environment_id: UUID) -> Sequence[AttributeClass]: ...


@runtime_checkable
class PersonRepository(Repository[Person], Protocol):
    """Persistence contract for persons and the attributes they own."""

    def find_by_attribute(self, environment_id: UUID, name: str, value: str) -> Sequence[Person]:
        """Return every person whose attribute ``name`` holds ``value``."""
        ...

    def list_for_environment(self, environment_id: UUID) -> Sequence[Person]: ...


@runtime_checkable
class AttributeRepository(Repository[Attribute], Protocol):
    """Persistence contract for single attributes."""
