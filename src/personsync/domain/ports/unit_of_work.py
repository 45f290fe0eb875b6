"""Transaction boundary the reconciliation engine works through."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from personsync.domain.ports.persistence import (
        AttributeClassRepository,
        AttributeRepository,
        EnvironmentRepository,
        PersonRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Repositories that share one transaction."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """A transaction over ``repositories``; nothing is kept unless ``commit`` is called.

    ``commit`` raises ``ConflictError`` on uniqueness violations and
    ``StoreUnavailableError`` on transient store failures.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class IdentityRepositories(RepositoryCollection):
    """Everything one identity record touches."""

    environments: EnvironmentRepository
    attribute_classes: AttributeClassRepository
    persons: PersonRepository
    attributes: AttributeRepository


type IdentityUnitOfWork = UnitOfWork[IdentityRepositories]
