"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import RecordFetcher, RecordFetchResult
from .persistence import (
    AttributeClassRepository,
    AttributeRepository,
    EnvironmentRepository,
    PersonRepository,
    Repository,
)
from .unit_of_work import (
    IdentityRepositories,
    IdentityUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AttributeClassRepository",
    "AttributeRepository",
    "EnvironmentRepository",
    "IdentityRepositories",
    "IdentityUnitOfWork",
    "PersonRepository",
    "RecordFetchResult",
    "RecordFetcher",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
