"""SQLAlchemy adapter package for personsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAttributeClassRepository,
    SqlAlchemyAttributeRepository,
    SqlAlchemyEnvironmentRepository,
    SqlAlchemyPersonRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, is_started, shutdown, startup

__all__ = [
    "SqlAlchemyAttributeClassRepository",
    "SqlAlchemyAttributeRepository",
    "SqlAlchemyEnvironmentRepository",
    "SqlAlchemyPersonRepository",
    "SqlAlchemyUnitOfWork",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
