from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from personsync.adapters.sqlalchemy import start_mappers
from personsync.adapters.sqlalchemy.migrations import upgrade_head
from personsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from personsync.domain.reconciliation import IdentityStore
from personsync.domain.reconciliation.retry import NO_RETRY
from tests.support.identity_store import InMemoryIdentityDatabase, make_environment

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from uuid import UUID


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def sqlite_store(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> IdentityStore:
    return IdentityStore(sqlite_unit_of_work, retry=NO_RETRY)


@pytest.fixture
def memory_database() -> InMemoryIdentityDatabase:
    return InMemoryIdentityDatabase()


@pytest.fixture
def environment_id(memory_database: InMemoryIdentityDatabase) -> UUID:
    return make_environment(memory_database)
