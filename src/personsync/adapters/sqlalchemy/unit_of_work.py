"""SQLAlchemy unit of work and the adapter lifecycle behind it.

``startup()`` binds the adapter to one engine (migrating it to the latest
schema); every ``SqlAlchemyUnitOfWork`` then opens its own session on that
engine. ``shutdown()`` exists mainly so tests can start over.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from personsync.adapters.sqlalchemy.errors import translate_error
from personsync.adapters.sqlalchemy.mappings import start_mappers
from personsync.adapters.sqlalchemy.migrations import upgrade_head
from personsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyAttributeClassRepository,
    SqlAlchemyAttributeRepository,
    SqlAlchemyEnvironmentRepository,
    SqlAlchemyPersonRepository,
)
from personsync.config.storage import get_database_config
from personsync.domain.ports.unit_of_work import IdentityRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter is used before ``startup()`` or configured twice."""


@dataclass(frozen=True, slots=True)
class _Binding:
    engine: Engine
    session_factory: sessionmaker[Session]
    owns_engine: bool


_binding: _Binding | None = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Bind the adapter to ``engine`` (or a new one for ``database_uri``) and migrate it."""

    global _binding  # noqa: PLW0603
    if _binding is not None and not force:
        raise StartupError("SQLAlchemy adapter already started; pass force=True to rebind")

    bound = engine or create_engine(database_uri or get_database_config().uri)
    start_mappers()
    upgrade_head(engine=bound)
    _binding = _Binding(
        engine=bound,
        session_factory=sessionmaker(bind=bound, expire_on_commit=False),
        owns_engine=engine is None,
    )
    log.info("SQLAlchemy adapter started on %s", bound.url.render_as_string())
    return bound


def configured_engine() -> Engine | None:
    return _binding.engine if _binding is not None else None


def is_started() -> bool:
    return _binding is not None


def shutdown() -> None:
    global _binding  # noqa: PLW0603
    # Engines handed to startup() belong to the caller.
    if _binding is not None and _binding.owns_engine:
        _binding.engine.dispose()
    _binding = None


class SqlAlchemyUnitOfWork:
    """One session, and one transaction, per ``with`` block.

    Nothing is committed implicitly. SQLAlchemy errors escaping the block are
    rolled back and re-raised as ``ConflictError`` or ``StoreUnavailableError``
    where ``translate_error`` knows them.
    """

    def __init__(self) -> None:
        if _binding is None:
            raise StartupError(
                "SQLAlchemy adapter not started; call "
                "personsync.adapters.sqlalchemy.startup() first"
            )
        self._session_factory = _binding.session_factory
        self._session: Session | None = None
        self._repositories: IdentityRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already in use")
        session = self._session_factory()
        self._session = session
        self._repositories = IdentityRepositories(
            environments=SqlAlchemyEnvironmentRepository(session),
            attribute_classes=SqlAlchemyAttributeClassRepository(session),
            persons=SqlAlchemyPersonRepository(session),
            attributes=SqlAlchemyAttributeRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        if isinstance(exc_value, sa_exc.SQLAlchemyError):
            translated = translate_error(exc_value)
            if translated is not None:
                raise translated from exc_value
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not active")
        return self._session

    @property
    def repositories(self) -> IdentityRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not active")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except sa_exc.SQLAlchemyError as exc:
            translated = translate_error(exc)
            if translated is None:
                raise
            raise translated from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from personsync.domain.ports.unit_of_work import IdentityUnitOfWork

    _uow_check: IdentityUnitOfWork = SqlAlchemyUnitOfWork()
