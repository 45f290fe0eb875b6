"""Translation of SQLAlchemy failures into the ingest error taxonomy."""

from __future__ import annotations

from sqlalchemy import exc as sa_exc

from personsync.domain.errors import ConflictError, IngestError, StoreUnavailableError

_TRANSIENT_ERRORS: tuple[type[sa_exc.SQLAlchemyError], ...] = (
    sa_exc.OperationalError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
)


def translate_error(error: sa_exc.SQLAlchemyError) -> IngestError | None:
    """Return the domain error for ``error``, or ``None`` when it is not one we map."""

    if isinstance(error, sa_exc.IntegrityError):
        return ConflictError(f"Uniqueness violated: {error.orig}")
    if isinstance(error, _TRANSIENT_ERRORS):
        return StoreUnavailableError(str(error))
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return StoreUnavailableError(str(error))
    return None
