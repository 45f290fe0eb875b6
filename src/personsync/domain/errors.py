"""Error taxonomy for batch ingestion.

Only ``BatchValidationError``, ``EnvironmentNotFoundError`` and
``UnsupportedOperationError`` abort a whole batch, and they are raised before
any record touches the store. Everything else is caught per record and
reported in that record's outcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


class IngestError(RuntimeError):
    """Base class for every error raised by the ingest subsystem."""


class BatchValidationError(IngestError):
    """Raised when a batch payload is malformed."""

    def __init__(self, message: str, *, problems: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.problems = tuple(problems)


class EnvironmentNotFoundError(IngestError):
    """Raised when a batch targets an environment the store does not know."""

    def __init__(self, environment_id: UUID) -> None:
        super().__init__(f"Unknown environment: {environment_id}")
        self.environment_id = environment_id


class UnsupportedOperationError(IngestError):
    """Raised when the ingest boundary receives an operation it does not define."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Unsupported operation: {operation}")
        self.operation = operation


class DataIntegrityError(IngestError):
    """Raised when stored data violates an invariant this subsystem relies on.

    The typical case is a natural-key lookup returning more than one person,
    which means the store was corrupted upstream.
    """


class ConflictError(IngestError):
    """Raised when a write collides with a uniqueness constraint."""


class StoreUnavailableError(IngestError):
    """Raised when the store fails transiently (locked, disconnected, timed out)."""
