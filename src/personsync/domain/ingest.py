"""Boundary contract for submitting identity batches.

Callers are expected to have authenticated the requester and checked their
write access to the environment before they get here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from personsync.domain.errors import (
    BatchValidationError,
    EnvironmentNotFoundError,
    UnsupportedOperationError,
)
from personsync.domain.model import NATURAL_KEY_ATTRIBUTE
from personsync.domain.reconciliation.contracts import IncomingRecord, RecordStatus

if TYPE_CHECKING:
    import threading
    from uuid import UUID

    from personsync.domain.reconciliation.contracts import RecordOutcome
    from personsync.domain.reconciliation.engine import ReconciliationEngine
    from personsync.domain.reconciliation.store import IdentityStore

log = getLogger(__name__)


class IngestOperation(StrEnum):
    SUBMIT_BATCH = "submit_batch"


class _PayloadModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class UserRecordPayload(_PayloadModel):
    user_id: StrictStr = Field(alias="userId", min_length=1)
    attributes: dict[StrictStr, StrictStr] = Field(default_factory=dict[str, str])


class BatchPayload(_PayloadModel):
    users: list[UserRecordPayload]


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Per-record outcomes of one submitted batch."""

    environment_id: UUID
    outcomes: tuple[RecordOutcome, ...]

    @property
    def ok(self) -> bool:
        return all(
            outcome.status not in {RecordStatus.FAILED, RecordStatus.CANCELLED}
            for outcome in self.outcomes
        )

    def counts(self) -> dict[RecordStatus, int]:
        counts = {status: 0 for status in RecordStatus}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return counts

    def to_payload(self) -> dict[str, Any]:
        return {
            "environmentId": str(self.environment_id),
            "ok": self.ok,
            "counts": {str(status): count for status, count in self.counts().items()},
            "results": [
                {
                    "userId": outcome.user_id,
                    "status": str(outcome.status),
                    "personId": str(outcome.subject_id) if outcome.subject_id else None,
                    "created": list(outcome.created),
                    "updated": list(outcome.updated),
                    "unchanged": list(outcome.unchanged),
                    "error": outcome.error,
                }
                for outcome in self.outcomes
            ],
        }


def parse_batch(payload: object) -> list[IncomingRecord]:
    """Validate a raw batch payload and flatten it into incoming records.

    Every problem in the payload is collected into one ``BatchValidationError``.
    """

    if not isinstance(payload, Mapping):
        raise BatchValidationError("Batch payload must be an object with a 'users' list")
    try:
        batch = BatchPayload.model_validate(payload)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise BatchValidationError(
            f"Batch payload is invalid ({len(problems)} problems)", problems=problems
        ) from exc

    records: list[IncomingRecord] = []
    problems: list[str] = []
    for index, user in enumerate(batch.users):
        natural_key = user.attributes.get(NATURAL_KEY_ATTRIBUTE)
        if natural_key is not None and natural_key != user.user_id:
            problems.append(
                f"users.{index}.attributes.{NATURAL_KEY_ATTRIBUTE}: "
                f"{natural_key!r} disagrees with userId {user.user_id!r}"
            )
            continue
        records.append(IncomingRecord(user_id=user.user_id, attributes=user.attributes))
    if problems:
        raise BatchValidationError(
            f"Batch payload is invalid ({len(problems)} problems)", problems=problems
        )
    return records


@dataclass(slots=True)
class BatchIngestAPI:
    """Accept a batch, reconcile it, and report what happened to each record."""

    engine: ReconciliationEngine
    store: IdentityStore
    max_workers: int = 1
    timeout: float | None = None

    def handle(
        self,
        operation: str,
        environment_id: UUID,
        payload: object,
        *,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Dispatch ``operation``; ``submit_batch`` is the only one defined."""

        if operation != IngestOperation.SUBMIT_BATCH:
            raise UnsupportedOperationError(operation)
        return self.submit_batch(environment_id, payload, cancel_event=cancel_event)

    def submit_batch(
        self,
        environment_id: UUID,
        payload: object,
        *,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        records = parse_batch(payload)
        return self.submit_records(environment_id, records, cancel_event=cancel_event)

    def submit_records(
        self,
        environment_id: UUID,
        records: list[IncomingRecord],
        *,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        if not self.store.environment_exists(environment_id):
            raise EnvironmentNotFoundError(environment_id)

        log.info("Submitting %s records to environment %s", len(records), environment_id)
        outcomes = self.engine.reconcile_batch(
            environment_id,
            records,
            max_workers=self.max_workers,
            timeout=self.timeout,
            cancel_event=cancel_event,
        )
        return BatchResult(environment_id=environment_id, outcomes=tuple(outcomes))
