"""Reconcile incoming identity records against the identity store.

Per record:

1. look the person up by its ``userId`` attribute
2. absent: create the person with every incoming attribute in one transaction
3. present: diff stored against incoming values and write only the difference,
   one attribute at a time

Attributes the record does not mention are left alone. A failed attribute
write marks the record failed but does not undo the writes that already went
through for it; only person creation is all-or-nothing.
"""

from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from personsync.domain.errors import ConflictError, IngestError
from personsync.domain.model import NATURAL_KEY_ATTRIBUTE, AttributeType
from personsync.domain.reconciliation.contracts import RecordOutcome, RecordStatus
from personsync.domain.reconciliation.diff import AttributeDiff

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence
    from uuid import UUID

    from personsync.domain.reconciliation.contracts import IncomingRecord, SubjectView
    from personsync.domain.reconciliation.schema import AttributeSchema
    from personsync.domain.reconciliation.store import IdentityStore

log = getLogger(__name__)

DEFAULT_CREATION_ATTEMPTS = 3


class _Write(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(slots=True)
class ReconciliationEngine:
    """Apply the minimal set of writes that brings the store up to date with a batch."""

    store: IdentityStore
    schema: AttributeSchema
    attribute_type: AttributeType = AttributeType.NO_CODE
    creation_attempts: int = DEFAULT_CREATION_ATTEMPTS

    def reconcile_batch(
        self,
        environment_id: UUID,
        records: Sequence[IncomingRecord],
        *,
        max_workers: int = 1,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[RecordOutcome]:
        """Reconcile every record, returning one outcome per record in input order.

        A failing record never stops its siblings. ``timeout`` and
        ``cancel_event`` only stop new records from being scheduled; records
        already running finish, and the rest are reported as cancelled.
        """

        deadline = time.monotonic() + timeout if timeout is not None else None

        def should_stop() -> bool:
            if cancel_event is not None and cancel_event.is_set():
                return True
            return deadline is not None and time.monotonic() >= deadline

        outcomes: list[RecordOutcome | None] = [None] * len(records)
        if max_workers <= 1:
            for index, record in enumerate(records):
                if should_stop():
                    break
                outcomes[index] = self.reconcile_record(environment_id, record)
        else:
            with ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="reconcile"
            ) as pool:
                in_flight: dict[Future[RecordOutcome], int] = {}
                for index, record in enumerate(records):
                    while len(in_flight) >= max_workers:
                        done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                        for future in done:
                            outcomes[in_flight.pop(future)] = future.result()
                    if should_stop():
                        break
                    future = pool.submit(self.reconcile_record, environment_id, record)
                    in_flight[future] = index
                for future in as_completed(in_flight):
                    outcomes[in_flight[future]] = future.result()

        results = [
            outcome
            if outcome is not None
            else RecordOutcome(
                user_id=records[index].user_id,
                status=RecordStatus.CANCELLED,
                error="Batch stopped before this record was scheduled",
            )
            for index, outcome in enumerate(outcomes)
        ]
        _log_summary(environment_id, results)
        return results

    def reconcile_record(self, environment_id: UUID, record: IncomingRecord) -> RecordOutcome:
        """Reconcile one record; errors are reported in the outcome, never raised."""

        try:
            return self._reconcile(environment_id, record)
        except IngestError as exc:
            log.warning("Reconciling %r failed: %s", record.user_id, exc)
            return RecordOutcome(
                user_id=record.user_id,
                status=RecordStatus.FAILED,
                error=f"{type(exc).__name__}: {exc}",
            )
        except Exception as exc:
            log.exception("Unexpected error while reconciling %r", record.user_id)
            return RecordOutcome(
                user_id=record.user_id,
                status=RecordStatus.FAILED,
                error=f"{type(exc).__name__}: {exc}",
            )

    def _reconcile(self, environment_id: UUID, record: IncomingRecord) -> RecordOutcome:
        for attempt in range(1, self.creation_attempts + 1):
            # The lookup is authoritative for this attempt; a creation conflict
            # sends us back here rather than acting on the stale answer.
            subject = self.store.find_subject_by_attribute(
                environment_id, NATURAL_KEY_ATTRIBUTE, record.user_id
            )
            if subject is not None:
                return self._merge(environment_id, subject, record)

            try:
                created = self.store.create_subject(
                    environment_id,
                    record.user_id,
                    record.attributes,
                    attribute_type=self.attribute_type,
                )
            except ConflictError as exc:
                log.info(
                    "Person %r was created concurrently (attempt %s/%s): %s",
                    record.user_id,
                    attempt,
                    self.creation_attempts,
                    exc,
                )
                continue

            log.debug("Created person %s for %r", created.id, record.user_id)
            return RecordOutcome(
                user_id=record.user_id,
                status=RecordStatus.CREATED,
                subject_id=created.id,
                created=tuple(record.attributes),
            )

        raise ConflictError(
            f"Could neither create nor find person {record.user_id!r} "
            f"after {self.creation_attempts} attempts"
        )

    def _merge(
        self,
        environment_id: UUID,
        subject: SubjectView,
        record: IncomingRecord,
    ) -> RecordOutcome:
        diff = AttributeDiff.compute(subject.values(), record.attributes)
        if diff.is_empty:
            log.debug("Person %s is up to date", subject.id)
            return RecordOutcome(
                user_id=record.user_id,
                status=RecordStatus.UNCHANGED,
                subject_id=subject.id,
                unchanged=diff.unchanged,
            )

        written: dict[_Write, list[str]] = {write: [] for write in _Write}
        written[_Write.UNCHANGED].extend(diff.unchanged)
        failures: list[str] = []

        for name, value in diff.to_update.items():
            try:
                self.store.update_attribute_value(subject.attributes[name].id, value)
            except IngestError as exc:
                failures.append(f"{name}: {type(exc).__name__}: {exc}")
                continue
            written[_Write.UPDATED].append(name)

        for name, value in diff.to_create.items():
            try:
                write = self._create_attribute(environment_id, subject, name, value)
            except IngestError as exc:
                failures.append(f"{name}: {type(exc).__name__}: {exc}")
                continue
            written[write].append(name)

        if failures:
            status = RecordStatus.FAILED
        elif written[_Write.CREATED] or written[_Write.UPDATED]:
            status = RecordStatus.UPDATED
        else:
            status = RecordStatus.UNCHANGED

        log.debug(
            "Merged %r into person %s: created=%s updated=%s failed=%s",
            record.user_id,
            subject.id,
            written[_Write.CREATED],
            written[_Write.UPDATED],
            len(failures),
        )
        return RecordOutcome(
            user_id=record.user_id,
            status=status,
            subject_id=subject.id,
            created=tuple(written[_Write.CREATED]),
            updated=tuple(written[_Write.UPDATED]),
            unchanged=tuple(written[_Write.UNCHANGED]),
            error="; ".join(failures) if failures else None,
        )

    def _create_attribute(
        self,
        environment_id: UUID,
        subject: SubjectView,
        name: str,
        value: str,
    ) -> _Write:
        attribute_class = self.schema.resolve_or_create(environment_id, name, self.attribute_type)
        try:
            self.store.create_attribute(subject.id, attribute_class, value)
        except ConflictError:
            # Either another writer attached the attribute first, or the cached
            # class is not what the store holds. Re-verify both.
            self.schema.invalidate(environment_id, name)
            existing = self.store.get_attribute(subject.id, name)
            if existing is None:
                attribute_class = self.schema.resolve_or_create(
                    environment_id, name, self.attribute_type
                )
                self.store.create_attribute(subject.id, attribute_class, value)
                return _Write.CREATED
            if existing.value == value:
                return _Write.UNCHANGED
            self.store.update_attribute_value(existing.id, value)
            return _Write.UPDATED
        return _Write.CREATED


def _log_summary(environment_id: UUID, outcomes: Sequence[RecordOutcome]) -> None:
    counts = {status: 0 for status in RecordStatus}
    for outcome in outcomes:
        counts[outcome.status] += 1
    log.info(
        "Reconciled %s records in environment %s: %s",
        len(outcomes),
        environment_id,
        ", ".join(f"{status}={count}" for status, count in counts.items()),
    )
