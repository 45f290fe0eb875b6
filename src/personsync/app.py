"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from personsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from personsync.config.ingest import IngestConfig, get_ingest_config
from personsync.domain.errors import EnvironmentNotFoundError
from personsync.domain.ingest import BatchIngestAPI, BatchResult, IngestOperation
from personsync.domain.model import NATURAL_KEY_ATTRIBUTE
from personsync.domain.ports.unit_of_work import IdentityUnitOfWork
from personsync.domain.reconciliation import (
    AttributeSchema,
    IdentityStore,
    ReconciliationEngine,
    RecordStatus,
)

if TYPE_CHECKING:
    import threading
    from uuid import UUID

    from personsync.domain.model import Environment
    from personsync.domain.ports.fetching import RecordFetcher
    from personsync.domain.reconciliation import AttributeClassRef, RecordOutcome, SubjectView

UnitOfWorkFactory = Callable[[], IdentityUnitOfWork]

log = getLogger(__name__)


@dataclass(slots=True)
class ImportResult:
    """Outcome of importing records from an external provider."""

    environment_id: UUID
    fetched: int
    skipped: int
    batches: list[BatchResult] = field(default_factory=list[BatchResult])

    @property
    def outcomes(self) -> list[RecordOutcome]:
        return [outcome for batch in self.batches for outcome in batch.outcomes]

    @property
    def ok(self) -> bool:
        return all(batch.ok for batch in self.batches)

    def counts(self) -> dict[RecordStatus, int]:
        counts = {status: 0 for status in RecordStatus}
        for batch in self.batches:
            for status, count in batch.counts().items():
                counts[status] += count
        return counts

    def to_payload(self) -> dict[str, object]:
        return {
            "environmentId": str(self.environment_id),
            "ok": self.ok,
            "fetched": self.fetched,
            "skipped": self.skipped,
            "counts": {str(status): count for status, count in self.counts().items()},
            "results": [
                result for batch in self.batches for result in batch.to_payload()["results"]
            ],
        }


def _default_unit_of_work_factory() -> UnitOfWorkFactory:
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


def build_store(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: IngestConfig | None = None,
) -> IdentityStore:
    effective_config = config or get_ingest_config()
    return IdentityStore(
        unit_of_work_factory or _default_unit_of_work_factory(),
        retry=effective_config.store_retry,
    )


def build_ingest_api(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: IngestConfig | None = None,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> BatchIngestAPI:
    """Wire store, schema and engine into a ready-to-use ingest API."""

    effective_config = config or get_ingest_config()
    store = build_store(unit_of_work_factory=unit_of_work_factory, config=effective_config)
    engine = ReconciliationEngine(store=store, schema=AttributeSchema(store))
    return BatchIngestAPI(
        engine=engine,
        store=store,
        max_workers=max_workers or effective_config.max_workers,
        timeout=timeout if timeout is not None else effective_config.batch_timeout_seconds,
    )


def create_environment(
    name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Environment:
    store = build_store(unit_of_work_factory=unit_of_work_factory)
    environment = store.create_environment(name)
    log.info("Created environment %r (%s)", environment.name, environment.id)
    return environment


def ingest_batch(
    environment_id: UUID,
    payload: object,
    *,
    operation: str = IngestOperation.SUBMIT_BATCH,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: IngestConfig | None = None,
    max_workers: int | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> BatchResult:
    """Reconcile one raw batch payload into ``environment_id``."""

    api = build_ingest_api(
        unit_of_work_factory=unit_of_work_factory,
        config=config,
        max_workers=max_workers,
        timeout=timeout,
    )
    result = api.handle(operation, environment_id, payload, cancel_event=cancel_event)
    log.info(
        "Finished batch for environment %s: ok=%s, %s",
        environment_id,
        result.ok,
        ", ".join(f"{status}={count}" for status, count in result.counts().items()),
    )
    return result


def import_posthog_persons(
    environment_id: UUID,
    *,
    source: RecordFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: IngestConfig | None = None,
    batch_size: int | None = None,
    max_persons: int | None = None,
    cancel_event: threading.Event | None = None,
) -> ImportResult:
    """Fetch PostHog persons and reconcile them in chunks of ``batch_size``."""

    effective_config = config or get_ingest_config()
    chunk_size = batch_size or effective_config.import_batch_size
    if chunk_size < 1:
        raise ValueError("Batch size must be positive")

    api = build_ingest_api(unit_of_work_factory=unit_of_work_factory, config=effective_config)
    # Fail before paging through the whole project.
    if not api.store.environment_exists(environment_id):
        raise EnvironmentNotFoundError(environment_id)

    if source is None:
        from personsync.adapters.posthog import PostHogPersonFetcher

        source = PostHogPersonFetcher()

    log.info(
        "Starting PostHog import: environment=%s, batch_size=%s, max_persons=%s",
        environment_id,
        chunk_size,
        max_persons,
    )
    fetched = source(batch_size=chunk_size, max_records=max_persons)
    result = ImportResult(
        environment_id=environment_id, fetched=fetched.fetched, skipped=fetched.skipped
    )

    records = list(fetched.records)
    for start in range(0, len(records), chunk_size):
        chunk = records[start : start + chunk_size]
        result.batches.append(api.submit_records(environment_id, chunk, cancel_event=cancel_event))

    log.info(
        "Finished PostHog import: fetched=%s, skipped=%s, reconciled=%s, ok=%s",
        result.fetched,
        result.skipped,
        len(result.outcomes),
        result.ok,
    )
    return result


def show_person(
    environment_id: UUID,
    user_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SubjectView | None:
    store = build_store(unit_of_work_factory=unit_of_work_factory)
    if not store.environment_exists(environment_id):
        raise EnvironmentNotFoundError(environment_id)
    return store.find_subject_by_attribute(environment_id, NATURAL_KEY_ATTRIBUTE, user_id)


def list_attribute_classes(
    environment_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[AttributeClassRef]:
    store = build_store(unit_of_work_factory=unit_of_work_factory)
    if not store.environment_exists(environment_id):
        raise EnvironmentNotFoundError(environment_id)
    return store.list_attribute_classes(environment_id)
