"""Ports for fetching identity records from external providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from personsync.domain.reconciliation.contracts import IncomingRecord


@dataclass(slots=True)
class RecordFetchResult:
    """Records fetched from an external provider."""

    records: Sequence[IncomingRecord]
    fetched: int
    skipped: int = 0


@runtime_checkable
class RecordFetcher(Protocol):
    """Callable port for retrieving identity records from an external provider."""

    def __call__(
        self,
        *,
        batch_size: int = 100,
        max_records: int | None = None,
    ) -> RecordFetchResult: ...


__all__ = ["RecordFetchResult", "RecordFetcher"]
