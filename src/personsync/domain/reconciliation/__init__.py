"""Reconciliation of external identity records into the identity store.

Layered flow:
1) validate and flatten incoming records (``personsync.domain.ingest``)
2) look each person up by natural key (``IdentityStore``)
3) create missing persons atomically, or diff and merge existing ones
   (``ReconciliationEngine``)
4) resolve attribute names to environment-scoped classes (``AttributeSchema``)
"""

from __future__ import annotations

from .contracts import (
    AttributeClassRef,
    AttributeView,
    IncomingRecord,
    RecordOutcome,
    RecordStatus,
    SubjectView,
)
from .diff import AttributeDiff
from .engine import ReconciliationEngine
from .retry import RetryPolicy
from .schema import AttributeSchema
from .store import IdentityStore

__all__ = [
    "AttributeClassRef",
    "AttributeDiff",
    "AttributeSchema",
    "AttributeView",
    "IdentityStore",
    "IncomingRecord",
    "ReconciliationEngine",
    "RecordOutcome",
    "RecordStatus",
    "RetryPolicy",
    "SubjectView",
]
