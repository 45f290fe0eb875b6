"""Environment-scoped registry of attribute classes."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from personsync.domain.errors import ConflictError

if TYPE_CHECKING:
    from uuid import UUID

    from personsync.domain.model import AttributeType
    from personsync.domain.reconciliation.contracts import AttributeClassRef
    from personsync.domain.reconciliation.store import IdentityStore

log = getLogger(__name__)


class AttributeSchema:
    """Get-or-create access to attribute classes with a process-local cache.

    The cache only ever holds classes that were read back from (or written to)
    the store. The store's uniqueness constraint on ``(environment, name)``
    decides which concurrent creator wins; losers re-read the winner's class.
    """

    def __init__(self, store: IdentityStore) -> None:
        self._store = store
        self._cache: dict[tuple[UUID, str], AttributeClassRef] = {}
        self._lock = threading.Lock()

    def resolve_or_create(
        self,
        environment_id: UUID,
        name: str,
        attribute_type: AttributeType,
    ) -> AttributeClassRef:
        """Return the class for ``name``, creating it with ``attribute_type`` if absent.

        ``attribute_type`` only applies on creation; an existing class keeps
        the type it was created with.
        """

        key = (environment_id, name)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        resolved = self._store.get_attribute_class(environment_id, name)
        if resolved is None:
            try:
                resolved = self._store.add_attribute_class(environment_id, name, attribute_type)
                log.info(
                    "Created attribute class %r (%s) in environment %s",
                    name,
                    attribute_type,
                    environment_id,
                )
            except ConflictError:
                log.info("Attribute class %r was created concurrently; re-reading", name)
                resolved = self._store.get_attribute_class(environment_id, name)
                if resolved is None:
                    raise

        with self._lock:
            return self._cache.setdefault(key, resolved)

    def invalidate(self, environment_id: UUID, name: str | None = None) -> None:
        """Forget cached classes for one name, or for a whole environment."""

        with self._lock:
            if name is not None:
                self._cache.pop((environment_id, name), None)
                return
            for key in [key for key in self._cache if key[0] == environment_id]:
                del self._cache[key]

    def cached(self, environment_id: UUID, name: str) -> AttributeClassRef | None:
        with self._lock:
            return self._cache.get((environment_id, name))
