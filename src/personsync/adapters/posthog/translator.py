"""Translate PostHog persons into incoming identity records."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger

from personsync.domain.model import NATURAL_KEY_ATTRIBUTE
from personsync.domain.reconciliation import IncomingRecord

from .schema import PostHogPerson

log = getLogger(__name__)

INTERNAL_PROPERTY_PREFIX = "$"


def stringify_property(value: object) -> str | None:
    """Return the attribute value for a scalar property, ``None`` if it has none."""

    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str | int | float):
        return str(value)
    return None


def translate_person(
    person: PostHogPerson | Mapping[str, object],
    *,
    include_internal: bool = False,
) -> IncomingRecord | None:
    """Build an ``IncomingRecord`` for ``person``.

    The first distinct id becomes the ``userId``. Persons without any distinct
    id cannot be matched on the next import and are skipped (``None``).
    """

    model = person if isinstance(person, PostHogPerson) else PostHogPerson.model_validate(person)
    if not model.distinct_ids:
        log.debug("Skipping PostHog person %s without distinct ids", model.id)
        return None
    user_id = model.distinct_ids[0]

    attributes: dict[str, str] = {}
    for name, raw in model.properties.items():
        if name == NATURAL_KEY_ATTRIBUTE:
            continue
        if name.startswith(INTERNAL_PROPERTY_PREFIX) and not include_internal:
            continue
        value = stringify_property(raw)
        if value is None:
            continue
        attributes[name] = value
    attributes[NATURAL_KEY_ATTRIBUTE] = user_id
    return IncomingRecord(user_id=user_id, attributes=attributes)
