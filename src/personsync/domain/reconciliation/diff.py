"""Declarative diff between stored and incoming attribute values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class AttributeDiff:
    """Minimal set of writes that brings ``current`` up to date with ``desired``.

    Names only present in ``current`` are not part of the diff: reconciliation
    merges, it never removes attributes.
    """

    to_create: dict[str, str]
    to_update: dict[str, str]
    unchanged: tuple[str, ...]

    @classmethod
    def compute(cls, current: Mapping[str, str], desired: Mapping[str, str]) -> AttributeDiff:
        to_create: dict[str, str] = {}
        to_update: dict[str, str] = {}
        unchanged: list[str] = []
        for name, value in desired.items():
            if name not in current:
                to_create[name] = value
            elif current[name] != value:
                to_update[name] = value
            else:
                unchanged.append(name)
        return cls(to_create=to_create, to_update=to_update, unchanged=tuple(unchanged))

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_update
