"""Public interface for the PostHog adapter."""

from __future__ import annotations

from .client import PostHogAPIError, PostHogClient
from .fetcher import PostHogPersonFetcher
from .schema import PersonsPage, PostHogPerson
from .translator import stringify_property, translate_person

__all__ = [
    "PersonsPage",
    "PostHogAPIError",
    "PostHogClient",
    "PostHogPerson",
    "PostHogPersonFetcher",
    "stringify_property",
    "translate_person",
]
