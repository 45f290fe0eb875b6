"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AttributeType(StrEnum):
    """How an attribute class came to exist.

    The batch import path only ever creates ``NO_CODE`` classes, but the type is
    passed explicitly at every creation site so other record sources can infer
    something else.
    """

    NO_CODE = "noCode"
    CODE = "code"
    AUTOMATIC = "automatic"
