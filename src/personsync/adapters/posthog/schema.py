"""Pydantic models describing the PostHog persons API payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostHogBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PostHogPerson(PostHogBaseModel):
    id: str
    uuid: str | None = None
    distinct_ids: list[str] = Field(default_factory=list[str])
    properties: dict[str, object] = Field(default_factory=dict[str, object])
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        # Older deployments return integer primary keys.
        return str(value) if isinstance(value, int) else value

    @field_validator("distinct_ids", mode="before")
    @classmethod
    def _drop_blank_ids(cls, value: object) -> object:
        if isinstance(value, list):
            return [item for item in value if not (isinstance(item, str) and not item.strip())]
        return value


class PersonsPage(PostHogBaseModel):
    next: str | None = None
    results: list[PostHogPerson] = Field(default_factory=list[PostHogPerson])


class ErrorResponse(PostHogBaseModel):
    type: str | None = None
    code: str | None = None
    detail: str
