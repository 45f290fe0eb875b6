"""identity schema

Revision ID: 0001_identity_schema
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_identity_schema"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ATTRIBUTE_TYPES = ("noCode", "code", "automatic")


def upgrade() -> None:
    op.create_table(
        "environment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_environment"),
    )
    op.create_table(
        "attribute_class",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("environment_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*_ATTRIBUTE_TYPES, name="attributetype", native_enum=False),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["environment_id"],
            ["environment.id"],
            name="fk_attribute_class_attribute_class_environment_id_environment",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_attribute_class"),
        sa.UniqueConstraint(
            "environment_id",
            "name",
            name="uq_attribute_class_attribute_class_environment_id",
        ),
    )
    op.create_table(
        "person",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("environment_id", sa.Uuid(), nullable=False),
        sa.Column("natural_key", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["environment_id"],
            ["environment.id"],
            name="fk_person_person_environment_id_environment",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_person"),
        sa.UniqueConstraint(
            "environment_id",
            "natural_key",
            name="uq_person_person_environment_id",
        ),
    )
    op.create_table(
        "attribute",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("person_id", sa.Uuid(), nullable=False),
        sa.Column("attribute_class_id", sa.Uuid(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["person_id"],
            ["person.id"],
            name="fk_attribute_attribute_person_id_person",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["attribute_class_id"],
            ["attribute_class.id"],
            name="fk_attribute_attribute_attribute_class_id_attribute_class",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_attribute"),
        sa.UniqueConstraint(
            "person_id",
            "attribute_class_id",
            name="uq_attribute_attribute_person_id",
        ),
    )
    op.create_index(
        "ix_attribute_class_value",
        "attribute",
        ["attribute_class_id", "value"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_attribute_class_value", table_name="attribute")
    op.drop_table("attribute")
    op.drop_table("person")
    op.drop_table("attribute_class")
    op.drop_table("environment")
