"""Initial schema for Lure Catalog.

Revision ID: 0001
Revises:
Create Date: 2026-03-01

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create work_items table (task queue)
    op.create_table(
        "work_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("url", sa.String(1000), default=""),
        sa.Column("name", sa.String(255), default=""),
        sa.Column("source", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), default="pending"),
        sa.Column("note", sa.Text(), default=""),
        sa.Column("seq", sa.Integer(), default=0),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_work_items_source", "work_items", ["source"])
    op.create_index("ix_work_items_status", "work_items", ["status"])
    op.create_index("ix_work_items_seq", "work_items", ["seq"])

    # Create catalog_rows table
    op.create_table(
        "catalog_rows",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("source", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("color_name", sa.String(255), nullable=False),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_kana", sa.String(255), nullable=True),
        sa.Column("lure_type", sa.String(100), default=""),
        sa.Column("target_fish_json", sa.Text(), default="[]"),
        sa.Column("description", sa.Text(), default=""),
        sa.Column("price", sa.Integer(), default=0),
        sa.Column("length", sa.Float(), nullable=True),
        sa.Column("source_url", sa.String(1000), default=""),
        sa.Column("image_url", sa.String(1000), nullable=True),
        sa.Column("is_limited", sa.Boolean(), default=False),
        sa.Column("is_discontinued", sa.Boolean(), default=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "source", "slug", "color_name", "weight", name="uq_catalog_rows_variant"
        ),
    )
    op.create_index("ix_catalog_rows_source_slug", "catalog_rows", ["source", "slug"])
    op.create_index("ix_catalog_rows_lure_type", "catalog_rows", ["lure_type"])


def downgrade() -> None:
    op.drop_index("ix_catalog_rows_lure_type", table_name="catalog_rows")
    op.drop_index("ix_catalog_rows_source_slug", table_name="catalog_rows")
    op.drop_table("catalog_rows")
    op.drop_index("ix_work_items_seq", table_name="work_items")
    op.drop_index("ix_work_items_status", table_name="work_items")
    op.drop_index("ix_work_items_source", table_name="work_items")
    op.drop_table("work_items")
