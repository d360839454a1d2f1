"""Add manufacturer display name and a unique index for weightless rows.

Revision ID: 0002
Revises: 0001
Create Date: 2026-03-12

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("catalog_rows") as batch_op:
        batch_op.add_column(
            sa.Column("manufacturer", sa.String(255), nullable=False, server_default="")
        )

    # uq_catalog_rows_variant lets any number of NULL weights through
    op.create_index(
        "uq_catalog_rows_variant_no_weight",
        "catalog_rows",
        ["source", "slug", "color_name"],
        unique=True,
        sqlite_where=sa.text("weight IS NULL"),
        postgresql_where=sa.text("weight IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_catalog_rows_variant_no_weight", table_name="catalog_rows")
    with op.batch_alter_table("catalog_rows") as batch_op:
        batch_op.drop_column("manufacturer")
