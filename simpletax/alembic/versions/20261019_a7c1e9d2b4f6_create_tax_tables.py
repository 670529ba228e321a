"""create tax_configs and tax_code_assignments tables

Revision ID: a7c1e9d2b4f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c1e9d2b4f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tax_configs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("properties", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_tax_configs_organization_id", "tax_configs", ["organization_id"], unique=True
    )

    op.create_table(
        "tax_code_assignments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        sa.Column("invoice_item_id", sa.String(length=36), nullable=False),
        sa.Column("tax_codes", sa.String(length=1024), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id",
            "invoice_item_id",
            name="uq_tax_code_assignments_organization_id_invoice_item_id",
        ),
    )
    op.create_index(
        "ix_tax_code_assignments_organization_id",
        "tax_code_assignments",
        ["organization_id"],
    )
    op.create_index(
        "ix_tax_code_assignments_invoice_id", "tax_code_assignments", ["invoice_id"]
    )
    op.create_index(
        "ix_tax_code_assignments_invoice_item_id", "tax_code_assignments", ["invoice_item_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_tax_code_assignments_invoice_item_id", table_name="tax_code_assignments")
    op.drop_index("ix_tax_code_assignments_invoice_id", table_name="tax_code_assignments")
    op.drop_index("ix_tax_code_assignments_organization_id", table_name="tax_code_assignments")
    op.drop_table("tax_code_assignments")
    op.drop_index("ix_tax_configs_organization_id", table_name="tax_configs")
    op.drop_table("tax_configs")
