"""Bank transactions table.

Revision ID: 0001_bank_transactions
Revises: None
Create Date: 2026-10-12
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_bank_transactions"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "bank_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("unique_id", sa.Text(), nullable=False, unique=True),
        sa.Column("hash", sa.Text(), nullable=False),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("account", sa.String(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("charged_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("original_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("original_currency", sa.String(), nullable=True),
        sa.Column("charged_currency", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("identifier", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("raw_record", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.CheckConstraint("status in ('completed','pending')", name="ck_bank_tx_status"),
    )
    op.create_index("ix_bank_tx_hash", "bank_transactions", ["hash"])
    op.create_index(
        "ix_bank_tx_company_account", "bank_transactions", ["company_id", "account"]
    )


def downgrade() -> None:
    op.drop_index("ix_bank_tx_company_account", table_name="bank_transactions")
    op.drop_index("ix_bank_tx_hash", table_name="bank_transactions")
    op.drop_table("bank_transactions")
