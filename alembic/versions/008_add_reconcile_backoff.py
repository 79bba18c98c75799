"""008: add reconcile_attempts / next_reconcile_at to buyer_offers

Revision ID: 008
Revises: 007
Create Date: 2026-10-16
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. Failed re-capture bookkeeping for the reconcile sweep
    op.add_column(
        "buyer_offers",
        sa.Column("reconcile_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.add_column(
        "buyer_offers",
        sa.Column("next_reconcile_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.execute("""
        ALTER TABLE buyer_offers
        ADD CONSTRAINT ck_buyer_offers_reconcile_attempts CHECK (reconcile_attempts >= 0);
    """)

    # 2. Sweep candidates ordered by when they are next due
    op.execute("DROP INDEX IF EXISTS idx_buyer_offers_unsettled;")
    op.execute("""
        CREATE INDEX idx_buyer_offers_unsettled
        ON buyer_offers ((COALESCE(next_reconcile_at, matched_at)))
        WHERE status = 'matched' AND hold_state IN ('authorized', 'capture_failed');
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_buyer_offers_unsettled;")
    op.execute("""
        CREATE INDEX idx_buyer_offers_unsettled
        ON buyer_offers (matched_at)
        WHERE status = 'matched' AND hold_state IN ('authorized', 'capture_failed');
    """)
    op.execute(
        "ALTER TABLE buyer_offers DROP CONSTRAINT IF EXISTS ck_buyer_offers_reconcile_attempts;"
    )
    op.drop_column("buyer_offers", "next_reconcile_at")
    op.drop_column("buyer_offers", "reconcile_attempts")
