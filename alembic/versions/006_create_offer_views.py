"""006: create offer_views table

Revision ID: 006
Revises: 005
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offer_views (
            id          BIGSERIAL       PRIMARY KEY,
            offer_id    VARCHAR(64)     NOT NULL REFERENCES buyer_offers(id),
            viewer_id   VARCHAR(64)     NOT NULL,
            viewed_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_offer_views_offer ON offer_views (offer_id, viewed_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offer_views CASCADE;")
