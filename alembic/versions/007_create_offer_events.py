"""007: create offer_events table

Revision ID: 007
Revises: 006
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offer_events (
            id          BIGSERIAL       PRIMARY KEY,
            offer_id    VARCHAR(64)     NOT NULL REFERENCES buyer_offers(id),
            event_type  VARCHAR(30)     NOT NULL,
            actor_id    VARCHAR(64),
            payload     JSONB           NOT NULL DEFAULT '{}',
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_offer_events_type CHECK (
                event_type IN ('OFFER_CREATED', 'OFFER_CANCELLED', 'OFFER_EXPIRED', 'OFFER_ERRORED',
                               'OFFER_MATCHED', 'PAYMENT_CAPTURED', 'CAPTURE_FAILED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_offer_events_offer ON offer_events (offer_id, id);")
    op.execute("COMMENT ON TABLE offer_events IS 'Append-only audit trail of offer transitions';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offer_events CASCADE;")
