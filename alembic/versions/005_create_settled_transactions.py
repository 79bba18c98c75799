"""005: create settled_transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settled_transactions (
            id                      VARCHAR(64)     PRIMARY KEY,
            buyer_id                VARCHAR(64)     NOT NULL,
            seller_id               VARCHAR(64)     NOT NULL,
            offer_id                VARCHAR(64)     NOT NULL REFERENCES buyer_offers(id),
            listing_id              VARCHAR(64)     NOT NULL REFERENCES seller_listings(id),
            event_id                VARCHAR(64)     NOT NULL REFERENCES events(id),
            section                 VARCHAR(100)    NOT NULL,
            row                     VARCHAR(20),
            seats                   TEXT[]          NOT NULL DEFAULT '{}',
            quantity                INT             NOT NULL,
            delivery_method         VARCHAR(40)     NOT NULL,
            sale_price_cents        BIGINT          NOT NULL,
            buyer_paid_cents        BIGINT          NOT NULL,
            seller_fee_cents        BIGINT          NOT NULL,
            seller_payout_cents     BIGINT          NOT NULL,
            authorization_id        VARCHAR(128)    NOT NULL,
            needs_reconciliation    BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_settled_transactions_offer UNIQUE (offer_id),
            CONSTRAINT ck_settled_transactions_parties  CHECK (buyer_id <> seller_id),
            CONSTRAINT ck_settled_transactions_fee      CHECK (seller_fee_cents >= 0),
            CONSTRAINT ck_settled_transactions_payout   CHECK (
                seller_payout_cents = sale_price_cents - seller_fee_cents
            )
        );
    """)
    op.execute("CREATE INDEX idx_settled_transactions_buyer ON settled_transactions (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_settled_transactions_seller ON settled_transactions (seller_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_settled_transactions_reconcile
        ON settled_transactions (created_at)
        WHERE needs_reconciliation;
    """)
    op.execute("COMMENT ON TABLE settled_transactions IS 'One row per matched offer; offer_id unique';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settled_transactions CASCADE;")
