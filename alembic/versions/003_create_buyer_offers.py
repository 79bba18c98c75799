"""003: create buyer_offers table

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE buyer_offers (
            id                      VARCHAR(64)     PRIMARY KEY,
            buyer_id                VARCHAR(64)     NOT NULL,
            event_id                VARCHAR(64)     NOT NULL REFERENCES events(id),
            sections                TEXT[]          NOT NULL,
            max_price_cents         BIGINT          NOT NULL,
            quantity                INT             NOT NULL,
            suggested_price_cents   BIGINT,
            acceptance_probability  DOUBLE PRECISION,
            authorization_id        VARCHAR(128)    NOT NULL,
            held_amount_cents       BIGINT          NOT NULL,
            hold_state              VARCHAR(20)     NOT NULL,
            authorized_at           TIMESTAMPTZ     NOT NULL,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'active',
            expires_at              TIMESTAMPTZ     NOT NULL,
            matched_at              TIMESTAMPTZ,
            matched_listing_id      VARCHAR(64),
            view_count              INT             NOT NULL DEFAULT 0,
            expiry_attempts         INT             NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_buyer_offers_authorization_id UNIQUE (authorization_id),
            CONSTRAINT ck_buyer_offers_sections     CHECK (cardinality(sections) > 0),
            CONSTRAINT ck_buyer_offers_max_price    CHECK (max_price_cents > 0),
            CONSTRAINT ck_buyer_offers_quantity     CHECK (quantity > 0),
            CONSTRAINT ck_buyer_offers_held_amount  CHECK (held_amount_cents = max_price_cents * quantity),
            CONSTRAINT ck_buyer_offers_status       CHECK (
                status IN ('active', 'matched', 'cancelled', 'expired', 'error')
            ),
            CONSTRAINT ck_buyer_offers_hold_state   CHECK (
                hold_state IN ('authorized', 'captured', 'cancelled', 'capture_failed')
            ),
            CONSTRAINT ck_buyer_offers_active_hold  CHECK (
                status <> 'active' OR hold_state = 'authorized'
            ),
            CONSTRAINT ck_buyer_offers_closed_hold  CHECK (
                status NOT IN ('cancelled', 'expired') OR hold_state = 'cancelled'
            ),
            CONSTRAINT ck_buyer_offers_matched      CHECK (
                status <> 'matched' OR (matched_at IS NOT NULL AND matched_listing_id IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_buyer_offers_buyer ON buyer_offers (buyer_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_buyer_offers_event_active
        ON buyer_offers (event_id, max_price_cents DESC)
        WHERE status = 'active';
    """)
    op.execute("""
        CREATE INDEX idx_buyer_offers_expiry
        ON buyer_offers (expires_at)
        WHERE status = 'active';
    """)
    op.execute("""
        CREATE INDEX idx_buyer_offers_unsettled
        ON buyer_offers (matched_at)
        WHERE status = 'matched' AND hold_state IN ('authorized', 'capture_failed');
    """)
    op.execute("""
        CREATE TRIGGER trg_buyer_offers_updated_at
            BEFORE UPDATE ON buyer_offers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE buyer_offers IS 'Buyer offers, each backed by one payment authorization';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS buyer_offers CASCADE;")
