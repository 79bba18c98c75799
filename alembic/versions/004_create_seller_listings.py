"""004: create seller_listings table

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE seller_listings (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            event_id            VARCHAR(64)     NOT NULL REFERENCES events(id),
            section             VARCHAR(100)    NOT NULL,
            row                 VARCHAR(20),
            seats               TEXT[]          NOT NULL DEFAULT '{}',
            quantity            INT             NOT NULL,
            asking_price_cents  BIGINT          NOT NULL,
            delivery_method     VARCHAR(40)     NOT NULL,
            delivery_details    JSONB           NOT NULL DEFAULT '{}',
            status              VARCHAR(20)     NOT NULL DEFAULT 'active',
            go_live_at          TIMESTAMPTZ,
            is_live             BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_seller_listings_quantity  CHECK (quantity > 0),
            CONSTRAINT ck_seller_listings_price     CHECK (asking_price_cents > 0),
            CONSTRAINT ck_seller_listings_status    CHECK (status IN ('draft', 'active', 'matched'))
        );
    """)
    op.execute("CREATE INDEX idx_seller_listings_seller ON seller_listings (seller_id, created_at DESC);")
    op.execute("CREATE INDEX idx_seller_listings_event ON seller_listings (event_id, section);")
    op.execute("""
        CREATE TRIGGER trg_seller_listings_updated_at
            BEFORE UPDATE ON seller_listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS seller_listings CASCADE;")
