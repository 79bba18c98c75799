"""002: create events table

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE events (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(200)    NOT NULL,
            venue           VARCHAR(200),
            status          VARCHAR(20)     NOT NULL DEFAULT 'upcoming',
            starts_at       TIMESTAMPTZ     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_events_status CHECK (
                status IN ('upcoming', 'live', 'completed', 'cancelled')
            )
        );
    """)
    op.execute("CREATE INDEX idx_events_starts_at ON events (starts_at);")
    op.execute("""
        CREATE TRIGGER trg_events_updated_at
            BEFORE UPDATE ON events
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE events IS 'Event catalog, owned upstream; read-only for offers';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS events CASCADE;")
