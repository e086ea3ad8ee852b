"""003: create listings table (boost-relevant columns)

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS listings (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            seller_id       VARCHAR(64)     NOT NULL,
            title           TEXT            NOT NULL,
            status          VARCHAR(16)     NOT NULL DEFAULT 'pending',
            is_premium      BOOLEAN         NOT NULL DEFAULT FALSE,
            premium_until   TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_status   CHECK (status IN ('pending', 'active', 'rejected', 'sold'))
        );
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id);")
    # Expiry sweep and premium feed both filter on boosted rows only.
    op.execute("""
        CREATE INDEX idx_listings_premium_until ON listings (premium_until)
        WHERE is_premium;
    """)
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
