"""009: create boost_audit_log table

Revision ID: 009
Revises: 008
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE boost_audit_log (
            id                      BIGSERIAL       PRIMARY KEY,
            listing_id              VARCHAR(64)     NOT NULL,
            action                  VARCHAR(32)     NOT NULL,
            reason                  TEXT            NOT NULL,
            actor_id                VARCHAR(64),
            previous_premium_until  TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_boost_audit_log_action CHECK (action IN ('admin_expire', 'sweep_expire'))
        );
    """)
    op.execute("CREATE INDEX idx_boost_audit_log_listing ON boost_audit_log (listing_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS boost_audit_log CASCADE;")
