"""006: create settlement_effects outbox

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settlement_effects (
            transaction_id  VARCHAR(64)     PRIMARY KEY REFERENCES transactions (id),
            effect_type     VARCHAR(16)     NOT NULL,
            listing_id      VARCHAR(64)     NOT NULL,
            owner_id        VARCHAR(64)     NOT NULL,
            duration_days   SMALLINT        NOT NULL,
            settled_at      TIMESTAMPTZ     NOT NULL,
            applied_at      TIMESTAMPTZ,
            attempts        INT             NOT NULL DEFAULT 0,
            last_error      TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_settlement_effects_type CHECK (effect_type IN ('boost', 'ticker'))
        );
    """)
    op.execute("""
        CREATE INDEX idx_settlement_effects_unapplied ON settlement_effects (settled_at)
        WHERE applied_at IS NULL;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settlement_effects CASCADE;")
