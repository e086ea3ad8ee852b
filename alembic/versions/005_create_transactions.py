"""005: create transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            listing_id          VARCHAR(64)     NOT NULL REFERENCES listings (id),
            user_id             VARCHAR(64)     NOT NULL,
            package_id          VARCHAR(64)     NOT NULL REFERENCES boost_packages (id),
            amount              INT             NOT NULL,
            provider            VARCHAR(16)     NOT NULL,
            phone_number        VARCHAR(16)     NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            gateway_reference   VARCHAR(128),
            error_message       TEXT,
            expires_at          TIMESTAMPTZ     NOT NULL,
            settled_at          TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_transactions_gateway_reference UNIQUE (gateway_reference),
            CONSTRAINT ck_transactions_status   CHECK (status IN ('pending', 'success', 'failed', 'expired')),
            CONSTRAINT ck_transactions_provider CHECK (provider IN ('tmoney', 'flooz', 'ticker')),
            CONSTRAINT ck_transactions_amount   CHECK (amount > 0),
            CONSTRAINT ck_transactions_settled  CHECK ((status = 'pending') = (settled_at IS NULL))
        );
    """)
    op.execute("CREATE INDEX idx_transactions_listing ON transactions (listing_id);")
    op.execute("CREATE INDEX idx_transactions_user ON transactions (user_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_transactions_pending_expiry ON transactions (expires_at)
        WHERE status = 'pending';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
