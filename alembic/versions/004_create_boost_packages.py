"""004: create boost_packages table and seed the catalogue

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE boost_packages (
            id              VARCHAR(64)     PRIMARY KEY,
            name            TEXT            NOT NULL,
            price           INT             NOT NULL,
            duration_days   SMALLINT        NOT NULL,
            active          BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_boost_packages_price      CHECK (price > 0),
            CONSTRAINT ck_boost_packages_duration   CHECK (duration_days >= 0)
        );
    """)
    op.execute("COMMENT ON COLUMN boost_packages.duration_days IS '0 = ticker slot, >0 = timed boost';")
    op.execute("""
        INSERT INTO boost_packages (id, name, price, duration_days) VALUES
            ('pkg_ticker_star', 'Ticker Star',    200,  0),
            ('pkg_boost_3d',    'Boost 3 jours',  1000, 3),
            ('pkg_boost_7d',    'Boost 7 jours',  2000, 7),
            ('pkg_boost_30d',   'Boost 30 jours', 6000, 30);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS boost_packages CASCADE;")
