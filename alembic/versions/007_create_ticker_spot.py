"""007: create ticker_spot singleton

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ticker_spot (
            id                  SMALLINT        PRIMARY KEY DEFAULT 1,
            current_listing_id  VARCHAR(64)     REFERENCES listings (id),
            owner_id            VARCHAR(64),
            claimed_at          TIMESTAMPTZ,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ticker_spot_singleton CHECK (id = 1),
            CONSTRAINT ck_ticker_spot_all_or_nothing CHECK (
                (current_listing_id IS NULL) = (owner_id IS NULL)
                AND (owner_id IS NULL) = (claimed_at IS NULL)
            )
        );
    """)
    op.execute("INSERT INTO ticker_spot (id) VALUES (1);")
    # The row must always exist; reassignment is an UPDATE, never an INSERT.
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_ticker_spot_no_delete()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'ticker_spot row cannot be deleted';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_ticker_spot_no_delete
            BEFORE DELETE ON ticker_spot
            FOR EACH ROW EXECUTE FUNCTION fn_ticker_spot_no_delete();
    """)
    # Deleting the listing on the ticker empties the slot as a whole.
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_ticker_spot_vacate()
        RETURNS TRIGGER AS $$
        BEGIN
            UPDATE ticker_spot
               SET current_listing_id = NULL,
                   owner_id = NULL,
                   claimed_at = NULL,
                   updated_at = NOW()
             WHERE current_listing_id = OLD.id;
            RETURN OLD;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_listings_vacate_ticker
            BEFORE DELETE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_ticker_spot_vacate();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_listings_vacate_ticker ON listings;")
    op.execute("DROP FUNCTION IF EXISTS fn_ticker_spot_vacate();")
    op.execute("DROP TABLE IF EXISTS ticker_spot CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_ticker_spot_no_delete();")
