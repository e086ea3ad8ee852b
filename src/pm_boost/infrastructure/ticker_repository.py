"""TickerRepository — the single-row ticker slot.

The slot is one row (`id = 1`, enforced by CHECK). Reassignment is one
statement: the FROM-subquery locks the row and exposes its pre-update values,
the UPDATE overwrites all three fields together. Concurrent claims serialise
on the row lock and the slot never mixes fields of two claimants.

`claimed_at` is the settlement time of the winning payment, not the time the
write ran. A claim settled before the current holder's is refused, so a
retried effect can never take the slot back from a later payer.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.domain.models import TickerReassignment, TickerSlot
from src.pm_common.errors import InternalError

_TICKER_ID = 1

_GET_SLOT_SQL = text("""
    SELECT t.current_listing_id, t.owner_id, t.claimed_at,
           l.title AS listing_title
    FROM ticker_spot AS t
    LEFT JOIN listings AS l ON l.id = t.current_listing_id
    WHERE t.id = :ticker_id
""")

_REASSIGN_SQL = text("""
    UPDATE ticker_spot AS t
    SET current_listing_id = :listing_id,
        owner_id = :owner_id,
        claimed_at = :claimed_at,
        updated_at = NOW()
    FROM (
        SELECT id, current_listing_id, owner_id, claimed_at
        FROM ticker_spot
        WHERE id = :ticker_id
        FOR UPDATE
    ) AS prev
    WHERE t.id = prev.id
      AND (prev.claimed_at IS NULL OR prev.claimed_at <= :claimed_at)
    RETURNING t.current_listing_id, t.owner_id, t.claimed_at,
              prev.current_listing_id AS previous_listing_id,
              prev.owner_id AS previous_owner_id
""")


def _opt_str(value: object) -> str | None:
    return str(value) if value is not None else None


class TickerRepository:
    async def get_slot(self, db: AsyncSession) -> TickerSlot:
        result = await db.execute(_GET_SLOT_SQL, {"ticker_id": _TICKER_ID})
        row = result.fetchone()
        if row is None:
            raise InternalError("ticker_spot singleton row is missing")
        return TickerSlot(
            current_listing_id=_opt_str(row.current_listing_id),
            owner_id=_opt_str(row.owner_id),
            claimed_at=row.claimed_at,
            listing_title=row.listing_title,
        )

    async def reassign(
        self, db: AsyncSession, listing_id: str, owner_id: str, claimed_at: datetime
    ) -> TickerReassignment | None:
        """Give the slot to `listing_id`; None when a later claim already holds it.

        The row itself cannot be missing (migration 007 seeds it and forbids
        deletes), so zero updated rows only ever means the guard refused.
        """
        result = await db.execute(
            _REASSIGN_SQL,
            {
                "ticker_id": _TICKER_ID,
                "listing_id": listing_id,
                "owner_id": owner_id,
                "claimed_at": claimed_at,
            },
        )
        row = result.fetchone()
        if row is None:
            return None
        return TickerReassignment(
            slot=TickerSlot(
                current_listing_id=_opt_str(row.current_listing_id),
                owner_id=_opt_str(row.owner_id),
                claimed_at=row.claimed_at,
            ),
            previous_owner_id=_opt_str(row.previous_owner_id),
            previous_listing_id=_opt_str(row.previous_listing_id),
        )
