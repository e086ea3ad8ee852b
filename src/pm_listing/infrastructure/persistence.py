"""ListingRepository — concrete implementation of ListingRepositoryProtocol.

Promotion fields change only through single predicate UPDATEs: a demotion
touches exactly the rows matching its predicate at the instant it runs, so a
boost extended concurrently past `now` is left alone.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_listing.domain.models import DemotedListing, Listing

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_LISTING_SQL = text("""
    SELECT id, seller_id, title, status, is_premium, premium_until,
           created_at, updated_at
    FROM listings
    WHERE id = :listing_id
""")

_APPLY_BOOST_SQL = text("""
    UPDATE listings
    SET is_premium = TRUE,
        premium_until = :premium_until,
        updated_at = NOW()
    WHERE id = :listing_id
    RETURNING id, seller_id, title, status, is_premium, premium_until,
              created_at, updated_at
""")

# The FROM-subquery reads the pre-update row, so RETURNING can report what
# the listing lost.
_CLEAR_BOOST_SQL = text("""
    UPDATE listings AS l
    SET is_premium = FALSE,
        premium_until = NULL,
        updated_at = NOW()
    FROM (
        SELECT id, premium_until
        FROM listings
        WHERE id = :listing_id AND is_premium
        FOR UPDATE
    ) AS prev
    WHERE l.id = prev.id
    RETURNING l.id, l.seller_id, prev.premium_until AS previous_premium_until
""")

_DEMOTE_EXPIRED_SQL = text("""
    UPDATE listings AS l
    SET is_premium = FALSE,
        premium_until = NULL,
        updated_at = NOW()
    FROM (
        SELECT id, premium_until
        FROM listings
        WHERE is_premium
          AND premium_until IS NOT NULL
          AND premium_until <= :now
        FOR UPDATE SKIP LOCKED
    ) AS prev
    WHERE l.id = prev.id
      AND l.is_premium
      AND l.premium_until <= :now
    RETURNING l.id, l.seller_id, prev.premium_until AS previous_premium_until
""")

_LIST_PREMIUM_SQL = text("""
    SELECT id, seller_id, title, status, is_premium, premium_until,
           created_at, updated_at
    FROM listings
    WHERE is_premium AND status = 'active'
    ORDER BY premium_until DESC NULLS LAST, id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_listing(row: object) -> Listing:
    return Listing(
        id=str(row.id),  # type: ignore[attr-defined]
        seller_id=str(row.seller_id),  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        is_premium=row.is_premium,  # type: ignore[attr-defined]
        premium_until=row.premium_until,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_demoted(row: object) -> DemotedListing:
    return DemotedListing(
        id=str(row.id),  # type: ignore[attr-defined]
        seller_id=str(row.seller_id),  # type: ignore[attr-defined]
        previous_premium_until=row.previous_premium_until,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    """Concrete repository. The caller owns commit/rollback."""

    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None:
        result = await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def apply_boost(
        self, db: AsyncSession, listing_id: str, premium_until: datetime
    ) -> Listing | None:
        result = await db.execute(
            _APPLY_BOOST_SQL,
            {"listing_id": listing_id, "premium_until": premium_until},
        )
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def clear_boost(
        self, db: AsyncSession, listing_id: str
    ) -> DemotedListing | None:
        result = await db.execute(_CLEAR_BOOST_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_demoted(row) if row else None

    async def demote_expired(
        self, db: AsyncSession, now: datetime
    ) -> list[DemotedListing]:
        result = await db.execute(_DEMOTE_EXPIRED_SQL, {"now": now})
        return [_row_to_demoted(row) for row in result.fetchall()]

    async def list_premium(self, db: AsyncSession, limit: int) -> list[Listing]:
        result = await db.execute(_LIST_PREMIUM_SQL, {"limit": limit})
        return [_row_to_listing(row) for row in result.fetchall()]
