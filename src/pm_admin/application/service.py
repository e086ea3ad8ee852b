# src/pm_admin/application/service.py
"""Admin application service: boost override and monitoring."""
import logging
from datetime import datetime, timedelta

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_admin.application.schemas import (
    ActiveBoostItem,
    ActiveBoostsResponse,
    AdminTickerResponse,
    BoostStats,
    ForceExpireResponse,
    TransactionItem,
    TransactionListResponse,
)
from src.pm_boost.domain.repository import (
    BoostAuditRepositoryProtocol,
    TransactionRepositoryProtocol,
)
from src.pm_boost.infrastructure.audit_log import BoostAuditRepository
from src.pm_boost.infrastructure.persistence import TransactionRepository
from src.pm_common.currency import fcfa_to_display
from src.pm_common.datetime_utils import iso_or_none, utc_now
from src.pm_common.enums import BoostAuditAction
from src.pm_common.errors import InternalError, ListingNotBoostedError, ListingNotFoundError
from src.pm_listing.domain.repository import ListingRepositoryProtocol
from src.pm_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)

# Latest successful timed-boost purchase per boosted listing.
_ACTIVE_BOOSTS_SQL = text("""
    SELECT l.id, l.title, l.seller_id, u.username AS seller_name, l.premium_until,
           last_tx.package_name, COALESCE(last_tx.amount, 0) AS amount
    FROM listings l
    LEFT JOIN users u ON u.id::text = l.seller_id
    LEFT JOIN LATERAL (
        SELECT p.name AS package_name, t.amount
        FROM transactions t
        JOIN boost_packages p ON p.id = t.package_id
        WHERE t.listing_id = l.id
          AND t.status = 'success'
          AND p.duration_days > 0
        ORDER BY t.settled_at DESC NULLS LAST
        LIMIT 1
    ) last_tx ON TRUE
    WHERE l.is_premium
    ORDER BY l.premium_until ASC NULLS LAST, l.id
""")

_ADMIN_TICKER_SQL = text("""
    SELECT t.current_listing_id, l.title AS listing_title,
           t.owner_id, u.username AS owner_name, t.claimed_at
    FROM ticker_spot t
    LEFT JOIN listings l ON l.id = t.current_listing_id
    LEFT JOIN users u ON u.id::text = t.owner_id
    WHERE t.id = 1
""")


class AdminService:
    def __init__(
        self,
        listing_repo: ListingRepositoryProtocol | None = None,
        audit_repo: BoostAuditRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
    ) -> None:
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._audit: BoostAuditRepositoryProtocol = audit_repo or BoostAuditRepository()
        self._tx: TransactionRepositoryProtocol = tx_repo or TransactionRepository()

    async def force_expire_boost(
        self, db: AsyncSession, listing_id: str, reason: str, admin_id: str
    ) -> ForceExpireResponse:
        """Clear a listing's boost now, whatever its premium_until. No transaction is touched."""
        try:
            demoted = await self._listings.clear_boost(db, listing_id)
            if demoted is None:
                listing = await self._listings.get_listing(db, listing_id)
                if listing is None:
                    raise ListingNotFoundError(listing_id)
                raise ListingNotBoostedError(listing_id)
            await self._audit.record(
                db,
                listing_id=listing_id,
                action=BoostAuditAction.ADMIN_EXPIRE.value,
                reason=reason,
                actor_id=admin_id,
                previous_premium_until=demoted.previous_premium_until,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.warning(
            "Boost force-expired: listing=%s admin=%s previous_until=%s reason=%s",
            listing_id,
            admin_id,
            iso_or_none(demoted.previous_premium_until),
            reason,
        )
        return ForceExpireResponse(
            listing_id=listing_id,
            previous_premium_until=iso_or_none(demoted.previous_premium_until),
            reason=reason,
            expired_by=admin_id,
        )

    async def list_active_boosts(
        self, db: AsyncSession, now: datetime | None = None
    ) -> ActiveBoostsResponse:
        now = now or utc_now()
        soon = timedelta(hours=settings.BOOST_EXPIRING_SOON_HOURS)
        rows = (await db.execute(_ACTIVE_BOOSTS_SQL)).fetchall()

        items: list[ActiveBoostItem] = []
        total_revenue = 0
        expiring_soon = 0
        for r in rows:
            remaining = r.premium_until - now if r.premium_until is not None else None
            if remaining is not None and timedelta(0) < remaining < soon:
                expiring_soon += 1
            total_revenue += int(r.amount)
            items.append(
                ActiveBoostItem(
                    listing_id=str(r.id),
                    title=r.title,
                    seller_id=str(r.seller_id),
                    seller_name=r.seller_name,
                    premium_until=iso_or_none(r.premium_until),
                    package_name=r.package_name,
                    amount=int(r.amount),
                    hours_remaining=(
                        round(remaining.total_seconds() / 3600, 1)
                        if remaining is not None
                        else None
                    ),
                )
            )

        return ActiveBoostsResponse(
            items=items,
            stats=BoostStats(
                total_active=len(items),
                total_revenue=total_revenue,
                total_revenue_display=fcfa_to_display(total_revenue),
                expiring_soon=expiring_soon,
            ),
        )

    async def get_ticker(self, db: AsyncSession) -> AdminTickerResponse:
        row = (await db.execute(_ADMIN_TICKER_SQL)).fetchone()
        if row is None:
            raise InternalError("ticker_spot singleton row is missing")
        return AdminTickerResponse(
            current_listing_id=row.current_listing_id,
            listing_title=row.listing_title,
            owner_id=row.owner_id,
            owner_name=row.owner_name,
            claimed_at=iso_or_none(row.claimed_at),
        )

    async def list_transactions(
        self, db: AsyncSession, status: str | None, limit: int
    ) -> TransactionListResponse:
        transactions = await self._tx.list_transactions(db, status, limit)
        return TransactionListResponse(
            items=[TransactionItem.from_domain(tx) for tx in transactions]
        )
