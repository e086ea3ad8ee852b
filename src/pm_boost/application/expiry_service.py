"""ExpiryService — the scheduled jobs.

All three jobs are parameterless and idempotent: each works only on rows
matching its predicate at the instant of its own UPDATE, so running one twice
in a row changes nothing the second time.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.effects import SettlementEffectApplier
from src.pm_boost.application.schemas import (
    ExpireBoostsResponse,
    ExpirePendingResponse,
    RetryEffectsResponse,
)
from src.pm_boost.domain.repository import (
    BoostAuditRepositoryProtocol,
    SettlementEffectRepositoryProtocol,
    TransactionRepositoryProtocol,
)
from src.pm_boost.infrastructure.audit_log import BoostAuditRepository
from src.pm_boost.infrastructure.persistence import (
    SettlementEffectRepository,
    TransactionRepository,
)
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import BoostAuditAction
from src.pm_listing.domain.repository import ListingRepositoryProtocol
from src.pm_listing.infrastructure.persistence import ListingRepository
from src.pm_notification.domain.models import boost_expired
from src.pm_notification.domain.repository import NotificationRepositoryProtocol
from src.pm_notification.infrastructure.persistence import NotificationRepository

logger = logging.getLogger(__name__)

SWEEP_REASON = "Premium window elapsed"
RETRY_BATCH_SIZE = 100


class ExpiryService:
    def __init__(
        self,
        listing_repo: ListingRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
        audit_repo: BoostAuditRepositoryProtocol | None = None,
        notification_repo: NotificationRepositoryProtocol | None = None,
        effect_repo: SettlementEffectRepositoryProtocol | None = None,
        applier: SettlementEffectApplier | None = None,
    ) -> None:
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._tx: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._audit: BoostAuditRepositoryProtocol = audit_repo or BoostAuditRepository()
        self._notifications: NotificationRepositoryProtocol = (
            notification_repo or NotificationRepository()
        )
        self._effects: SettlementEffectRepositoryProtocol = (
            effect_repo or SettlementEffectRepository()
        )
        self._applier = applier or SettlementEffectApplier(effect_repo=self._effects)

    async def expire_premium_listings(
        self, db: AsyncSession, now: datetime | None = None
    ) -> ExpireBoostsResponse:
        """Demote every boosted listing whose premium_until is at or before now."""
        now = now or utc_now()
        try:
            demoted = await self._listings.demote_expired(db, now)
            for listing in demoted:
                await self._audit.record(
                    db,
                    listing_id=listing.id,
                    action=BoostAuditAction.SWEEP_EXPIRE.value,
                    reason=SWEEP_REASON,
                    actor_id=None,
                    previous_premium_until=listing.previous_premium_until,
                )
                await self._notifications.notify_best_effort(
                    db, boost_expired(listing.seller_id, listing.id)
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Expiry sweep demoted %d listing(s)", len(demoted))
        return ExpireBoostsResponse(
            demoted_count=len(demoted),
            listing_ids=[listing.id for listing in demoted],
            ran_at=now.isoformat(),
        )

    async def expire_pending_transactions(
        self, db: AsyncSession, now: datetime | None = None
    ) -> ExpirePendingResponse:
        """Close pending transactions that never got a callback before expires_at."""
        now = now or utc_now()
        try:
            expired_ids = await self._tx.expire_stale_pending(db, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if expired_ids:
            logger.info("Expired %d abandoned pending transaction(s)", len(expired_ids))
        return ExpirePendingResponse(
            expired_count=len(expired_ids),
            transaction_ids=expired_ids,
            ran_at=now.isoformat(),
        )

    async def retry_settlement_effects(
        self, db: AsyncSession, limit: int = RETRY_BATCH_SIZE, now: datetime | None = None
    ) -> RetryEffectsResponse:
        now = now or utc_now()
        pending = await self._effects.list_unapplied(db, limit)
        await db.commit()

        applied = 0
        for effect in pending:
            if await self._applier.apply(db, effect.transaction_id, now):
                applied += 1
        failed = len(pending) - applied
        if pending:
            logger.info(
                "Settlement effect retry: attempted=%d applied=%d failed=%d",
                len(pending),
                applied,
                failed,
            )
        return RetryEffectsResponse(
            attempted=len(pending), applied=applied, failed=failed, ran_at=now.isoformat()
        )
