"""SettlementEffectApplier — turns an outbox row into a promotion.

A successful transaction commits together with its `settlement_effects` row.
Applying that row happens afterwards in its own unit of work:

    claim (applied_at IS NULL -> now)  ->  boost / ticker write  ->  commit

If anything in that unit fails it is rolled back as a whole, the failure is
recorded on the outbox row, and the transaction stays `success`. The retry
job picks unapplied rows up again; `premium_until` derives from the stored
`settled_at`, so a retry produces the same window as the first attempt.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.ticker_service import TickerService
from src.pm_boost.domain.models import SettlementEffect
from src.pm_boost.domain.repository import SettlementEffectRepositoryProtocol
from src.pm_boost.domain.state_machine import compute_premium_until
from src.pm_boost.infrastructure.persistence import SettlementEffectRepository
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import EffectType
from src.pm_common.errors import AppError, ListingNotFoundError
from src.pm_listing.domain.repository import ListingRepositoryProtocol
from src.pm_listing.infrastructure.persistence import ListingRepository
from src.pm_notification.domain.models import boost_activated
from src.pm_notification.domain.repository import NotificationRepositoryProtocol
from src.pm_notification.infrastructure.persistence import NotificationRepository

logger = logging.getLogger(__name__)


class SettlementEffectApplier:
    def __init__(
        self,
        effect_repo: SettlementEffectRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        ticker_service: TickerService | None = None,
        notification_repo: NotificationRepositoryProtocol | None = None,
    ) -> None:
        self._effects: SettlementEffectRepositoryProtocol = (
            effect_repo or SettlementEffectRepository()
        )
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._ticker = ticker_service or TickerService()
        self._notifications: NotificationRepositoryProtocol = (
            notification_repo or NotificationRepository()
        )

    async def apply(
        self, db: AsyncSession, transaction_id: str, now: datetime | None = None
    ) -> bool:
        """Apply the effect owed by `transaction_id`.

        Returns True when the effect is in place (now or already before),
        False when this attempt failed and was recorded for retry.
        """
        now = now or utc_now()
        try:
            effect = await self._effects.claim(db, transaction_id, now)
            if effect is None:
                await db.commit()
                logger.info("Settlement effect already applied: tx=%s", transaction_id)
                return True
            await self._apply_effect(db, effect)
            await db.commit()
        except (SQLAlchemyError, AppError) as exc:
            await db.rollback()
            logger.exception("Settlement effect failed: tx=%s", transaction_id)
            await self._record_failure(db, transaction_id, exc)
            return False
        logger.info(
            "Settlement effect applied: tx=%s type=%s listing=%s",
            transaction_id,
            effect.effect_type,
            effect.listing_id,
        )
        return True

    async def _apply_effect(self, db: AsyncSession, effect: SettlementEffect) -> None:
        if effect.effect_type == EffectType.TICKER.value:
            # A claim settled after this one may already hold the slot; the
            # effect is then spent without touching it.
            await self._ticker.reassign(
                db, effect.listing_id, effect.owner_id, claimed_at=effect.settled_at
            )
            return

        premium_until = compute_premium_until(effect.settled_at, effect.duration_days)
        listing = await self._listings.apply_boost(db, effect.listing_id, premium_until)
        if listing is None:
            raise ListingNotFoundError(effect.listing_id)
        await self._notifications.notify_best_effort(
            db, boost_activated(effect.owner_id, effect.listing_id, effect.duration_days)
        )

    async def _record_failure(
        self, db: AsyncSession, transaction_id: str, exc: Exception
    ) -> None:
        try:
            await self._effects.record_failure(db, transaction_id, f"{type(exc).__name__}: {exc}")
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Could not record settlement effect failure: tx=%s", transaction_id)
