"""TickerService — the single homepage slot.

`reassign` runs inside the caller's transaction; the caller commits. Anything
only needed for the dethrone notification runs in a savepoint.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.schemas import TickerSlotResponse
from src.pm_boost.domain.models import TickerReassignment
from src.pm_boost.domain.repository import PackageRepositoryProtocol, TickerRepositoryProtocol
from src.pm_boost.infrastructure.persistence import PackageRepository
from src.pm_boost.infrastructure.ticker_repository import TickerRepository
from src.pm_notification.domain.models import ticker_dethroned
from src.pm_notification.domain.repository import NotificationRepositoryProtocol
from src.pm_notification.infrastructure.persistence import NotificationRepository

logger = logging.getLogger(__name__)


class TickerService:
    def __init__(
        self,
        ticker_repo: TickerRepositoryProtocol | None = None,
        package_repo: PackageRepositoryProtocol | None = None,
        notification_repo: NotificationRepositoryProtocol | None = None,
    ) -> None:
        self._ticker: TickerRepositoryProtocol = ticker_repo or TickerRepository()
        self._packages: PackageRepositoryProtocol = package_repo or PackageRepository()
        self._notifications: NotificationRepositoryProtocol = (
            notification_repo or NotificationRepository()
        )

    async def get_ticker(self, db: AsyncSession) -> TickerSlotResponse:
        slot = await self._ticker.get_slot(db)
        return TickerSlotResponse.from_domain(slot)

    async def reassign(
        self, db: AsyncSession, listing_id: str, owner_id: str, claimed_at: datetime
    ) -> TickerReassignment | None:
        """Hand the slot to a claim settled at `claimed_at` and tell the dethroned owner.

        Returns None, and changes nothing, when the slot already belongs to a
        claim settled later.
        """
        result = await self._ticker.reassign(db, listing_id, owner_id, claimed_at)
        if result is None:
            logger.info(
                "Ticker claim superseded: listing=%s owner=%s settled_at=%s",
                listing_id,
                owner_id,
                claimed_at.isoformat(),
            )
            return None
        logger.info(
            "Ticker reassigned: listing=%s owner=%s previous_owner=%s",
            listing_id,
            owner_id,
            result.previous_owner_id,
        )
        dethroned = result.dethroned_owner_id
        if dethroned is not None:
            price = await self._ticker_price_best_effort(db)
            await self._notifications.notify_best_effort(db, ticker_dethroned(dethroned, price))
        return result

    async def _ticker_price_best_effort(self, db: AsyncSession) -> int | None:
        # Only feeds the notification text; a failure must not undo the reassignment.
        try:
            async with db.begin_nested():
                package = await self._packages.get_ticker_package(db)
        except SQLAlchemyError:
            logger.exception("Ticker price lookup failed; notifying without price")
            return None
        return package.price if package else None
