"""TickerClaimService — immediate ticker claim without a gateway round trip.

The claim still produces a real ledger row (provider 'ticker') and goes
through SettlementService.settle, so it shares the finalisation guard and
the outbox with webhook settlements. Disabled by TICKER_DIRECT_CLAIM_ENABLED.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_boost.application.schemas import TickerClaimRequest, TickerClaimResponse
from src.pm_boost.application.settlement_service import SettlementService
from src.pm_boost.domain.repository import (
    PackageRepositoryProtocol,
    TickerRepositoryProtocol,
    TransactionRepositoryProtocol,
)
from src.pm_boost.domain.state_machine import compute_expires_at
from src.pm_boost.infrastructure.persistence import PackageRepository, TransactionRepository
from src.pm_boost.infrastructure.ticker_repository import TickerRepository
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import TICKER_PLACEHOLDER_PHONE, TICKER_PROVIDER, TransactionStatus
from src.pm_common.errors import (
    ForbiddenError,
    ListingNotApprovedError,
    ListingNotFoundError,
    ListingNotOwnedError,
    TickerClaimDisabledError,
    TickerPackageNotFoundError,
)
from src.pm_listing.domain.repository import ListingRepositoryProtocol
from src.pm_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


class TickerClaimService:
    def __init__(
        self,
        tx_repo: TransactionRepositoryProtocol | None = None,
        package_repo: PackageRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        ticker_repo: TickerRepositoryProtocol | None = None,
        settlement: SettlementService | None = None,
    ) -> None:
        self._tx: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._packages: PackageRepositoryProtocol = package_repo or PackageRepository()
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._ticker: TickerRepositoryProtocol = ticker_repo or TickerRepository()
        self._settlement = settlement or SettlementService(
            tx_repo=self._tx, package_repo=self._packages
        )

    async def claim_ticker(
        self,
        db: AsyncSession,
        caller_id: str,
        req: TickerClaimRequest,
        now: datetime | None = None,
    ) -> TickerClaimResponse:
        if not settings.TICKER_DIRECT_CLAIM_ENABLED:
            raise TickerClaimDisabledError()
        if req.user_id != caller_id:
            raise ForbiddenError("Cannot claim the ticker on behalf of another user")

        listing = await self._listings.get_listing(db, req.listing_id)
        if listing is None:
            raise ListingNotFoundError(req.listing_id)
        if not listing.is_owned_by(caller_id):
            raise ListingNotOwnedError(req.listing_id)
        if not listing.is_approved:
            raise ListingNotApprovedError(req.listing_id, listing.status)

        package = await self._packages.get_ticker_package(db)
        if package is None:
            raise TickerPackageNotFoundError()

        now = now or utc_now()
        try:
            tx = await self._tx.create_pending(
                db,
                listing_id=listing.id,
                user_id=caller_id,
                package_id=package.id,
                amount=package.price,
                provider=TICKER_PROVIDER,
                phone_number=TICKER_PLACEHOLDER_PHONE,
                created_at=now,
                expires_at=compute_expires_at(now, settings.PAYMENT_TIMEOUT_SECONDS),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        final = await self._settlement.settle(db, tx, TransactionStatus.SUCCESS, None, now)
        slot = await self._ticker.get_slot(db)
        ticker_updated = (
            final.status == TransactionStatus.SUCCESS.value
            and slot.current_listing_id == listing.id
            and slot.owner_id == caller_id
        )
        if not ticker_updated:
            logger.warning(
                "Ticker claim settled but slot not updated: tx=%s status=%s", tx.id, final.status
            )
        return TickerClaimResponse(
            transaction_id=final.id,
            status=final.status,
            ticker_updated=ticker_updated,
            message="You are now in the ticker" if ticker_updated else "Ticker update pending",
        )
