"""PaymentApplicationService — buyer-facing side of a boost purchase.

initiate_payment:
  1. validate listing ownership and package
  2. insert a `pending` transaction (committed before the gateway is called,
     so a crash mid-call still leaves a row the expiry job can close)
  3. ask PayGate to charge the phone; the transaction id is the PayGate
     `identifier`
  4. on acceptance store the gateway reference; on rejection or gateway
     error move the row out of pending immediately

check_payment_status polls PayGate for a pending row and settles it through
the same path a webhook uses.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_boost.application.schemas import (
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    PaymentStatusResponse,
)
from src.pm_boost.application.settlement_service import SettlementService
from src.pm_boost.domain.models import Transaction
from src.pm_boost.domain.repository import (
    PackageRepositoryProtocol,
    TransactionRepositoryProtocol,
)
from src.pm_boost.domain.state_machine import (
    compute_expires_at,
    decode_initiate_error,
    is_expired,
    is_terminal,
    map_poll_status,
)
from src.pm_boost.infrastructure.paygate_client import PayGateClient, PayGateError
from src.pm_boost.infrastructure.persistence import PackageRepository, TransactionRepository
from src.pm_common.currency import fcfa_to_display
from src.pm_common.datetime_utils import iso_or_none, utc_now
from src.pm_common.enums import TransactionStatus
from src.pm_common.errors import (
    ForbiddenError,
    GatewayUnavailableError,
    ListingNotFoundError,
    ListingNotOwnedError,
    PackageNotFoundError,
    PaymentRejectedError,
    TransactionNotFoundError,
)
from src.pm_listing.domain.repository import ListingRepositoryProtocol
from src.pm_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


class PaymentApplicationService:
    def __init__(
        self,
        tx_repo: TransactionRepositoryProtocol | None = None,
        package_repo: PackageRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        gateway: PayGateClient | None = None,
        settlement: SettlementService | None = None,
    ) -> None:
        self._tx: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._packages: PackageRepositoryProtocol = package_repo or PackageRepository()
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._gateway = gateway or PayGateClient()
        self._settlement = settlement or SettlementService(
            tx_repo=self._tx, package_repo=self._packages
        )

    async def initiate_payment(
        self,
        db: AsyncSession,
        user_id: str,
        req: InitiatePaymentRequest,
        now: datetime | None = None,
    ) -> InitiatePaymentResponse:
        listing = await self._listings.get_listing(db, req.listing_id)
        if listing is None:
            raise ListingNotFoundError(req.listing_id)
        if not listing.is_owned_by(user_id):
            raise ListingNotOwnedError(req.listing_id)

        package = await self._packages.get_active_package(db, req.package_id)
        if package is None:
            raise PackageNotFoundError(req.package_id)

        now = now or utc_now()
        try:
            tx = await self._tx.create_pending(
                db,
                listing_id=listing.id,
                user_id=user_id,
                package_id=package.id,
                amount=package.price,
                provider=req.network.value,
                phone_number=req.phone_number,
                created_at=now,
                expires_at=compute_expires_at(now, settings.PAYMENT_TIMEOUT_SECONDS),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Payment initiated: tx=%s listing=%s package=%s amount=%d network=%s",
            tx.id,
            tx.listing_id,
            tx.package_id,
            tx.amount,
            req.network.value,
        )

        try:
            result = await self._gateway.request_payment(
                identifier=tx.id,
                phone_number=req.phone_number,
                amount=package.price,
                network=req.network,
                description=f"Boost {package.name}",
            )
        except PayGateError as exc:
            await self._close_rejected(db, tx, f"Gateway error: {exc}", now)
            raise GatewayUnavailableError(str(exc)) from exc

        if result.status != 0:
            reason = decode_initiate_error(result.status)
            await self._close_rejected(db, tx, reason, now)
            raise PaymentRejectedError(reason)
        if not result.tx_reference:
            await self._close_rejected(db, tx, "Gateway accepted without a tx_reference", now)
            raise GatewayUnavailableError("accepted without a tx_reference")

        try:
            attached = await self._tx.attach_gateway_reference(db, tx.id, result.tx_reference)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if attached is None:
            logger.warning(
                "Transaction left pending before its reference was stored: tx=%s ref=%s",
                tx.id,
                result.tx_reference,
            )

        return InitiatePaymentResponse(
            transaction_id=tx.id,
            tx_reference=result.tx_reference,
            status=TransactionStatus.PENDING.value,
            amount=package.price,
            amount_display=fcfa_to_display(package.price),
            expires_at=iso_or_none(tx.expires_at) or "",
            message="Confirm the payment on your phone",
        )

    async def check_payment_status(
        self,
        db: AsyncSession,
        user_id: str,
        transaction_id: str,
        now: datetime | None = None,
    ) -> PaymentStatusResponse:
        tx = await self._tx.get_by_id(db, transaction_id)
        if tx is None:
            raise TransactionNotFoundError(transaction_id)
        if tx.user_id != user_id:
            raise ForbiddenError("Transaction belongs to another user")

        if is_terminal(tx.status):
            return PaymentStatusResponse.from_domain(tx, "Transaction already processed")

        now = now or utc_now()
        if is_expired(tx.expires_at, now):
            expired = await self._settlement.expire(db, tx, now)
            return PaymentStatusResponse.from_domain(expired, "Payment window elapsed")

        try:
            result = await self._gateway.check_status(tx.id)
        except PayGateError as exc:
            raise GatewayUnavailableError(str(exc)) from exc

        new_status, error_message = map_poll_status(result.status)
        if new_status is None:
            return PaymentStatusResponse.from_domain(tx, "Payment still pending")

        final = await self._settlement.settle(db, tx, new_status, error_message, now)
        return PaymentStatusResponse.from_domain(final, "Payment status updated")

    async def _close_rejected(
        self, db: AsyncSession, tx: Transaction, reason: str, now: datetime
    ) -> None:
        """Take a transaction the gateway never accepted out of pending."""
        try:
            closed = await self._tx.finalize(
                db, tx.id, TransactionStatus.FAILED.value, reason, now
            )
            if closed is None:
                closed = await self._tx.mark_expired(db, tx.id, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "Payment rejected: tx=%s status=%s reason=%s",
            tx.id,
            closed.status if closed else tx.status,
            reason,
        )
