"""SettlementService — the one place a transaction leaves `pending`.

Webhook callbacks, status polls and the direct ticker claim all end in
`settle`: one conditional UPDATE (pending and not past expires_at) plus, on
success, the outbox row, committed together. The promotion itself is applied
right after by SettlementEffectApplier in its own unit of work.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.effects import SettlementEffectApplier
from src.pm_boost.application.schemas import WebhookPayload, WebhookResponse
from src.pm_boost.domain.models import Transaction
from src.pm_boost.domain.repository import (
    PackageRepositoryProtocol,
    SettlementEffectRepositoryProtocol,
    TransactionRepositoryProtocol,
)
from src.pm_boost.domain.state_machine import (
    FAILED_CALLBACK_MESSAGE,
    is_expired,
    is_terminal,
    map_gateway_status,
)
from src.pm_boost.infrastructure.persistence import (
    PackageRepository,
    SettlementEffectRepository,
    TransactionRepository,
)
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import TransactionStatus
from src.pm_common.errors import (
    PackageNotFoundError,
    TransactionExpiredError,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)


class SettlementService:
    def __init__(
        self,
        tx_repo: TransactionRepositoryProtocol | None = None,
        package_repo: PackageRepositoryProtocol | None = None,
        effect_repo: SettlementEffectRepositoryProtocol | None = None,
        applier: SettlementEffectApplier | None = None,
    ) -> None:
        self._tx: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._packages: PackageRepositoryProtocol = package_repo or PackageRepository()
        self._effects: SettlementEffectRepositoryProtocol = (
            effect_repo or SettlementEffectRepository()
        )
        self._applier = applier or SettlementEffectApplier(effect_repo=self._effects)

    async def process_webhook(
        self, db: AsyncSession, payload: WebhookPayload, now: datetime | None = None
    ) -> WebhookResponse:
        now = now or utc_now()
        tx = await self._tx.get_by_gateway_reference(db, payload.tx_reference)
        if tx is None:
            logger.warning("Webhook for unknown reference: %s", payload.tx_reference)
            raise TransactionNotFoundError(payload.tx_reference)

        if is_terminal(tx.status):
            logger.info("Duplicate webhook ignored: tx=%s status=%s", tx.id, tx.status)
            return WebhookResponse(
                transaction_id=tx.id, status=tx.status, message="Transaction already processed"
            )

        if is_expired(tx.expires_at, now):
            await self.expire(db, tx, now)
            raise TransactionExpiredError(tx.id)

        if payload.amount != tx.amount:
            logger.warning(
                "Webhook amount mismatch: tx=%s expected=%d received=%d",
                tx.id,
                tx.amount,
                payload.amount,
            )

        new_status = map_gateway_status(payload.status)
        error_message = (
            FAILED_CALLBACK_MESSAGE if new_status == TransactionStatus.FAILED else None
        )
        final = await self.settle(db, tx, new_status, error_message, now)
        if final.status == TransactionStatus.EXPIRED.value:
            # the window closed between the read and the guarded UPDATE
            raise TransactionExpiredError(tx.id)
        return WebhookResponse(
            transaction_id=final.id, status=final.status, message="Webhook processed"
        )

    async def settle(
        self,
        db: AsyncSession,
        tx: Transaction,
        status: TransactionStatus,
        error_message: str | None,
        now: datetime,
    ) -> Transaction:
        """Move `tx` out of pending and return the row as it is now stored.

        If the guarded UPDATE matches nothing, another writer settled it first
        (the stored row is returned unchanged) or the window closed in between
        (the row is expired and returned).
        """
        package = await self._packages.get_package(db, tx.package_id)
        if package is None:
            raise PackageNotFoundError(tx.package_id)

        try:
            final = await self._tx.finalize(db, tx.id, status.value, error_message, now)
            if final is not None and final.status == TransactionStatus.SUCCESS.value:
                await self._effects.enqueue(db, final, package)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if final is None:
            return await self._resolve_lost_race(db, tx, now)

        logger.info(
            "Transaction settled: tx=%s status=%s listing=%s package=%s",
            final.id,
            final.status,
            final.listing_id,
            final.package_id,
        )
        if final.status == TransactionStatus.SUCCESS.value:
            await self._applier.apply(db, final.id, now)
        return final

    async def expire(self, db: AsyncSession, tx: Transaction, now: datetime) -> Transaction:
        try:
            expired = await self._tx.mark_expired(db, tx.id, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if expired is None:
            current = await self._tx.get_by_id(db, tx.id)
            return current or tx
        logger.info("Transaction expired: tx=%s", tx.id)
        return expired

    async def _resolve_lost_race(
        self, db: AsyncSession, tx: Transaction, now: datetime
    ) -> Transaction:
        current = await self._tx.get_by_id(db, tx.id)
        if current is None:
            raise TransactionNotFoundError(tx.id)
        if current.is_pending:
            return await self.expire(db, current, now)
        logger.info("Transaction already settled elsewhere: tx=%s status=%s", tx.id, current.status)
        return current
