# src/pm_boost/domain/repository.py
"""Repository Protocols — dependency inversion for testability.

Unit tests inject mocks (or in-memory fakes) that conform to these Protocols.
Infrastructure layer provides the real implementations.

Every state-changing method is a single conditional statement. Methods that
return `None` do so when their guard did not match (row missing, or already
past the state the statement expects).
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.domain.models import (
    Package,
    SettlementEffect,
    TickerReassignment,
    TickerSlot,
    Transaction,
)


class PackageRepositoryProtocol(Protocol):
    async def get_package(self, db: AsyncSession, package_id: str) -> Package | None: ...

    async def get_active_package(
        self, db: AsyncSession, package_id: str
    ) -> Package | None: ...

    async def get_ticker_package(self, db: AsyncSession) -> Package | None: ...

    async def list_active_packages(self, db: AsyncSession) -> list[Package]: ...


class TransactionRepositoryProtocol(Protocol):
    async def create_pending(
        self,
        db: AsyncSession,
        listing_id: str,
        user_id: str,
        package_id: str,
        amount: int,
        provider: str,
        phone_number: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Transaction: ...

    async def get_by_id(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None: ...

    async def get_by_gateway_reference(
        self, db: AsyncSession, gateway_reference: str
    ) -> Transaction | None: ...

    async def attach_gateway_reference(
        self, db: AsyncSession, transaction_id: str, gateway_reference: str
    ) -> Transaction | None: ...

    async def finalize(
        self,
        db: AsyncSession,
        transaction_id: str,
        status: str,
        error_message: str | None,
        now: datetime,
    ) -> Transaction | None: ...

    async def mark_expired(
        self, db: AsyncSession, transaction_id: str, now: datetime
    ) -> Transaction | None: ...

    async def expire_stale_pending(
        self, db: AsyncSession, now: datetime
    ) -> list[str]: ...

    async def list_transactions(
        self, db: AsyncSession, status: str | None, limit: int
    ) -> list[Transaction]: ...


class SettlementEffectRepositoryProtocol(Protocol):
    async def enqueue(
        self, db: AsyncSession, transaction: Transaction, package: Package
    ) -> SettlementEffect: ...

    async def claim(
        self, db: AsyncSession, transaction_id: str, now: datetime
    ) -> SettlementEffect | None: ...

    async def record_failure(
        self, db: AsyncSession, transaction_id: str, error: str
    ) -> None: ...

    async def list_unapplied(
        self, db: AsyncSession, limit: int
    ) -> list[SettlementEffect]: ...


class TickerRepositoryProtocol(Protocol):
    async def get_slot(self, db: AsyncSession) -> TickerSlot: ...

    async def reassign(
        self, db: AsyncSession, listing_id: str, owner_id: str, claimed_at: datetime
    ) -> TickerReassignment | None: ...


class BoostAuditRepositoryProtocol(Protocol):
    async def record(
        self,
        db: AsyncSession,
        listing_id: str,
        action: str,
        reason: str,
        actor_id: str | None,
        previous_premium_until: datetime | None,
    ) -> None: ...
