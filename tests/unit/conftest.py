"""In-memory repositories for application-service tests.

FakeStore keeps committed state and a working copy. `commit()` snapshots the
working copy, `rollback()` restores the last snapshot, so services see the
same all-or-nothing behaviour they get from PostgreSQL.
"""

import contextlib
import copy
import dataclasses
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from src.pm_admin.application.service import AdminService
from src.pm_boost.application.effects import SettlementEffectApplier
from src.pm_boost.application.expiry_service import ExpiryService
from src.pm_boost.application.payment_service import PaymentApplicationService
from src.pm_boost.application.settlement_service import SettlementService
from src.pm_boost.application.ticker_claim_service import TickerClaimService
from src.pm_boost.application.ticker_service import TickerService
from src.pm_boost.domain.models import (
    Package,
    SettlementEffect,
    TickerReassignment,
    TickerSlot,
    Transaction,
)
from src.pm_boost.infrastructure.paygate_client import PayGateClient
from src.pm_listing.domain.models import DemotedListing, Listing
from src.pm_notification.domain.models import NotificationDraft

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@dataclass
class FakeState:
    packages: dict[str, Package] = field(default_factory=dict)
    transactions: dict[str, Transaction] = field(default_factory=dict)
    effects: dict[str, SettlementEffect] = field(default_factory=dict)
    listings: dict[str, Listing] = field(default_factory=dict)
    ticker: TickerSlot = field(
        default_factory=lambda: TickerSlot(current_listing_id=None, owner_id=None, claimed_at=None)
    )
    notifications: list[NotificationDraft] = field(default_factory=list)
    audit: list[dict] = field(default_factory=list)
    tx_seq: int = 0


class FakeSession:
    def __init__(self, store: "FakeStore") -> None:
        self._store = store
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1
        self._store.snapshot = copy.deepcopy(self._store.state)

    async def rollback(self) -> None:
        self.rollbacks += 1
        self._store.state = copy.deepcopy(self._store.snapshot)

    @contextlib.asynccontextmanager
    async def begin_nested(self):
        savepoint = copy.deepcopy(self._store.state)
        try:
            yield self
        except Exception:
            self._store.state = savepoint
            raise


class _Repo:
    def __init__(self, store: "FakeStore") -> None:
        self._store = store

    @property
    def s(self) -> FakeState:
        return self._store.state


class FakePackageRepository(_Repo):
    def __init__(self, store: "FakeStore") -> None:
        super().__init__(store)
        self.fail_ticker_lookup = False

    async def get_package(self, db, package_id):
        return self.s.packages.get(package_id)

    async def get_active_package(self, db, package_id):
        pkg = self.s.packages.get(package_id)
        return pkg if pkg is not None and pkg.active else None

    async def get_ticker_package(self, db):
        if self.fail_ticker_lookup:
            raise SQLAlchemyError("statement timeout reading packages")
        tickers = [p for p in self.s.packages.values() if p.active and p.duration_days == 0]
        return min(tickers, key=lambda p: (p.price, p.id)) if tickers else None

    async def list_active_packages(self, db):
        return sorted(
            (p for p in self.s.packages.values() if p.active),
            key=lambda p: (p.duration_days, p.price, p.id),
        )


class FakeTransactionRepository(_Repo):
    async def create_pending(
        self, db, listing_id, user_id, package_id, amount, provider, phone_number,
        created_at, expires_at,
    ):
        self.s.tx_seq += 1
        tx = Transaction(
            id=f"tx-{self.s.tx_seq}",
            listing_id=listing_id,
            user_id=user_id,
            package_id=package_id,
            amount=amount,
            provider=provider,
            phone_number=phone_number,
            status="pending",
            gateway_reference=None,
            error_message=None,
            expires_at=expires_at,
            created_at=created_at,
        )
        self.s.transactions[tx.id] = tx
        return dataclasses.replace(tx)

    async def get_by_id(self, db, transaction_id):
        tx = self.s.transactions.get(transaction_id)
        return dataclasses.replace(tx) if tx else None

    async def get_by_gateway_reference(self, db, gateway_reference):
        for tx in self.s.transactions.values():
            if tx.gateway_reference == gateway_reference:
                return dataclasses.replace(tx)
        return None

    async def attach_gateway_reference(self, db, transaction_id, gateway_reference):
        tx = self.s.transactions.get(transaction_id)
        if tx is None or tx.status != "pending":
            return None
        tx.gateway_reference = gateway_reference
        return dataclasses.replace(tx)

    async def finalize(self, db, transaction_id, status, error_message, now):
        tx = self.s.transactions.get(transaction_id)
        if tx is None or tx.status != "pending" or tx.expires_at < now:
            return None
        tx.status = status
        tx.error_message = error_message
        tx.settled_at = now
        return dataclasses.replace(tx)

    async def mark_expired(self, db, transaction_id, now):
        tx = self.s.transactions.get(transaction_id)
        if tx is None or tx.status != "pending" or not tx.expires_at < now:
            return None
        tx.status = "expired"
        tx.settled_at = now
        return dataclasses.replace(tx)

    async def expire_stale_pending(self, db, now):
        expired = []
        for tx in self.s.transactions.values():
            if tx.status == "pending" and tx.expires_at < now:
                tx.status = "expired"
                tx.settled_at = now
                expired.append(tx.id)
        return expired

    async def list_transactions(self, db, status, limit):
        rows = [t for t in self.s.transactions.values() if status is None or t.status == status]
        rows.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return [dataclasses.replace(t) for t in rows[:limit]]


class FakeSettlementEffectRepository(_Repo):
    async def enqueue(self, db, transaction, package):
        if transaction.id in self.s.effects:
            raise SQLAlchemyError("duplicate key value violates unique constraint")
        effect = SettlementEffect(
            transaction_id=transaction.id,
            effect_type=package.effect_type.value,
            listing_id=transaction.listing_id,
            owner_id=transaction.user_id,
            duration_days=package.duration_days,
            settled_at=transaction.settled_at,
        )
        self.s.effects[transaction.id] = effect
        return dataclasses.replace(effect)

    async def claim(self, db, transaction_id, now):
        effect = self.s.effects.get(transaction_id)
        if effect is None or effect.applied_at is not None:
            return None
        effect.applied_at = now
        effect.attempts += 1
        return dataclasses.replace(effect)

    async def record_failure(self, db, transaction_id, error):
        effect = self.s.effects.get(transaction_id)
        if effect is not None and effect.applied_at is None:
            effect.attempts += 1
            effect.last_error = error[:1000]

    async def list_unapplied(self, db, limit):
        rows = [e for e in self.s.effects.values() if e.applied_at is None]
        rows.sort(key=lambda e: (e.settled_at, e.transaction_id))
        return [dataclasses.replace(e) for e in rows[:limit]]


class FakeListingRepository(_Repo):
    def __init__(self, store: "FakeStore") -> None:
        super().__init__(store)
        self.fail_apply_boost = False

    async def get_listing(self, db, listing_id):
        listing = self.s.listings.get(listing_id)
        return dataclasses.replace(listing) if listing else None

    async def apply_boost(self, db, listing_id, premium_until):
        if self.fail_apply_boost:
            raise SQLAlchemyError("connection reset while boosting")
        listing = self.s.listings.get(listing_id)
        if listing is None:
            return None
        listing.is_premium = True
        listing.premium_until = premium_until
        return dataclasses.replace(listing)

    async def clear_boost(self, db, listing_id):
        listing = self.s.listings.get(listing_id)
        if listing is None or not listing.is_premium:
            return None
        previous = listing.premium_until
        listing.is_premium = False
        listing.premium_until = None
        return DemotedListing(listing.id, listing.seller_id, previous)

    async def demote_expired(self, db, now):
        demoted = []
        for listing in self.s.listings.values():
            if (
                listing.is_premium
                and listing.premium_until is not None
                and listing.premium_until <= now
            ):
                demoted.append(DemotedListing(listing.id, listing.seller_id, listing.premium_until))
                listing.is_premium = False
                listing.premium_until = None
        return demoted

    async def list_premium(self, db, limit):
        rows = [l for l in self.s.listings.values() if l.is_premium and l.status == "active"]
        rows.sort(key=lambda l: l.premium_until, reverse=True)
        return [dataclasses.replace(l) for l in rows[:limit]]


class FakeTickerRepository(_Repo):
    def __init__(self, store: "FakeStore") -> None:
        super().__init__(store)
        self.fail = False

    async def get_slot(self, db):
        slot = dataclasses.replace(self.s.ticker)
        listing = self.s.listings.get(slot.current_listing_id or "")
        slot.listing_title = listing.title if listing else None
        return slot

    async def reassign(self, db, listing_id, owner_id, claimed_at):
        if self.fail:
            raise SQLAlchemyError("lock timeout on ticker_spot")
        previous = self.s.ticker
        if previous.claimed_at is not None and previous.claimed_at > claimed_at:
            return None
        self.s.ticker = TickerSlot(
            current_listing_id=listing_id, owner_id=owner_id, claimed_at=claimed_at
        )
        return TickerReassignment(
            slot=dataclasses.replace(self.s.ticker),
            previous_owner_id=previous.owner_id,
            previous_listing_id=previous.current_listing_id,
        )


class FakeNotificationRepository(_Repo):
    def __init__(self, store: "FakeStore") -> None:
        super().__init__(store)
        self.fail = False

    async def notify_best_effort(self, db, draft):
        if self.fail:
            return False
        self.s.notifications.append(draft)
        return True


class FakeAuditRepository(_Repo):
    async def record(self, db, listing_id, action, reason, actor_id, previous_premium_until):
        self.s.audit.append(
            {
                "listing_id": listing_id,
                "action": action,
                "reason": reason,
                "actor_id": actor_id,
                "previous_premium_until": previous_premium_until,
            }
        )


class FakeStore:
    def __init__(self) -> None:
        self.state = FakeState()
        self.snapshot = copy.deepcopy(self.state)
        self.db = FakeSession(self)
        self.packages = FakePackageRepository(self)
        self.transactions = FakeTransactionRepository(self)
        self.effects = FakeSettlementEffectRepository(self)
        self.listings = FakeListingRepository(self)
        self.ticker = FakeTickerRepository(self)
        self.notifications = FakeNotificationRepository(self)
        self.audit = FakeAuditRepository(self)

    def seed(self, *items: Package | Listing | Transaction) -> None:
        for item in items:
            if isinstance(item, Package):
                self.state.packages[item.id] = item
            elif isinstance(item, Listing):
                self.state.listings[item.id] = item
            else:
                self.state.transactions[item.id] = item
        self.snapshot = copy.deepcopy(self.state)

    def listing(self, listing_id: str) -> Listing:
        return self.state.listings[listing_id]

    def transaction(self, transaction_id: str) -> Transaction:
        return self.state.transactions[transaction_id]


def make_listing(listing_id: str, seller_id: str, status: str = "active") -> Listing:
    return Listing(
        id=listing_id,
        seller_id=seller_id,
        title=f"Listing {listing_id}",
        status=status,
        is_premium=False,
        premium_until=None,
    )


@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    s.seed(
        Package("pkg_ticker_star", "Ticker Star", 200, 0, True),
        Package("pkg_boost_7d", "Boost 7 jours", 2000, 7, True),
        Package("pkg_retired", "Boost 1 jour", 500, 1, False),
        make_listing("lst-a", "user-a"),
        make_listing("lst-b", "user-b"),
        make_listing("lst-a-draft", "user-a", status="pending"),
    )
    return s


@pytest.fixture
def gateway() -> AsyncMock:
    return AsyncMock(spec=PayGateClient)


@pytest.fixture
def services(store: FakeStore, gateway: AsyncMock) -> SimpleNamespace:
    """Every application service wired to one FakeStore."""
    ticker = TickerService(
        ticker_repo=store.ticker,
        package_repo=store.packages,
        notification_repo=store.notifications,
    )
    applier = SettlementEffectApplier(
        effect_repo=store.effects,
        listing_repo=store.listings,
        ticker_service=ticker,
        notification_repo=store.notifications,
    )
    settlement = SettlementService(
        tx_repo=store.transactions,
        package_repo=store.packages,
        effect_repo=store.effects,
        applier=applier,
    )
    return SimpleNamespace(
        ticker=ticker,
        applier=applier,
        settlement=settlement,
        payments=PaymentApplicationService(
            tx_repo=store.transactions,
            package_repo=store.packages,
            listing_repo=store.listings,
            gateway=gateway,
            settlement=settlement,
        ),
        ticker_claim=TickerClaimService(
            tx_repo=store.transactions,
            package_repo=store.packages,
            listing_repo=store.listings,
            ticker_repo=store.ticker,
            settlement=settlement,
        ),
        expiry=ExpiryService(
            listing_repo=store.listings,
            tx_repo=store.transactions,
            audit_repo=store.audit,
            notification_repo=store.notifications,
            effect_repo=store.effects,
            applier=applier,
        ),
        admin=AdminService(
            listing_repo=store.listings,
            audit_repo=store.audit,
            tx_repo=store.transactions,
        ),
    )
