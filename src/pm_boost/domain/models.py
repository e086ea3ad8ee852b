"""Domain models for pm_boost — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import EffectType, TransactionStatus


@dataclass
class Package:
    id: str
    name: str
    price: int            # FCFA
    duration_days: int    # 0 = ticker slot, >0 = timed boost
    active: bool

    @property
    def is_ticker(self) -> bool:
        return self.duration_days == 0

    @property
    def effect_type(self) -> EffectType:
        return EffectType.TICKER if self.is_ticker else EffectType.BOOST


@dataclass
class Transaction:
    id: str
    listing_id: str
    user_id: str
    package_id: str
    amount: int                        # FCFA, copied from package.price at creation
    provider: str                      # tmoney | flooz | ticker
    phone_number: str
    status: str                        # TransactionStatus value
    gateway_reference: str | None
    error_message: str | None
    expires_at: datetime
    created_at: datetime
    settled_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING.value


@dataclass
class TickerSlot:
    current_listing_id: str | None
    owner_id: str | None
    claimed_at: datetime | None
    listing_title: str | None = None

    @property
    def is_vacant(self) -> bool:
        return self.current_listing_id is None


@dataclass
class TickerReassignment:
    """Result of one atomic overwrite of the ticker slot."""

    slot: TickerSlot
    previous_owner_id: str | None
    previous_listing_id: str | None

    @property
    def dethroned_owner_id(self) -> str | None:
        if self.previous_owner_id and self.previous_owner_id != self.slot.owner_id:
            return self.previous_owner_id
        return None


@dataclass
class SettlementEffect:
    """Outbox row: the promotion a successful transaction still owes."""

    transaction_id: str
    effect_type: str                   # EffectType value
    listing_id: str
    owner_id: str
    duration_days: int
    settled_at: datetime
    applied_at: datetime | None = None
    attempts: int = 0
    last_error: str | None = None

    @property
    def is_applied(self) -> bool:
        return self.applied_at is not None
