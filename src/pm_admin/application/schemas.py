"""Pydantic schemas for pm_admin API."""

from pydantic import BaseModel, Field

from src.pm_boost.domain.models import Transaction
from src.pm_common.currency import fcfa_to_display
from src.pm_common.datetime_utils import iso_or_none


class ForceExpireRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ForceExpireResponse(BaseModel):
    listing_id: str
    previous_premium_until: str | None
    reason: str
    expired_by: str


class ActiveBoostItem(BaseModel):
    listing_id: str
    title: str
    seller_id: str
    seller_name: str | None
    premium_until: str | None
    package_name: str | None
    amount: int
    hours_remaining: float | None


class BoostStats(BaseModel):
    total_active: int
    total_revenue: int
    total_revenue_display: str
    expiring_soon: int


class ActiveBoostsResponse(BaseModel):
    items: list[ActiveBoostItem]
    stats: BoostStats


class AdminTickerResponse(BaseModel):
    current_listing_id: str | None
    listing_title: str | None
    owner_id: str | None
    owner_name: str | None
    claimed_at: str | None


class TransactionItem(BaseModel):
    id: str
    listing_id: str
    user_id: str
    package_id: str
    amount: int
    amount_display: str
    provider: str
    status: str
    gateway_reference: str | None
    error_message: str | None
    expires_at: str | None
    settled_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            listing_id=tx.listing_id,
            user_id=tx.user_id,
            package_id=tx.package_id,
            amount=tx.amount,
            amount_display=fcfa_to_display(tx.amount),
            provider=tx.provider,
            status=tx.status,
            gateway_reference=tx.gateway_reference,
            error_message=tx.error_message,
            expires_at=iso_or_none(tx.expires_at),
            settled_at=iso_or_none(tx.settled_at),
            created_at=iso_or_none(tx.created_at),
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
