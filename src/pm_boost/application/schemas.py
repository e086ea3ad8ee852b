"""Pydantic schemas for pm_boost API."""

from pydantic import BaseModel, Field

from src.pm_boost.domain.models import Package, TickerSlot, Transaction
from src.pm_common.currency import fcfa_to_display
from src.pm_common.datetime_utils import iso_or_none
from src.pm_common.enums import GatewayStatus, MobileNetwork

# Togolese mobile numbers: 8 digits, T-Money / Flooz prefixes
PHONE_PATTERN = r"^(90|91|92|93|96|97|98|99)\d{6}$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class InitiatePaymentRequest(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    package_id: str = Field(..., min_length=1, max_length=64)
    phone_number: str = Field(..., pattern=PHONE_PATTERN, description="8-digit local number")
    network: MobileNetwork


class WebhookPayload(BaseModel):
    """Settlement callback body as PayGate posts it."""

    tx_reference: str = Field(..., min_length=1)
    status: GatewayStatus
    amount: int
    phone: str
    network: str | None = None


class TickerClaimRequest(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    user_id: str = Field(..., min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PackageItem(BaseModel):
    id: str
    name: str
    price: int
    price_display: str
    duration_days: int
    kind: str

    @classmethod
    def from_domain(cls, package: Package) -> "PackageItem":
        return cls(
            id=package.id,
            name=package.name,
            price=package.price,
            price_display=fcfa_to_display(package.price),
            duration_days=package.duration_days,
            kind=package.effect_type.value,
        )


class PackageListResponse(BaseModel):
    items: list[PackageItem]


class InitiatePaymentResponse(BaseModel):
    transaction_id: str
    tx_reference: str
    status: str
    amount: int
    amount_display: str
    expires_at: str
    message: str


class PaymentStatusResponse(BaseModel):
    transaction_id: str
    status: str
    error_message: str | None = None
    settled_at: str | None = None
    message: str

    @classmethod
    def from_domain(cls, tx: Transaction, message: str) -> "PaymentStatusResponse":
        return cls(
            transaction_id=tx.id,
            status=tx.status,
            error_message=tx.error_message,
            settled_at=iso_or_none(tx.settled_at),
            message=message,
        )


class WebhookResponse(BaseModel):
    transaction_id: str
    status: str
    message: str


class TickerSlotResponse(BaseModel):
    current_listing_id: str | None
    listing_title: str | None
    owner_id: str | None
    claimed_at: str | None

    @classmethod
    def from_domain(cls, slot: TickerSlot) -> "TickerSlotResponse":
        return cls(
            current_listing_id=slot.current_listing_id,
            listing_title=slot.listing_title,
            owner_id=slot.owner_id,
            claimed_at=iso_or_none(slot.claimed_at),
        )


class TickerClaimResponse(BaseModel):
    transaction_id: str
    status: str
    ticker_updated: bool
    message: str


class ExpireBoostsResponse(BaseModel):
    demoted_count: int
    listing_ids: list[str]
    ran_at: str


class ExpirePendingResponse(BaseModel):
    expired_count: int
    transaction_ids: list[str]
    ran_at: str


class RetryEffectsResponse(BaseModel):
    attempted: int
    applied: int
    failed: int
    ran_at: str
