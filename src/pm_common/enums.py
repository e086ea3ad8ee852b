"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    EXPIRED = "expired"


class GatewayStatus(str, Enum):
    """Status values PayGate sends in its settlement callback."""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class MobileNetwork(str, Enum):
    TMONEY = "tmoney"
    FLOOZ = "flooz"


class EffectType(str, Enum):
    """What a successful settlement does: timed boost or ticker reassignment."""
    BOOST = "boost"
    TICKER = "ticker"


class ListingStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    SOLD = "sold"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class NotificationType(str, Enum):
    TICKER_DETHRONED = "ticker_dethroned"
    BOOST_ACTIVATED = "boost_activated"
    BOOST_EXPIRED = "boost_expired"


class BoostAuditAction(str, Enum):
    ADMIN_EXPIRE = "admin_expire"
    SWEEP_EXPIRE = "sweep_expire"


# Provider literal recorded on transactions created by the direct ticker claim.
TICKER_PROVIDER = "ticker"
TICKER_PLACEHOLDER_PHONE = "00000000"
