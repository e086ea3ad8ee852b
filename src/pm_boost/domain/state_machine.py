"""Transaction lifecycle rules.

    pending ──► success
       │──────► failed
       └──────► expired

A transaction leaves `pending` exactly once. Terminal rows are never written
again; every transition is a conditional UPDATE guarded by
`status = 'pending'`, so these helpers only decide *which* transition to ask
the database for.
"""

from datetime import datetime, timedelta

from src.pm_common.datetime_utils import add_days
from src.pm_common.enums import GatewayStatus, TransactionStatus

TERMINAL_STATUSES: frozenset[str] = frozenset(
    {
        TransactionStatus.SUCCESS.value,
        TransactionStatus.FAILED.value,
        TransactionStatus.EXPIRED.value,
    }
)

FAILED_CALLBACK_MESSAGE = "Payment refused or cancelled"
CANCELLED_MESSAGE = "Payment cancelled by customer"

# PayGate /api/v1/pay response codes
_INITIATE_ERRORS: dict[int, str] = {
    2: "Invalid authentication token",
    4: "Invalid parameters",
    6: "Duplicate transaction",
}

# PayGate /api/v2/status response codes
POLL_SUCCESS = 0
POLL_IN_PROGRESS = 2
POLL_EXPIRED = 4
POLL_CANCELLED = 6


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def compute_expires_at(created_at: datetime, timeout_seconds: int) -> datetime:
    return created_at + timedelta(seconds=timeout_seconds)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    """Late means strictly after expires_at; a callback at the boundary still counts."""
    return now > expires_at


def map_gateway_status(status: GatewayStatus) -> TransactionStatus:
    """Callback status -> terminal status. Anything but `success` is a failure,
    `pending` included: PayGate only calls back once a payment is over."""
    if status == GatewayStatus.SUCCESS:
        return TransactionStatus.SUCCESS
    return TransactionStatus.FAILED


def map_poll_status(code: int) -> tuple[TransactionStatus | None, str | None]:
    """Status-API code -> (terminal status, error message), or (None, None) if still open."""
    if code == POLL_SUCCESS:
        return TransactionStatus.SUCCESS, None
    if code == POLL_EXPIRED:
        return TransactionStatus.EXPIRED, None
    if code == POLL_CANCELLED:
        return TransactionStatus.FAILED, CANCELLED_MESSAGE
    return None, None


def decode_initiate_error(code: int) -> str:
    return _INITIATE_ERRORS.get(code, f"Unknown gateway error (status={code})")


def compute_premium_until(settled_at: datetime, duration_days: int) -> datetime:
    """Boost window is anchored on settlement time, so retries land on the same instant."""
    return add_days(settled_at, duration_days)
