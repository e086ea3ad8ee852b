"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Listing
  3xxx: Package
  4xxx: Transaction/Payment
  5xxx: Ticker
  6xxx: Admin/Jobs
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Administrator role required", 403)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(1007, detail, 403)


# --- 2xxx: Listing ---

class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(2001, f"Listing not found: {listing_id}", 404)


class ListingNotOwnedError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(2002, f"Listing {listing_id} does not belong to you", 403)


class ListingNotApprovedError(AppError):
    def __init__(self, listing_id: str, status: str) -> None:
        super().__init__(
            2003,
            f"Listing {listing_id} must be approved to enter the ticker (status={status})",
            422,
        )


class ListingNotBoostedError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(2004, f"Listing {listing_id} has no active boost", 422)


# --- 3xxx: Package ---

class PackageNotFoundError(AppError):
    def __init__(self, package_id: str) -> None:
        super().__init__(3001, f"Package not found or inactive: {package_id}", 404)


class TickerPackageNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "Ticker package not configured", 404)


# --- 4xxx: Transaction/Payment ---

class TransactionNotFoundError(AppError):
    def __init__(self, reference: str) -> None:
        super().__init__(4001, f"Transaction not found: {reference}", 404)


class TransactionExpiredError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4002, f"Transaction expired: {transaction_id}", 410)


class PaymentRejectedError(AppError):
    """Gateway answered but refused the charge (non-zero status code)."""

    def __init__(self, reason: str) -> None:
        super().__init__(4003, f"Payment rejected by gateway: {reason}", 402)


class GatewayUnavailableError(AppError):
    """Gateway unreachable or answered with a non-2xx HTTP status."""

    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Payment gateway error: {detail}", 502)


class InvalidWebhookSignatureError(AppError):
    def __init__(self) -> None:
        super().__init__(4005, "Invalid webhook signature", 401)


class InvalidWebhookPayloadError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4006, f"Invalid webhook payload: {detail}", 400)


# --- 5xxx: Ticker ---

class TickerClaimDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(
            5001, "Direct ticker claim is disabled; pay through /payments/initiate", 409
        )


# --- 6xxx: Admin/Jobs ---

class InvalidCronSecretError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "Invalid or missing cron secret", 401)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
