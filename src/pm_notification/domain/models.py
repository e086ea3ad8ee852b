"""Domain models for pm_notification."""

from dataclasses import dataclass

from src.pm_common.enums import NotificationType


@dataclass
class NotificationDraft:
    user_id: str
    type: NotificationType
    title: str
    message: str
    link: str | None = None


def ticker_dethroned(previous_owner_id: str, ticker_price: int | None) -> NotificationDraft:
    price_hint = f" for {ticker_price:,} FCFA" if ticker_price else ""
    return NotificationDraft(
        user_id=previous_owner_id,
        type=NotificationType.TICKER_DETHRONED,
        title="You have been dethroned!",
        message=f"Someone took your place in the ticker. Reclaim the throne{price_hint}!",
        link="/",
    )


def boost_activated(user_id: str, listing_id: str, duration_days: int) -> NotificationDraft:
    return NotificationDraft(
        user_id=user_id,
        type=NotificationType.BOOST_ACTIVATED,
        title="Listing boosted!",
        message=f"Your listing is now featured for {duration_days} days.",
        link=f"/listings/{listing_id}",
    )


def boost_expired(user_id: str, listing_id: str) -> NotificationDraft:
    return NotificationDraft(
        user_id=user_id,
        type=NotificationType.BOOST_EXPIRED,
        title="Boost ended",
        message="Your listing's premium boost has ended. Boost it again to stay on top.",
        link=f"/listings/{listing_id}",
    )
