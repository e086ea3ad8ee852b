"""Domain models for pm_listing — the boost-relevant subset of a listing."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import ListingStatus


@dataclass
class Listing:
    id: str
    seller_id: str
    title: str
    status: str
    is_premium: bool
    premium_until: datetime | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_approved(self) -> bool:
        # Moderation approval moves a listing from pending to active.
        return self.status == ListingStatus.ACTIVE.value

    def is_owned_by(self, user_id: str) -> bool:
        return self.seller_id == user_id


@dataclass
class DemotedListing:
    """Row returned by a demotion UPDATE: the listing and what it lost."""

    id: str
    seller_id: str
    previous_premium_until: datetime | None
