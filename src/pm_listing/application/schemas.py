"""Pydantic schemas for pm_listing API responses."""

from pydantic import BaseModel

from src.pm_common.datetime_utils import iso_or_none
from src.pm_listing.domain.models import Listing


class PremiumListingItem(BaseModel):
    id: str
    seller_id: str
    title: str
    status: str
    premium_until: str | None

    @classmethod
    def from_domain(cls, listing: Listing) -> "PremiumListingItem":
        return cls(
            id=listing.id,
            seller_id=listing.seller_id,
            title=listing.title,
            status=listing.status,
            premium_until=iso_or_none(listing.premium_until),
        )


class PremiumListingsResponse(BaseModel):
    items: list[PremiumListingItem]
