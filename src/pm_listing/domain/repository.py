"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_listing.domain.models import DemotedListing, Listing


class ListingRepositoryProtocol(Protocol):
    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def apply_boost(
        self, db: AsyncSession, listing_id: str, premium_until: datetime
    ) -> Listing | None: ...

    async def clear_boost(
        self, db: AsyncSession, listing_id: str
    ) -> DemotedListing | None: ...

    async def demote_expired(
        self, db: AsyncSession, now: datetime
    ) -> list[DemotedListing]: ...

    async def list_premium(self, db: AsyncSession, limit: int) -> list[Listing]: ...
