"""ListingApplicationService — read side of the boost effect.

Read-only; no commit/rollback needed.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_listing.application.schemas import PremiumListingItem, PremiumListingsResponse
from src.pm_listing.domain.repository import ListingRepositoryProtocol
from src.pm_listing.infrastructure.persistence import ListingRepository


class ListingApplicationService:
    def __init__(self, repo: ListingRepositoryProtocol | None = None) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()

    async def list_premium(self, db: AsyncSession, limit: int) -> PremiumListingsResponse:
        listings = await self._repo.list_premium(db, limit)
        return PremiumListingsResponse(
            items=[PremiumListingItem.from_domain(listing) for listing in listings]
        )
