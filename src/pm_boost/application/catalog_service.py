"""PackageCatalogService — read-only package listing. No commit/rollback needed."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.schemas import PackageItem, PackageListResponse
from src.pm_boost.domain.repository import PackageRepositoryProtocol
from src.pm_boost.infrastructure.persistence import PackageRepository


class PackageCatalogService:
    def __init__(self, repo: PackageRepositoryProtocol | None = None) -> None:
        self._repo: PackageRepositoryProtocol = repo or PackageRepository()

    async def list_packages(self, db: AsyncSession) -> PackageListResponse:
        packages = await self._repo.list_active_packages(db)
        return PackageListResponse(items=[PackageItem.from_domain(p) for p in packages])
