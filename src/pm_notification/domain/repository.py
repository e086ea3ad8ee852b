"""Repository Protocol for notifications."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_notification.domain.models import NotificationDraft


class NotificationRepositoryProtocol(Protocol):
    async def notify_best_effort(
        self, db: AsyncSession, draft: NotificationDraft
    ) -> bool: ...
