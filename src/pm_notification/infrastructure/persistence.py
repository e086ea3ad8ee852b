"""NotificationRepository — best-effort in-app notifications.

Notifications are a side channel. Each insert runs inside a SAVEPOINT so a
failure rolls back only the notification, never the caller's write.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_notification.domain.models import NotificationDraft

logger = logging.getLogger(__name__)

_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (user_id, type, title, message, link)
    VALUES (:user_id, :type, :title, :message, :link)
""")


class NotificationRepository:
    async def notify_best_effort(
        self, db: AsyncSession, draft: NotificationDraft
    ) -> bool:
        """Insert a notification; return False (and log) instead of raising."""
        try:
            async with db.begin_nested():
                await db.execute(
                    _INSERT_NOTIFICATION_SQL,
                    {
                        "user_id": draft.user_id,
                        "type": draft.type.value,
                        "title": draft.title,
                        "message": draft.message,
                        "link": draft.link,
                    },
                )
        except SQLAlchemyError:
            logger.exception(
                "Notification dropped: type=%s user=%s", draft.type.value, draft.user_id
            )
            return False
        return True
