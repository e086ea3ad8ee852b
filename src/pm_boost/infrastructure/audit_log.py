"""BoostAuditRepository — append-only trail of boost removals.

Written by the expiry sweep and by admin force-expire, in the caller's
transaction.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_AUDIT_SQL = text("""
    INSERT INTO boost_audit_log
        (listing_id, action, reason, actor_id, previous_premium_until)
    VALUES
        (:listing_id, :action, :reason, :actor_id, :previous_premium_until)
""")


class BoostAuditRepository:
    async def record(
        self,
        db: AsyncSession,
        listing_id: str,
        action: str,
        reason: str,
        actor_id: str | None,
        previous_premium_until: datetime | None,
    ) -> None:
        await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "listing_id": listing_id,
                "action": action,
                "reason": reason,
                "actor_id": actor_id,
                "previous_premium_until": previous_premium_until,
            },
        )
