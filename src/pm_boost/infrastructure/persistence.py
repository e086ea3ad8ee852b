"""Package, Transaction and SettlementEffect repositories.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER (application service) commits or rolls back.
Every transition out of `pending` is one UPDATE guarded by `status = 'pending'`;
zero returned rows means another writer got there first.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.domain.models import Package, SettlementEffect, Transaction
from src.pm_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL: packages
# ---------------------------------------------------------------------------

_PACKAGE_COLUMNS = "id, name, price, duration_days, active"

_GET_PACKAGE_SQL = text(f"""
    SELECT {_PACKAGE_COLUMNS}
    FROM boost_packages
    WHERE id = :package_id
""")

_GET_ACTIVE_PACKAGE_SQL = text(f"""
    SELECT {_PACKAGE_COLUMNS}
    FROM boost_packages
    WHERE id = :package_id AND active
""")

_GET_TICKER_PACKAGE_SQL = text(f"""
    SELECT {_PACKAGE_COLUMNS}
    FROM boost_packages
    WHERE duration_days = 0 AND active
    ORDER BY price, id
    LIMIT 1
""")

_LIST_ACTIVE_PACKAGES_SQL = text(f"""
    SELECT {_PACKAGE_COLUMNS}
    FROM boost_packages
    WHERE active
    ORDER BY duration_days, price, id
""")

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_TX_COLUMNS = """
    id, listing_id, user_id, package_id, amount, provider, phone_number,
    status, gateway_reference, error_message, expires_at, created_at, settled_at
"""

_INSERT_TX_SQL = text(f"""
    INSERT INTO transactions
        (listing_id, user_id, package_id, amount, provider, phone_number,
         status, expires_at, created_at)
    VALUES
        (:listing_id, :user_id, :package_id, :amount, :provider, :phone_number,
         'pending', :expires_at, :created_at)
    RETURNING {_TX_COLUMNS}
""")

_GET_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE id = :transaction_id
""")

_GET_TX_BY_REF_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE gateway_reference = :gateway_reference
""")

_ATTACH_REF_SQL = text(f"""
    UPDATE transactions
    SET gateway_reference = :gateway_reference
    WHERE id = :transaction_id AND status = 'pending'
    RETURNING {_TX_COLUMNS}
""")

# A transaction past its expires_at can only become `expired`.
_FINALIZE_SQL = text(f"""
    UPDATE transactions
    SET status = :status,
        error_message = :error_message,
        settled_at = :now
    WHERE id = :transaction_id
      AND status = 'pending'
      AND expires_at >= :now
    RETURNING {_TX_COLUMNS}
""")

_MARK_EXPIRED_SQL = text(f"""
    UPDATE transactions
    SET status = 'expired',
        settled_at = :now
    WHERE id = :transaction_id
      AND status = 'pending'
      AND expires_at < :now
    RETURNING {_TX_COLUMNS}
""")

_EXPIRE_STALE_SQL = text("""
    UPDATE transactions
    SET status = 'expired',
        settled_at = :now
    WHERE status = 'pending'
      AND expires_at < :now
    RETURNING id
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: settlement effects (outbox)
# ---------------------------------------------------------------------------

_EFFECT_COLUMNS = """
    transaction_id, effect_type, listing_id, owner_id, duration_days,
    settled_at, applied_at, attempts, last_error
"""

_INSERT_EFFECT_SQL = text(f"""
    INSERT INTO settlement_effects
        (transaction_id, effect_type, listing_id, owner_id, duration_days, settled_at)
    VALUES
        (:transaction_id, :effect_type, :listing_id, :owner_id, :duration_days, :settled_at)
    RETURNING {_EFFECT_COLUMNS}
""")

# The row lock taken here is held until the effect's transaction commits, so
# a concurrent applier blocks, then sees applied_at set and matches nothing.
_CLAIM_EFFECT_SQL = text(f"""
    UPDATE settlement_effects
    SET applied_at = :now,
        attempts = attempts + 1
    WHERE transaction_id = :transaction_id
      AND applied_at IS NULL
    RETURNING {_EFFECT_COLUMNS}
""")

_RECORD_EFFECT_FAILURE_SQL = text("""
    UPDATE settlement_effects
    SET attempts = attempts + 1,
        last_error = :error
    WHERE transaction_id = :transaction_id
      AND applied_at IS NULL
""")

_LIST_UNAPPLIED_SQL = text(f"""
    SELECT {_EFFECT_COLUMNS}
    FROM settlement_effects
    WHERE applied_at IS NULL
    ORDER BY settled_at, transaction_id
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_package(row: object) -> Package:
    return Package(
        id=str(row.id),  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        duration_days=row.duration_days,  # type: ignore[attr-defined]
        active=row.active,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=str(row.id),  # type: ignore[attr-defined]
        listing_id=str(row.listing_id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        package_id=str(row.package_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        provider=row.provider,  # type: ignore[attr-defined]
        phone_number=row.phone_number,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        gateway_reference=row.gateway_reference,  # type: ignore[attr-defined]
        error_message=row.error_message,  # type: ignore[attr-defined]
        expires_at=row.expires_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
    )


def _row_to_effect(row: object) -> SettlementEffect:
    return SettlementEffect(
        transaction_id=str(row.transaction_id),  # type: ignore[attr-defined]
        effect_type=row.effect_type,  # type: ignore[attr-defined]
        listing_id=str(row.listing_id),  # type: ignore[attr-defined]
        owner_id=str(row.owner_id),  # type: ignore[attr-defined]
        duration_days=row.duration_days,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
        applied_at=row.applied_at,  # type: ignore[attr-defined]
        attempts=row.attempts,  # type: ignore[attr-defined]
        last_error=row.last_error,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class PackageRepository:
    """Read-only catalogue queries."""

    async def get_package(self, db: AsyncSession, package_id: str) -> Package | None:
        result = await db.execute(_GET_PACKAGE_SQL, {"package_id": package_id})
        row = result.fetchone()
        return _row_to_package(row) if row else None

    async def get_active_package(
        self, db: AsyncSession, package_id: str
    ) -> Package | None:
        result = await db.execute(_GET_ACTIVE_PACKAGE_SQL, {"package_id": package_id})
        row = result.fetchone()
        return _row_to_package(row) if row else None

    async def get_ticker_package(self, db: AsyncSession) -> Package | None:
        result = await db.execute(_GET_TICKER_PACKAGE_SQL)
        row = result.fetchone()
        return _row_to_package(row) if row else None

    async def list_active_packages(self, db: AsyncSession) -> list[Package]:
        result = await db.execute(_LIST_ACTIVE_PACKAGES_SQL)
        return [_row_to_package(row) for row in result.fetchall()]


class TransactionRepository:
    """Transaction ledger. Rows are inserted pending and finalised exactly once."""

    async def create_pending(
        self,
        db: AsyncSession,
        listing_id: str,
        user_id: str,
        package_id: str,
        amount: int,
        provider: str,
        phone_number: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Transaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "listing_id": listing_id,
                "user_id": user_id,
                "package_id": package_id,
                "amount": amount,
                "provider": provider,
                "phone_number": phone_number,
                "created_at": created_at,
                "expires_at": expires_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows — this should never happen")
        return _row_to_transaction(row)

    async def get_by_id(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None:
        result = await db.execute(_GET_TX_SQL, {"transaction_id": transaction_id})
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def get_by_gateway_reference(
        self, db: AsyncSession, gateway_reference: str
    ) -> Transaction | None:
        result = await db.execute(
            _GET_TX_BY_REF_SQL, {"gateway_reference": gateway_reference}
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def attach_gateway_reference(
        self, db: AsyncSession, transaction_id: str, gateway_reference: str
    ) -> Transaction | None:
        result = await db.execute(
            _ATTACH_REF_SQL,
            {"transaction_id": transaction_id, "gateway_reference": gateway_reference},
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def finalize(
        self,
        db: AsyncSession,
        transaction_id: str,
        status: str,
        error_message: str | None,
        now: datetime,
    ) -> Transaction | None:
        result = await db.execute(
            _FINALIZE_SQL,
            {
                "transaction_id": transaction_id,
                "status": status,
                "error_message": error_message,
                "now": now,
            },
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def mark_expired(
        self, db: AsyncSession, transaction_id: str, now: datetime
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_EXPIRED_SQL, {"transaction_id": transaction_id, "now": now}
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def expire_stale_pending(self, db: AsyncSession, now: datetime) -> list[str]:
        result = await db.execute(_EXPIRE_STALE_SQL, {"now": now})
        return [str(row.id) for row in result.fetchall()]

    async def list_transactions(
        self, db: AsyncSession, status: str | None, limit: int
    ) -> list[Transaction]:
        result = await db.execute(_LIST_TX_SQL, {"status": status, "limit": limit})
        return [_row_to_transaction(row) for row in result.fetchall()]


class SettlementEffectRepository:
    """Outbox of promotions owed by successful transactions."""

    async def enqueue(
        self, db: AsyncSession, transaction: Transaction, package: Package
    ) -> SettlementEffect:
        if transaction.settled_at is None:
            raise InternalError(f"Transaction {transaction.id} has no settled_at")
        result = await db.execute(
            _INSERT_EFFECT_SQL,
            {
                "transaction_id": transaction.id,
                "effect_type": package.effect_type.value,
                "listing_id": transaction.listing_id,
                "owner_id": transaction.user_id,
                "duration_days": package.duration_days,
                "settled_at": transaction.settled_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Settlement effect insert returned no rows — this should never happen")
        return _row_to_effect(row)

    async def claim(
        self, db: AsyncSession, transaction_id: str, now: datetime
    ) -> SettlementEffect | None:
        result = await db.execute(
            _CLAIM_EFFECT_SQL, {"transaction_id": transaction_id, "now": now}
        )
        row = result.fetchone()
        return _row_to_effect(row) if row else None

    async def record_failure(
        self, db: AsyncSession, transaction_id: str, error: str
    ) -> None:
        await db.execute(
            _RECORD_EFFECT_FAILURE_SQL,
            {"transaction_id": transaction_id, "error": error[:1000]},
        )

    async def list_unapplied(
        self, db: AsyncSession, limit: int
    ) -> list[SettlementEffect]:
        result = await db.execute(_LIST_UNAPPLIED_SQL, {"limit": limit})
        return [_row_to_effect(row) for row in result.fetchall()]
