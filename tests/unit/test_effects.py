"""Unit tests for SettlementEffectApplier and the outbox retry job."""

from datetime import UTC, datetime, timedelta

from src.pm_boost.application.schemas import WebhookPayload
from src.pm_boost.domain.models import Transaction
from src.pm_common.enums import GatewayStatus

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _pending_boost() -> Transaction:
    return Transaction(
        id="tx-7d",
        listing_id="lst-a",
        user_id="user-a",
        package_id="pkg_boost_7d",
        amount=2000,
        provider="flooz",
        phone_number="99123456",
        status="pending",
        gateway_reference="PG-7D",
        error_message=None,
        expires_at=T0 + timedelta(minutes=2),
        created_at=T0,
    )


def _pending_ticker(tx_id: str, listing_id: str, user_id: str) -> Transaction:
    return Transaction(
        id=tx_id,
        listing_id=listing_id,
        user_id=user_id,
        package_id="pkg_ticker_star",
        amount=200,
        provider="tmoney",
        phone_number="90123456",
        status="pending",
        gateway_reference=f"PG-{tx_id}",
        error_message=None,
        expires_at=T0 + timedelta(minutes=10),
        created_at=T0,
    )


def _success(reference: str = "PG-7D", amount: int = 2000) -> WebhookPayload:
    return WebhookPayload(
        tx_reference=reference, status=GatewayStatus.SUCCESS, amount=amount, phone="99123456"
    )


class TestEffectFailure:
    async def test_failure_keeps_transaction_success(self, store, services) -> None:
        store.seed(_pending_boost())
        store.listings.fail_apply_boost = True

        result = await services.settlement.process_webhook(store.db, _success(), now=T0)

        assert result.status == "success"
        assert store.transaction("tx-7d").status == "success"
        assert store.listing("lst-a").is_premium is False

    async def test_failure_is_recorded_on_outbox_row(self, store, services) -> None:
        store.seed(_pending_boost())
        store.listings.fail_apply_boost = True

        await services.settlement.process_webhook(store.db, _success(), now=T0)

        effect = store.state.effects["tx-7d"]
        assert effect.applied_at is None
        assert effect.attempts == 1
        assert "connection reset" in (effect.last_error or "")

    async def test_failed_attempt_sends_no_notification(self, store, services) -> None:
        store.seed(_pending_boost())
        store.listings.fail_apply_boost = True
        await services.settlement.process_webhook(store.db, _success(), now=T0)
        assert store.state.notifications == []


class TestRetryJob:
    async def test_retry_applies_same_window_as_first_attempt(self, store, services) -> None:
        store.seed(_pending_boost())
        store.listings.fail_apply_boost = True
        await services.settlement.process_webhook(store.db, _success(), now=T0)

        store.listings.fail_apply_boost = False
        result = await services.expiry.retry_settlement_effects(
            store.db, now=T0 + timedelta(hours=3)
        )

        assert (result.attempted, result.applied, result.failed) == (1, 1, 0)
        listing = store.listing("lst-a")
        assert listing.is_premium is True
        assert listing.premium_until == T0 + timedelta(days=7)
        assert store.state.effects["tx-7d"].attempts == 2

    async def test_retry_with_nothing_owed_is_noop(self, store, services) -> None:
        result = await services.expiry.retry_settlement_effects(store.db, now=T0)
        assert (result.attempted, result.applied, result.failed) == (0, 0, 0)

    async def test_retry_counts_repeated_failure(self, store, services) -> None:
        store.seed(_pending_boost())
        store.listings.fail_apply_boost = True
        await services.settlement.process_webhook(store.db, _success(), now=T0)

        result = await services.expiry.retry_settlement_effects(store.db, now=T0)

        assert (result.applied, result.failed) == (0, 1)
        assert store.state.effects["tx-7d"].attempts == 2


class TestApplyDirectly:
    async def test_applying_twice_changes_nothing_the_second_time(self, store, services) -> None:
        store.seed(_pending_boost())
        await services.settlement.process_webhook(store.db, _success(), now=T0)
        before = store.listing("lst-a").premium_until

        applied = await services.applier.apply(store.db, "tx-7d", now=T0 + timedelta(days=1))

        assert applied is True
        assert store.listing("lst-a").premium_until == before
        assert store.state.effects["tx-7d"].attempts == 1

    async def test_missing_listing_is_recorded_as_failure(self, store, services) -> None:
        store.seed(_pending_boost())
        await services.settlement.process_webhook(store.db, _success(), now=T0)
        store.state.effects["tx-7d"].applied_at = None
        store.state.effects["tx-7d"].listing_id = "lst-gone"
        await store.db.commit()

        applied = await services.applier.apply(store.db, "tx-7d", now=T0)

        assert applied is False
        assert "ListingNotFoundError" in (store.state.effects["tx-7d"].last_error or "")


class TestTickerRetryOrdering:
    async def test_retried_older_claim_leaves_newer_holder_in_place(
        self, store, services
    ) -> None:
        store.seed(
            _pending_ticker("tx-old", "lst-a", "user-a"),
            _pending_ticker("tx-new", "lst-b", "user-b"),
        )
        store.ticker.fail = True
        await services.settlement.process_webhook(
            store.db, _success("PG-tx-old", 200), now=T0
        )
        assert store.state.effects["tx-old"].applied_at is None

        store.ticker.fail = False
        later = T0 + timedelta(minutes=5)
        await services.settlement.process_webhook(
            store.db, _success("PG-tx-new", 200), now=later
        )

        result = await services.expiry.retry_settlement_effects(
            store.db, now=T0 + timedelta(hours=1)
        )

        assert (result.attempted, result.applied, result.failed) == (1, 1, 0)
        slot = store.state.ticker
        assert (slot.current_listing_id, slot.owner_id) == ("lst-b", "user-b")
        assert slot.claimed_at == later
        assert store.state.effects["tx-old"].applied_at is not None
        assert store.state.notifications == []

    async def test_retried_claim_still_wins_when_nothing_newer_settled(
        self, store, services
    ) -> None:
        store.seed(_pending_ticker("tx-old", "lst-a", "user-a"))
        store.ticker.fail = True
        await services.settlement.process_webhook(
            store.db, _success("PG-tx-old", 200), now=T0
        )

        store.ticker.fail = False
        await services.expiry.retry_settlement_effects(store.db, now=T0 + timedelta(hours=1))

        slot = store.state.ticker
        assert (slot.current_listing_id, slot.owner_id) == ("lst-a", "user-a")
        assert slot.claimed_at == T0
