"""Unit tests for TickerService and TickerClaimService."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from src.pm_boost.application.schemas import TickerClaimRequest
from src.pm_common.errors import (
    ForbiddenError,
    ListingNotApprovedError,
    ListingNotOwnedError,
    TickerClaimDisabledError,
    TickerPackageNotFoundError,
)

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class TestReassign:
    async def test_vacant_slot_sends_no_notification(self, store, services) -> None:
        result = await services.ticker.reassign(store.db, "lst-a", "user-a", T0)
        assert result.previous_owner_id is None
        assert store.state.notifications == []

    async def test_new_owner_dethrones_previous(self, store, services) -> None:
        await services.ticker.reassign(store.db, "lst-a", "user-a", T0)
        result = await services.ticker.reassign(store.db, "lst-b", "user-b", T0 + timedelta(1))

        assert result.dethroned_owner_id == "user-a"
        assert (result.slot.current_listing_id, result.slot.owner_id) == ("lst-b", "user-b")
        (note,) = store.state.notifications
        assert note.user_id == "user-a"
        assert note.type.value == "ticker_dethroned"

    async def test_same_owner_is_not_notified(self, store, services) -> None:
        await services.ticker.reassign(store.db, "lst-a", "user-a", T0)
        await services.ticker.reassign(store.db, "lst-a-draft", "user-a", T0)
        assert store.state.notifications == []

    async def test_notification_failure_does_not_undo_reassignment(
        self, store, services
    ) -> None:
        await services.ticker.reassign(store.db, "lst-a", "user-a", T0)
        store.notifications.fail = True

        await services.ticker.reassign(store.db, "lst-b", "user-b", T0)

        assert store.state.ticker.owner_id == "user-b"
        assert store.state.notifications == []

    async def test_older_claim_is_superseded(self, store, services) -> None:
        await services.ticker.reassign(store.db, "lst-b", "user-b", T0 + timedelta(minutes=5))

        result = await services.ticker.reassign(store.db, "lst-a", "user-a", T0)

        assert result is None
        slot = store.state.ticker
        assert (slot.current_listing_id, slot.owner_id) == ("lst-b", "user-b")
        assert store.state.notifications == []

    async def test_price_lookup_failure_still_reassigns_and_notifies(
        self, store, services
    ) -> None:
        await services.ticker.reassign(store.db, "lst-a", "user-a", T0)
        store.packages.fail_ticker_lookup = True

        result = await services.ticker.reassign(store.db, "lst-b", "user-b", T0)

        assert result.dethroned_owner_id == "user-a"
        assert store.state.ticker.owner_id == "user-b"
        (note,) = store.state.notifications
        assert note.user_id == "user-a"
        assert "FCFA" not in note.message

    async def test_get_ticker_includes_listing_title(self, store, services) -> None:
        await services.ticker.reassign(store.db, "lst-a", "user-a", T0)
        result = await services.ticker.get_ticker(store.db)
        assert result.current_listing_id == "lst-a"
        assert result.listing_title == "Listing lst-a"
        assert result.claimed_at == T0.isoformat()


class TestDirectClaim:
    async def test_claim_records_ticker_transaction_and_takes_slot(self, store, services) -> None:
        result = await services.ticker_claim.claim_ticker(
            store.db, "user-a", TickerClaimRequest(listing_id="lst-a", user_id="user-a"), now=T0
        )

        assert result.ticker_updated is True
        tx = store.transaction(result.transaction_id)
        assert tx.status == "success"
        assert tx.provider == "ticker"
        assert tx.phone_number == "00000000"
        assert tx.amount == 200
        assert store.state.ticker.current_listing_id == "lst-a"
        assert store.state.effects[tx.id].applied_at == T0

    async def test_claim_dethrones_current_holder(self, store, services) -> None:
        await services.ticker_claim.claim_ticker(
            store.db, "user-a", TickerClaimRequest(listing_id="lst-a", user_id="user-a"), now=T0
        )
        await services.ticker_claim.claim_ticker(
            store.db, "user-b", TickerClaimRequest(listing_id="lst-b", user_id="user-b"), now=T0
        )
        assert store.state.ticker.owner_id == "user-b"
        assert [n.user_id for n in store.state.notifications] == ["user-a"]

    async def test_unapproved_listing_rejected(self, store, services) -> None:
        with pytest.raises(ListingNotApprovedError):
            await services.ticker_claim.claim_ticker(
                store.db,
                "user-a",
                TickerClaimRequest(listing_id="lst-a-draft", user_id="user-a"),
                now=T0,
            )
        assert store.state.transactions == {}

    async def test_foreign_listing_rejected(self, store, services) -> None:
        with pytest.raises(ListingNotOwnedError):
            await services.ticker_claim.claim_ticker(
                store.db, "user-a", TickerClaimRequest(listing_id="lst-b", user_id="user-a"), now=T0
            )

    async def test_claim_for_another_user_rejected(self, store, services) -> None:
        with pytest.raises(ForbiddenError):
            await services.ticker_claim.claim_ticker(
                store.db, "user-a", TickerClaimRequest(listing_id="lst-b", user_id="user-b"), now=T0
            )

    async def test_missing_ticker_package(self, store, services) -> None:
        store.state.packages.pop("pkg_ticker_star")
        with pytest.raises(TickerPackageNotFoundError):
            await services.ticker_claim.claim_ticker(
                store.db, "user-a", TickerClaimRequest(listing_id="lst-a", user_id="user-a"), now=T0
            )

    async def test_disabled_claim(self, store, services) -> None:
        with patch("src.pm_boost.application.ticker_claim_service.settings") as mock_settings:
            mock_settings.TICKER_DIRECT_CLAIM_ENABLED = False
            with pytest.raises(TickerClaimDisabledError):
                await services.ticker_claim.claim_ticker(
                    store.db,
                    "user-a",
                    TickerClaimRequest(listing_id="lst-a", user_id="user-a"),
                    now=T0,
                )
