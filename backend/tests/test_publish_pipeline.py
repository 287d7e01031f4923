"""
Publish Pipeline Tests

Tests for the six-step publish flow with mocked eBay collaborators.
"""

import logging

import pytest
from unittest.mock import MagicMock

from schemas import PolicyIds, StepName, StepStatus
from integrations.ebay import publish as publish_module
from integrations.ebay.client import ApiResponse
from integrations.ebay.errors import (
    ErrorCode,
    OFFER_SHIPPING_LOCATION_MESSAGE,
    PUBLISH_SHIPPING_LOCATION_MESSAGE,
    build_publish_error,
)
from integrations.ebay.publish import (
    PublishPipeline,
    SellerAccount,
    StepTracker,
    get_listing_status,
    parse_listing_fees,
)

CONNECTED = SellerAccount(connected=True)


def _statuses(result):
    return [s.status for s in result.steps]


@pytest.fixture
def make_pipeline(ebay_client, location_service, policy_service):
    def _make(**kwargs):
        kwargs.setdefault("fees_enabled", False)
        kwargs.setdefault("marketplace_id", "EBAY_US")
        kwargs.setdefault("listing_url_builder", lambda listing_id: f"https://www.ebay.com/itm/{listing_id}")
        return PublishPipeline(
            client=ebay_client,
            location_service=location_service,
            policy_service=policy_service,
            **kwargs
        )
    return _make


class TestPublishSuccess:
    """Test the happy path."""

    @pytest.mark.asyncio
    async def test_all_steps_succeed_with_fees_disabled(self, make_pipeline, sample_draft):
        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.success
        assert result.error is None
        assert _statuses(result) == [
            StepStatus.COMPLETE,
            StepStatus.COMPLETE,
            StepStatus.COMPLETE,
            StepStatus.COMPLETE,
            StepStatus.SKIPPED,
            StepStatus.COMPLETE,
        ]
        assert result.listing_id == "110012345678"
        assert result.listing_url == "https://www.ebay.com/itm/110012345678"
        assert result.offer_id == "OFFER-1"
        assert result.sku.endswith("-LISTING123")
        assert result.published_at is not None
        assert result.trace_id

    @pytest.mark.asyncio
    async def test_step_artifacts_recorded(self, make_pipeline, sample_draft):
        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.steps[0].merchant_location_key == "WAREHOUSE-1"
        assert result.steps[1].item_sku == result.sku
        assert result.steps[3].offer_id == "OFFER-1"
        assert result.steps[5].listing_id == "110012345678"

    @pytest.mark.asyncio
    async def test_offer_payload(self, make_pipeline, sample_draft, ebay_client):
        policies = PolicyIds(fulfillment_policy_id="F-9", payment_policy_id="P-9", return_policy_id="R-9")

        await make_pipeline().publish(sample_draft, policies, account=CONNECTED)

        offer = ebay_client.create_offer.call_args[0][0]
        assert offer["merchantLocationKey"] == "WAREHOUSE-1"
        assert offer["pricingSummary"]["price"]["value"] == "79.99"
        assert offer["listingPolicies"]["returnPolicyId"] == "R-9"

    @pytest.mark.asyncio
    async def test_supplied_policies_skip_default_lookup(self, make_pipeline, sample_draft, policy_service):
        policies = PolicyIds(fulfillment_policy_id="F-9", payment_policy_id="P-9", return_policy_id="R-9")

        await make_pipeline().publish(sample_draft, policies, account=CONNECTED)

        policy_service.get_default_policies.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_reuses_sku(self, make_pipeline, sample_draft, ebay_client):
        pipeline = make_pipeline()

        first = await pipeline.publish(sample_draft, account=CONNECTED)
        second = await pipeline.publish(sample_draft, account=CONNECTED)

        skus = [c[0][0] for c in ebay_client.create_or_replace_inventory_item.call_args_list]
        assert skus[0] == skus[1]
        assert first.sku == second.sku

    @pytest.mark.asyncio
    async def test_fees_recorded_when_enabled(self, make_pipeline, sample_draft):
        result = await make_pipeline(fees_enabled=True).publish(sample_draft, account=CONNECTED)

        assert result.success
        assert result.steps[4].status == StepStatus.COMPLETE
        assert result.fees.marketplace_id == "EBAY_US"
        assert [f.fee_type for f in result.fees.listing_fees] == ["InsertionFee", "FinalValueFee"]
        assert result.fees.total_fee.value == "10.40"
        assert result.fees.total_fee.currency == "USD"

    @pytest.mark.asyncio
    async def test_fee_failure_does_not_block_publish(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.get_listing_fees.return_value = ApiResponse(status_code=500, error_message="Internal error")

        result = await make_pipeline(fees_enabled=True).publish(sample_draft, account=CONNECTED)

        assert result.success
        assert result.steps[4].status == StepStatus.SKIPPED
        assert result.steps[4].error == "Internal error"
        assert result.fees is None

    @pytest.mark.asyncio
    async def test_fee_call_exception_does_not_block_publish(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.get_listing_fees.side_effect = ConnectionError("Connection reset by peer")

        result = await make_pipeline(fees_enabled=True).publish(sample_draft, account=CONNECTED)

        assert result.success
        assert result.steps[4].status == StepStatus.SKIPPED
        assert result.steps[5].status == StepStatus.COMPLETE
        assert result.listing_id == "110012345678"
        assert result.fees is None

    @pytest.mark.asyncio
    async def test_warnings_collected(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.create_offer.return_value = ApiResponse(status_code=201, data={
            "offerId": "OFFER-1",
            "warnings": [{"errorId": 25401, "message": "Item specific Color is recommended"}],
        })

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.warnings[0].code == "25401"
        assert result.warnings[0].message == "Item specific Color is recommended"


class TestPublishFailures:
    """Test that each failure stops the run at the right step."""

    @pytest.mark.asyncio
    async def test_not_connected(self, make_pipeline, sample_draft, location_service):
        result = await make_pipeline().publish(sample_draft, account=SellerAccount(connected=False))

        assert not result.success
        assert result.error.code == "EBAY_NOT_CONNECTED"
        assert result.error.action == "reauth"
        assert all(s == StepStatus.PENDING for s in _statuses(result))
        location_service.ensure_location_exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_reauth_required(self, make_pipeline, sample_draft):
        account = SellerAccount(connected=True, needs_reauth=True)

        result = await make_pipeline().publish(sample_draft, account=account)

        assert result.error.code == "EBAY_REAUTH_REQUIRED"

    @pytest.mark.asyncio
    async def test_validation_failure_never_enters_pipeline(self, make_pipeline, sample_draft, location_service):
        draft = sample_draft.model_copy(update={"title": "A" * 81})

        result = await make_pipeline().publish(draft, account=CONNECTED)

        assert not result.success
        assert result.error.code == "VALIDATION_TITLE_TOO_LONG"
        assert result.error.details["errors"][0]["actual"] == 81
        assert all(s == StepStatus.PENDING for s in _statuses(result))
        location_service.ensure_location_exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_prepublish_check_failure(self, make_pipeline, sample_draft, location_service):
        validator = MagicMock()
        validator.check.return_value = build_publish_error(
            ErrorCode.MISSING_ITEM_SPECIFICS,
            "Missing required item specifics: Color",
            details={"missing_aspects": ["Color"]},
        )

        result = await make_pipeline(prepublish_validator=validator).publish(sample_draft, account=CONNECTED)

        assert result.error.code == "MISSING_ITEM_SPECIFICS"
        assert result.error.action == "edit_item_specifics"
        location_service.ensure_location_exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_location_not_enabled(self, make_pipeline, sample_draft, location_service, ebay_client):
        location_service.get_location_by_key.return_value = {"success": True, "status": "DISABLED", "error": None}

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert not result.success
        assert result.steps[0].status == StepStatus.FAILED
        assert result.error.code == "LOCATION_NOT_ENABLED"
        assert result.error.details["status"] == "DISABLED"
        assert _statuses(result)[1:] == [StepStatus.PENDING] * 5
        ebay_client.create_or_replace_inventory_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_location(self, make_pipeline, sample_draft, location_service):
        location_service.ensure_location_exists.return_value = {
            "success": False, "location_key": None, "error": "Shipping location required to publish listings"
        }

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "LOCATION_REQUIRED"
        assert result.error.action == "create_location"
        assert result.steps[0].error == "Shipping location required to publish listings"

    @pytest.mark.asyncio
    async def test_location_auth_failure_asks_for_reauth(self, make_pipeline, sample_draft, location_service):
        location_service.ensure_location_exists.return_value = {
            "success": False, "location_key": None, "error": "Invalid access token", "status_code": 401
        }

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "EBAY_REAUTH_REQUIRED"
        assert result.error.action == "reauth"
        assert result.steps[0].status == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_location_lookup_auth_failure(self, make_pipeline, sample_draft, location_service):
        location_service.get_location_by_key.return_value = {
            "success": False, "status": None, "error": "Forbidden", "status_code": 403
        }

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "EBAY_REAUTH_REQUIRED"

    @pytest.mark.asyncio
    async def test_offer_without_location_key(self, make_pipeline, sample_draft, ebay_client):
        run = publish_module._PublishRun(make_pipeline(), sample_draft, None, CONNECTED)
        run.sku = "RESELLR-LISTING123"
        run.resolved_policies = PolicyIds(
            fulfillment_policy_id="FULFILLMENT-1", payment_policy_id="PAYMENT-1", return_policy_id="RETURN-1"
        )

        result = await run._offer()

        assert result.error.code == "EBAY_MERCHANT_LOCATION_KEY_MISSING"
        assert result.error.action == "create_location"
        assert result.steps[3].status == StepStatus.FAILED
        ebay_client.create_offer.assert_not_called()

    @pytest.mark.asyncio
    async def test_inventory_failure(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.create_or_replace_inventory_item.return_value = ApiResponse(
            status_code=400, error_message="Invalid condition", error_id="25059"
        )

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "INVENTORY_ITEM_FAILED"
        assert result.error.ebay_error_id == "25059"
        assert result.steps[1].status == StepStatus.FAILED
        assert result.sku is None
        ebay_client.create_offer.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_token_during_inventory(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.create_or_replace_inventory_item.return_value = ApiResponse(
            status_code=401, error_message="Invalid access token"
        )

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "EBAY_REAUTH_REQUIRED"
        assert result.error.action == "reauth"

    @pytest.mark.asyncio
    async def test_missing_default_policy(self, make_pipeline, sample_draft, policy_service):
        policy_service.get_default_policies.return_value = PolicyIds(
            fulfillment_policy_id="F-1", payment_policy_id="P-1"
        )

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "POLICIES_MISSING"
        assert result.error.details == {"missing_policies": ["return_policy_id"]}
        assert result.steps[2].status == StepStatus.FAILED
        assert result.sku is not None

    @pytest.mark.asyncio
    async def test_offer_shipping_location_message_rewritten(self, make_pipeline, sample_draft, ebay_client, caplog):
        raw = "Shipping location required. Please add a ship-from location."
        ebay_client.create_offer.return_value = ApiResponse(status_code=400, error_message=raw, error_id="25002")

        with caplog.at_level(logging.ERROR):
            result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "OFFER_CREATE_FAILED"
        assert result.error.message == OFFER_SHIPPING_LOCATION_MESSAGE
        assert result.steps[3].status == StepStatus.FAILED
        assert raw in caplog.text

    @pytest.mark.asyncio
    async def test_offer_location_error_id(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.create_offer.return_value = ApiResponse(
            status_code=400, error_message="Invalid merchantLocationKey", error_id="25003"
        )

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "LOCATION_REQUIRED"

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_created_ids(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.publish_offer.return_value = ApiResponse(
            status_code=400, error_message="Shipping location required for this listing.", error_id="25020"
        )

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert result.error.code == "OFFER_PUBLISH_FAILED"
        assert result.error.message == PUBLISH_SHIPPING_LOCATION_MESSAGE
        assert result.offer_id == "OFFER-1"
        assert result.sku is not None
        assert result.listing_id is None
        assert result.steps[5].status == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_exception_fails_current_step(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.create_offer.side_effect = RuntimeError("connection reset")

        result = await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert not result.success
        assert result.error.code == "PUBLISH_ERROR"
        assert result.steps[3].status == StepStatus.FAILED
        assert result.steps[3].error == "connection reset"
        assert _statuses(result)[4:] == [StepStatus.PENDING, StepStatus.PENDING]


class TestConcurrentPublish:
    """Test the same-listing guard."""

    @pytest.mark.asyncio
    async def test_second_attempt_rejected_while_first_runs(self, make_pipeline, sample_draft, location_service):
        publish_module._in_flight.add(sample_draft.listing_id)
        try:
            result = await make_pipeline().publish(sample_draft, account=CONNECTED)
        finally:
            publish_module._in_flight.discard(sample_draft.listing_id)

        assert result.error.code == "PUBLISH_ERROR"
        assert result.error.message == "A publish is already in progress for this listing"
        assert publish_module.already_in_progress(result)
        location_service.ensure_location_exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_guard_released_after_run(self, make_pipeline, sample_draft, ebay_client):
        ebay_client.create_offer.side_effect = RuntimeError("boom")

        await make_pipeline().publish(sample_draft, account=CONNECTED)

        assert sample_draft.listing_id not in publish_module._in_flight


class TestStepTracker:
    """Test step transitions."""

    def test_initial_state(self):
        tracker = StepTracker()

        assert [s.step for s in tracker.steps] == [1, 2, 3, 4, 5, 6]
        assert [s.name for s in tracker.steps] == [
            StepName.LOCATION, StepName.INVENTORY, StepName.POLICIES,
            StepName.OFFER, StepName.FEES, StepName.PUBLISH,
        ]
        assert all(s.status == StepStatus.PENDING for s in tracker.steps)

    def test_cannot_start_out_of_order(self):
        tracker = StepTracker()

        with pytest.raises(RuntimeError):
            tracker.start(StepName.INVENTORY)

    def test_cannot_complete_pending_step(self):
        tracker = StepTracker()

        with pytest.raises(RuntimeError):
            tracker.complete(StepName.LOCATION)

    def test_only_fees_can_be_skipped(self):
        tracker = StepTracker()

        with pytest.raises(RuntimeError):
            tracker.skip(StepName.LOCATION, "not needed")

    def test_skipped_fees_allow_publish(self):
        tracker = StepTracker()
        for name in (StepName.LOCATION, StepName.INVENTORY, StepName.POLICIES, StepName.OFFER):
            tracker.start(name)
            tracker.complete(name)
        tracker.skip(StepName.FEES, "disabled")

        tracker.start(StepName.PUBLISH)

        assert tracker.current() == StepName.PUBLISH

    def test_snapshots_do_not_change(self):
        tracker = StepTracker()
        before = tracker.steps

        tracker.start(StepName.LOCATION)
        tracker.complete(StepName.LOCATION, merchant_location_key="WAREHOUSE-1")

        assert before[0].status == StepStatus.PENDING
        assert tracker.steps[0].merchant_location_key == "WAREHOUSE-1"


class TestListingFeesAndStatus:

    def test_parse_fees_prefers_marketplace(self):
        data = {"feeSummaries": [
            {"marketplaceId": "EBAY_GB", "fees": [{"feeType": "InsertionFee", "amount": {"value": "1", "currency": "GBP"}}]},
            {"marketplaceId": "EBAY_US", "fees": [{"feeType": "InsertionFee", "amount": {"value": "0.35", "currency": "USD"}}]},
        ]}

        fees = parse_listing_fees(data, "EBAY_US")

        assert fees.marketplace_id == "EBAY_US"
        assert fees.total_fee.value == "0.35"

    def test_parse_fees_empty(self):
        assert parse_listing_fees({}, "EBAY_US") is None

    def test_listing_status(self, ebay_client):
        status = get_listing_status(ebay_client, "110012345678")

        assert status["status"] == "ACTIVE"
        assert status["url"].endswith("/itm/110012345678")

    def test_listing_status_unknown_on_failure(self, ebay_client):
        ebay_client.get_listing.return_value = ApiResponse(status_code=404, error_message="Not found")

        assert get_listing_status(ebay_client, "110012345678") == {"status": "unknown", "url": None}
