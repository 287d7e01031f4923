"""
eBay publish flow - six ordered steps from draft to live listing.

    1 location   ensure an ENABLED inventory location
    2 inventory  create/replace the inventory item under a deterministic SKU
    3 policies   resolve fulfillment/payment/return policy ids
    4 offer      create the offer
    5 fees       optional fee estimate (never blocks publishing)
    6 publish    publish the offer and build the listing URL

Local validation and the category checks run before step 1. The first failing
step stops the run; the result keeps every step's status and whatever ids were
created so far. Nothing is rolled back and nothing is retried here.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Optional, List, Callable, Set

from schemas import (
    FeeAmount,
    ListingDraft,
    ListingFee,
    ListingFees,
    PolicyIds,
    PublishError,
    PublishResult,
    PublishStep,
    PublishWarning,
    StepName,
    StepStatus,
)
from settings import ebay_settings
from integrations.ebay.errors import (
    ErrorCode,
    OFFER_SHIPPING_LOCATION_MESSAGE,
    PUBLISH_SHIPPING_LOCATION_MESSAGE,
    build_publish_error,
    classify_remote_error,
    rewrite_shipping_location_message,
    validation_error_from_issues,
)
from integrations.ebay.location import LOCATION_STATUS_ENABLED
from integrations.ebay.mapping import build_inventory_item, build_offer, generate_sku
from integrations.ebay.mapping_validation import validate_inventory_item, validate_offer
from integrations.ebay.publish_logger import PublishLogger, generate_trace_id
from integrations.ebay.utils.money import to_money_str
from integrations.ebay.validator import validate_publish_input

logger = logging.getLogger(__name__)

STEP_ORDER: List[StepName] = [
    StepName.LOCATION,
    StepName.INVENTORY,
    StepName.POLICIES,
    StepName.OFFER,
    StepName.FEES,
    StepName.PUBLISH,
]

INVENTORY_SUCCESS_CODES = (200, 204)

# Listing ids with a publish attempt running in this process
_in_flight: Set[str] = set()
_in_flight_lock = threading.Lock()


@dataclass(frozen=True)
class SellerAccount:
    """Connection state of the seller's eBay account."""
    connected: bool
    needs_reauth: bool = False

    @classmethod
    def from_settings(cls) -> "SellerAccount":
        return cls(
            connected=bool(ebay_settings.ebay_access_token),
            needs_reauth=ebay_settings.ebay_token_expired,
        )


class StepTracker:
    """
    Step state machine for one publish attempt.

    Each transition replaces the step with an updated copy, so a snapshot
    handed out earlier never changes underneath its holder.
    """

    def __init__(self):
        self._steps: List[PublishStep] = [
            PublishStep(step=i + 1, name=name) for i, name in enumerate(STEP_ORDER)
        ]

    @property
    def steps(self) -> List[PublishStep]:
        return list(self._steps)

    def _index(self, name: StepName) -> int:
        return STEP_ORDER.index(name)

    def _replace(self, name: StepName, **update) -> None:
        i = self._index(name)
        self._steps[i] = self._steps[i].model_copy(update=update)

    def status(self, name: StepName) -> StepStatus:
        return self._steps[self._index(name)].status

    def current(self) -> Optional[StepName]:
        """The step currently in progress, if any."""
        return next((s.name for s in self._steps if s.status == StepStatus.IN_PROGRESS), None)

    def start(self, name: StepName) -> None:
        i = self._index(name)
        if self._steps[i].status != StepStatus.PENDING:
            raise RuntimeError(f"Step {name.value} cannot start from {self._steps[i].status.value}")
        for earlier in self._steps[:i]:
            done = earlier.status == StepStatus.COMPLETE or (
                earlier.name == StepName.FEES and earlier.status == StepStatus.SKIPPED
            )
            if not done:
                raise RuntimeError(
                    f"Step {name.value} cannot start while {earlier.name.value} is {earlier.status.value}"
                )
        self._replace(name, status=StepStatus.IN_PROGRESS)

    def complete(self, name: StepName, **artifacts) -> None:
        self._require(name, StepStatus.IN_PROGRESS)
        self._replace(name, status=StepStatus.COMPLETE, **artifacts)

    def fail(self, name: StepName, error: str) -> None:
        self._require(name, StepStatus.IN_PROGRESS)
        self._replace(name, status=StepStatus.FAILED, error=error)

    def skip(self, name: StepName, reason: str) -> None:
        """Only the fees step may be skipped, from pending or in progress."""
        if name != StepName.FEES:
            raise RuntimeError(f"Step {name.value} cannot be skipped")
        if self.status(name) not in (StepStatus.PENDING, StepStatus.IN_PROGRESS):
            raise RuntimeError(f"Step {name.value} cannot be skipped from {self.status(name).value}")
        self._replace(name, status=StepStatus.SKIPPED, error=reason)

    def _require(self, name: StepName, expected: StepStatus) -> None:
        actual = self.status(name)
        if actual != expected:
            raise RuntimeError(f"Step {name.value} is {actual.value}, expected {expected.value}")


def parse_listing_fees(data: Dict[str, Any], marketplace_id: str) -> Optional[ListingFees]:
    """Pick this marketplace's fee summary out of a get_listing_fees response."""
    summaries = data.get("feeSummaries") or []
    summary = next((s for s in summaries if s.get("marketplaceId") == marketplace_id), None)
    if summary is None and summaries:
        summary = summaries[0]
    if summary is None:
        return None

    fees: List[ListingFee] = []
    total = Decimal("0")
    currency: Optional[str] = None
    for fee in summary.get("fees") or []:
        amount = fee.get("amount") or {}
        try:
            value = to_money_str(amount.get("value", "0"))
        except ValueError:
            continue
        currency = currency or amount.get("currency")
        fees.append(ListingFee(
            fee_type=fee.get("feeType", "UNKNOWN"),
            amount=FeeAmount(value=value, currency=amount.get("currency") or currency or ""),
        ))
        total += Decimal(value)

    return ListingFees(
        marketplace_id=summary.get("marketplaceId") or marketplace_id,
        listing_fees=fees,
        total_fee=FeeAmount(value=to_money_str(total), currency=currency) if currency else None,
    )


def _collect_warnings(data: Optional[Dict[str, Any]]) -> List[PublishWarning]:
    return [
        PublishWarning(code=str(w.get("errorId", "")), message=w.get("message", ""))
        for w in (data or {}).get("warnings") or []
    ]


class PublishPipeline:
    """
    Runs the publish steps against injected collaborators.

    Collaborators are duck-typed: client is an EBayClient, location_service a
    LocationService, policy_service a PolicyService and prepublish_validator a
    PrepublishValidator (or None to skip the category checks).
    """

    def __init__(
        self,
        client,
        location_service,
        policy_service,
        prepublish_validator=None,
        fees_enabled: Optional[bool] = None,
        marketplace_id: Optional[str] = None,
        listing_url_builder: Optional[Callable[[str], str]] = None
    ):
        self.client = client
        self.location_service = location_service
        self.policy_service = policy_service
        self.prepublish_validator = prepublish_validator
        self.fees_enabled = ebay_settings.ebay_fees_enabled if fees_enabled is None else fees_enabled
        self.marketplace_id = marketplace_id or ebay_settings.ebay_marketplace_id
        self.listing_url_builder = listing_url_builder or ebay_settings.get_listing_url

    async def publish(
        self,
        draft: ListingDraft,
        policies: Optional[PolicyIds] = None,
        account: Optional[SellerAccount] = None
    ) -> PublishResult:
        """
        Publish a draft. Never raises; every failure becomes a PublishResult.
        """
        run = _PublishRun(self, draft, policies, account or SellerAccount.from_settings())

        with _in_flight_lock:
            busy = draft.listing_id in _in_flight
            if not busy:
                _in_flight.add(draft.listing_id)
        if busy:
            run.log.warning(f"Publish already in progress for listing {draft.listing_id}")
            return run.failure(
                build_publish_error(
                    ErrorCode.PUBLISH_ERROR,
                    "A publish is already in progress for this listing",
                    details={"in_progress": True},
                )
            )

        try:
            return await run.execute()
        except Exception as e:
            run.log.exception(f"Unexpected error: {e}")
            current = run.tracker.current()
            if current is not None:
                run.tracker.fail(current, str(e))
            return run.failure(build_publish_error(ErrorCode.PUBLISH_ERROR, str(e) or None))
        finally:
            with _in_flight_lock:
                _in_flight.discard(draft.listing_id)


def already_in_progress(result: PublishResult) -> bool:
    """True when the attempt was turned away because another one is running."""
    return bool(result.error and (result.error.details or {}).get("in_progress"))


class _PublishRun:
    """State of one publish attempt."""

    def __init__(self, pipeline: PublishPipeline, draft: ListingDraft, policies: Optional[PolicyIds], account: SellerAccount):
        self.pipeline = pipeline
        self.client = pipeline.client
        self.draft = draft
        self.policies = policies
        self.account = account
        self.trace_id = generate_trace_id()
        self.log = PublishLogger(self.trace_id)
        self.tracker = StepTracker()
        self.attempted_at = datetime.now(timezone.utc)
        self.warnings: List[PublishWarning] = []
        self.fees: Optional[ListingFees] = None
        self.sku: Optional[str] = None
        self.offer_id: Optional[str] = None
        self.resolved_policies: Optional[PolicyIds] = None

    async def _call(self, fn, *args):
        """Run a blocking collaborator call without stalling the event loop."""
        return await asyncio.to_thread(fn, *args)

    def failure(self, error: PublishError) -> PublishResult:
        return PublishResult(
            success=False,
            steps=self.tracker.steps,
            sku=self.sku,
            offer_id=self.offer_id,
            warnings=self.warnings or None,
            fees=self.fees,
            error=error,
            trace_id=self.trace_id,
            attempted_at=self.attempted_at,
        )

    def step_failure(
        self,
        step: StepName,
        code: ErrorCode,
        message: str,
        ebay_error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> PublishResult:
        self.tracker.fail(step, message)
        self.log.step_failed(step, message)
        return self.failure(build_publish_error(code, message, ebay_error_id=ebay_error_id, details=details))

    async def execute(self) -> PublishResult:
        draft = self.draft
        self.log.info(f"Starting publish for listing {draft.listing_id}")

        if not self.account.connected:
            return self.failure(build_publish_error(ErrorCode.EBAY_NOT_CONNECTED))
        if self.account.needs_reauth:
            return self.failure(build_publish_error(ErrorCode.EBAY_REAUTH_REQUIRED))

        validation = validate_publish_input(draft, self.policies)
        if not validation.valid:
            for issue in validation.errors:
                self.log.validation_failed(issue.field, issue.message)
            return self.failure(validation_error_from_issues(validation.errors))

        if self.pipeline.prepublish_validator is not None:
            check_error = await self._call(self.pipeline.prepublish_validator.check, draft)
            if check_error is not None:
                self.log.validation_failed("category", check_error.message)
                return self.failure(check_error)

        for step in (self._location, self._inventory, self._policies, self._offer, self._fees, self._publish):
            result = await step()
            if result is not None:
                return result

        listing_id = self.tracker.steps[5].listing_id
        listing_url = self.pipeline.listing_url_builder(listing_id)
        self.log.info(f"Published listing {listing_id}")
        return PublishResult(
            success=True,
            steps=self.tracker.steps,
            sku=self.sku,
            offer_id=self.offer_id,
            listing_id=listing_id,
            listing_url=listing_url,
            fees=self.fees,
            warnings=self.warnings or None,
            trace_id=self.trace_id,
            attempted_at=self.attempted_at,
            published_at=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Steps. Each returns a failed PublishResult, or None to continue.
    # ------------------------------------------------------------------

    async def _location(self) -> Optional[PublishResult]:
        step = StepName.LOCATION
        self.tracker.start(step)
        self.log.step_started(step)

        ensured = await self._call(self.pipeline.location_service.ensure_location_exists)
        location_key = ensured.get("location_key")
        if not ensured.get("success") or not location_key:
            return self.step_failure(
                step,
                classify_remote_error(ErrorCode.LOCATION_REQUIRED, ensured.get("status_code")),
                ensured.get("error") or "Please set up a shipping location before listing",
            )

        lookup = await self._call(self.pipeline.location_service.get_location_by_key, location_key)
        if not lookup.get("success"):
            return self.step_failure(
                step,
                classify_remote_error(ErrorCode.LOCATION_REQUIRED, lookup.get("status_code")),
                f"Inventory location {location_key} could not be verified: {lookup.get('error')}",
            )
        if lookup.get("status") != LOCATION_STATUS_ENABLED:
            return self.step_failure(
                step,
                ErrorCode.LOCATION_NOT_ENABLED,
                f"Inventory location {location_key} exists but is {lookup.get('status') or 'not ENABLED'}. "
                f"Please enable it in eBay Seller Hub.",
                details={"merchant_location_key": location_key, "status": lookup.get("status")},
            )

        self.tracker.complete(step, merchant_location_key=location_key)
        self.log.step_complete(step, {"merchantLocationKey": location_key})
        return None

    async def _inventory(self) -> Optional[PublishResult]:
        step = StepName.INVENTORY
        self.tracker.start(step)
        self.log.step_started(step)

        sku = generate_sku(self.draft.listing_id)
        payload = build_inventory_item(self.draft, sku)
        payload_errors = validate_inventory_item(payload)
        if payload_errors:
            return self.step_failure(
                step,
                ErrorCode.INVENTORY_ITEM_FAILED,
                payload_errors[0],
                details={"errors": payload_errors},
            )

        response = await self._call(self.client.create_or_replace_inventory_item, sku, payload)
        self.log.api_call(
            step, "PUT", "/sell/inventory/v1/inventory_item/{sku}", response.status_code,
            request_id=response.request_id, payload_keys=sorted(payload.keys()), safe_values={"sku": sku},
        )
        if response.status_code not in INVENTORY_SUCCESS_CODES:
            code = classify_remote_error(ErrorCode.INVENTORY_ITEM_FAILED, response.status_code, response.error_id)
            return self.step_failure(
                step, code,
                response.error_message or f"HTTP {response.status_code}",
                ebay_error_id=response.error_id,
            )

        self.sku = sku
        self.tracker.complete(step, item_sku=sku)
        self.log.step_complete(step, {"sku": sku})
        return None

    async def _policies(self) -> Optional[PublishResult]:
        step = StepName.POLICIES
        self.tracker.start(step)
        self.log.step_started(step)

        resolved = self.policies if self.policies is not None else PolicyIds()
        if not resolved.is_complete():
            defaults = await self._call(self.pipeline.policy_service.get_default_policies)
            resolved = PolicyIds(
                fulfillment_policy_id=resolved.fulfillment_policy_id or defaults.fulfillment_policy_id,
                payment_policy_id=resolved.payment_policy_id or defaults.payment_policy_id,
                return_policy_id=resolved.return_policy_id or defaults.return_policy_id,
            )

        missing = resolved.missing()
        if missing:
            return self.step_failure(
                step,
                ErrorCode.POLICIES_MISSING,
                f"Missing required business policies: {', '.join(missing)}. "
                f"Please configure them in eBay Seller Hub.",
                details={"missing_policies": missing},
            )

        self.resolved_policies = resolved
        self.tracker.complete(step)
        self.log.step_complete(step)
        return None

    async def _offer(self) -> Optional[PublishResult]:
        step = StepName.OFFER
        self.tracker.start(step)
        self.log.step_started(step)

        location_key = self.tracker.steps[0].merchant_location_key
        if not location_key:
            return self.step_failure(
                step,
                ErrorCode.EBAY_MERCHANT_LOCATION_KEY_MISSING,
                "merchantLocationKey is required but was not provided",
            )

        try:
            payload = build_offer(self.draft, self.sku, location_key, self.resolved_policies, self.pipeline.marketplace_id)
        except ValueError as e:
            return self.step_failure(step, ErrorCode.OFFER_CREATE_FAILED, str(e))

        payload_errors = validate_offer(payload, expected_price=self.draft.price.value)
        if payload_errors:
            return self.step_failure(
                step, ErrorCode.OFFER_CREATE_FAILED, payload_errors[0], details={"errors": payload_errors}
            )

        response = await self._call(self.client.create_offer, payload)
        offer_id = (response.data or {}).get("offerId") if response.ok else None
        self.log.api_call(
            step, "POST", "/sell/inventory/v1/offer", response.status_code,
            request_id=response.request_id, payload_keys=sorted(payload.keys()),
            safe_values={"sku": self.sku, "merchantLocationKey": location_key, "marketplaceId": payload["marketplaceId"]},
        )
        if not offer_id:
            raw = response.error_message or "Failed to create offer"
            message = rewrite_shipping_location_message(raw, OFFER_SHIPPING_LOCATION_MESSAGE)
            code = classify_remote_error(ErrorCode.OFFER_CREATE_FAILED, response.status_code, response.error_id)
            return self.step_failure(step, code, message, ebay_error_id=response.error_id)

        self.offer_id = offer_id
        self.warnings.extend(_collect_warnings(response.data))
        self.tracker.complete(step, offer_id=offer_id)
        self.log.step_complete(step, {"offerId": offer_id})
        return None

    async def _fees(self) -> Optional[PublishResult]:
        step = StepName.FEES
        if not self.pipeline.fees_enabled:
            self.tracker.skip(step, "Fee estimation disabled")
            self.log.step_skipped(step, "disabled")
            return None

        self.tracker.start(step)
        self.log.step_started(step)
        try:
            response = await self._call(self.client.get_listing_fees, [self.offer_id])
            self.log.api_call(step, "POST", "/sell/inventory/v1/offer/get_listing_fees", response.status_code,
                              request_id=response.request_id, safe_values={"offerId": self.offer_id})
            fees = parse_listing_fees(response.data, self.pipeline.marketplace_id) if response.ok and response.data else None
        except Exception as e:
            logger.warning(f"[Publish] Could not read listing fees: {e}")
            fees = None
            response = None

        if fees is None:
            reason = (response.error_message if response is not None else None) or "Fee estimate unavailable"
            self.tracker.skip(step, reason)
            self.log.step_skipped(step, reason)
            return None

        self.fees = fees
        self.tracker.complete(step)
        self.log.step_complete(step, {"totalFee": fees.total_fee.value if fees.total_fee else "0.00"})
        return None

    async def _publish(self) -> Optional[PublishResult]:
        step = StepName.PUBLISH
        self.tracker.start(step)
        self.log.step_started(step)

        response = await self._call(self.client.publish_offer, self.offer_id)
        listing_id = (response.data or {}).get("listingId") if response.ok else None
        self.log.api_call(step, "POST", "/sell/inventory/v1/offer/{offerId}/publish", response.status_code,
                          request_id=response.request_id, safe_values={"offerId": self.offer_id})
        if not listing_id:
            raw = response.error_message or "Failed to publish offer"
            message = rewrite_shipping_location_message(raw, PUBLISH_SHIPPING_LOCATION_MESSAGE)
            code = classify_remote_error(ErrorCode.OFFER_PUBLISH_FAILED, response.status_code, response.error_id)
            return self.step_failure(step, code, message, ebay_error_id=response.error_id)

        self.warnings.extend(_collect_warnings(response.data))
        self.tracker.complete(step, listing_id=listing_id)
        self.log.step_complete(step, {"listingId": listing_id})
        return None


def get_listing_status(client, listing_id: str) -> Dict[str, Optional[str]]:
    """Live status of a published listing; 'unknown' when eBay cannot say."""
    response = client.get_listing(listing_id)
    if response.ok and response.data:
        return {
            "status": response.data.get("listingStatus", "unknown"),
            "url": ebay_settings.get_listing_url(listing_id),
        }
    logger.warning(f"[Publish] Could not fetch status for listing {listing_id}: {response.error_message}")
    return {"status": "unknown", "url": None}
