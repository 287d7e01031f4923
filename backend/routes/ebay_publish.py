"""
eBay Publishing Routes - publish, validate, autofill and status for stored listings.
"""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from db import get_session
from models import Listing, PublishStatus
from schemas import (
    AutofillInput,
    AutofillRequest,
    AutofillResult,
    ListingDraft,
    ListingStatusResponse,
    PublishRequest,
    PublishResult,
    ValidationError,
    ValidationResult,
)
from settings import ebay_settings
from integrations.ebay.aspects import AspectsService
from integrations.ebay.autofill import AutofillService
from integrations.ebay.client import EBayClient
from integrations.ebay.mapping import build_draft_from_listing
from integrations.ebay.publish import PublishPipeline, SellerAccount, already_in_progress, get_listing_status
from integrations.ebay.validator import PrepublishValidator, validate_publish_input
from routes.dependencies import (
    get_aspects_service,
    get_autofill_service,
    get_ebay_client,
    get_prepublish_validator,
    get_publish_pipeline,
    get_seller_account,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ebay/listings", tags=["ebay-publish"])


def _get_listing(session: Session, listing_id: str) -> Listing:
    listing = session.get(Listing, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail=f"Listing {listing_id} not found")
    return listing


def listing_to_draft(listing: Listing) -> ListingDraft:
    """Draft from the stored listing; saved item specifics override generated ones."""
    draft = build_draft_from_listing(
        listing_id=listing.id,
        title=listing.title,
        description=listing.description,
        category_name=listing.category_name,
        category_id=listing.ebay_category_id,
        condition=listing.condition,
        price=Decimal(str(listing.price)),
        image_urls=listing.photo_urls or [],
        brand=listing.brand,
        attributes=listing.attributes or [],
        currency=listing.currency,
    )
    if listing.item_specifics:
        draft = draft.model_copy(update={"item_specifics": {**draft.item_specifics, **listing.item_specifics}})
    return draft


def _record_outcome(session: Session, listing: Listing, result: PublishResult) -> None:
    listing.sku = result.sku or listing.sku
    listing.ebay_offer_id = result.offer_id or listing.ebay_offer_id
    if result.success:
        listing.ebay_listing_id = result.listing_id
        listing.publish_status = PublishStatus.PUBLISHED
    else:
        listing.publish_status = PublishStatus.FAILED
    listing.last_publish = result.model_dump(mode="json")
    listing.updated_at = int(datetime.now().timestamp() * 1000)
    session.add(listing)
    session.commit()


@router.post("/{listing_id}/publish", response_model=PublishResult)
async def publish_listing_endpoint(
    listing_id: str,
    request: Optional[PublishRequest] = None,
    session: Session = Depends(get_session),
    pipeline: PublishPipeline = Depends(get_publish_pipeline),
    account: SellerAccount = Depends(get_seller_account)
):
    """
    Publish a stored listing to eBay.

    Policy ids are optional; without them the seller's default policies are
    used. A failed attempt returns 400 with the full PublishResult as detail.
    """
    listing = _get_listing(session, listing_id)
    draft = listing_to_draft(listing)

    result = await pipeline.publish(draft, request.policies if request else None, account)
    if already_in_progress(result):
        logger.info(f"[Publish] Listing {listing_id} already publishing, attempt not recorded")
    else:
        _record_outcome(session, listing, result)

    if not result.success:
        logger.info(f"[Publish] Listing {listing_id} failed: {result.error.code if result.error else 'unknown'}")
        raise HTTPException(status_code=400, detail=result.model_dump(mode="json"))

    return result


@router.post("/{listing_id}/validate", response_model=ValidationResult)
async def validate_listing_endpoint(
    listing_id: str,
    request: Optional[PublishRequest] = None,
    session: Session = Depends(get_session),
    prepublish_validator: PrepublishValidator = Depends(get_prepublish_validator)
):
    """Dry run of the pre-publish checks; nothing is created on eBay."""
    listing = _get_listing(session, listing_id)
    draft = listing_to_draft(listing)

    result = validate_publish_input(draft, request.policies if request else None)
    if not result.valid:
        return result

    error = await asyncio.to_thread(prepublish_validator.check, draft)
    if error is None:
        return result

    field = "condition.id" if error.code == "VALIDATION_INVALID_CONDITION" else "item_specifics"
    return ValidationResult(
        valid=False,
        errors=[ValidationError(code=error.code, field=field, message=error.message, actual=error.details)],
    )


@router.post("/{listing_id}/autofill", response_model=AutofillResult)
async def autofill_listing_endpoint(
    listing_id: str,
    request: Optional[AutofillRequest] = None,
    session: Session = Depends(get_session),
    aspects_service: AspectsService = Depends(get_aspects_service),
    autofill_service: AutofillService = Depends(get_autofill_service)
):
    """Fill the listing's missing required item specifics with AI and save them."""
    listing = _get_listing(session, listing_id)
    if not listing.ebay_category_id:
        raise HTTPException(status_code=400, detail="Listing has no eBay category")

    draft = listing_to_draft(listing)
    aspects = await asyncio.to_thread(aspects_service.get_item_aspects, listing.ebay_category_id)

    result = await asyncio.to_thread(autofill_service.autofill, AutofillInput(
        category_id=listing.ebay_category_id,
        category_name=listing.category_name,
        required_aspects=aspects.required_aspects,
        title=draft.title,
        description=draft.description,
        vision=request.vision if request else None,
        current_item_specifics=draft.item_specifics,
    ))

    if result.filled_by_ai:
        listing.item_specifics = {
            **(listing.item_specifics or {}),
            **{name: result.item_specifics[name] for name in result.filled_by_ai},
        }
        listing.updated_at = int(datetime.now().timestamp() * 1000)
        session.add(listing)
        session.commit()

    return result


@router.get("/{listing_id}/status", response_model=ListingStatusResponse)
async def get_publish_status(
    listing_id: str,
    session: Session = Depends(get_session),
    client: EBayClient = Depends(get_ebay_client)
):
    """
    Get publish status for a listing.

    Returns stored SKU, offer ID, listing ID and URL, plus eBay's live listing
    status when the listing was published.
    """
    listing = _get_listing(session, listing_id)

    listing_url = None
    remote_status = None
    if listing.ebay_listing_id:
        listing_url = ebay_settings.get_listing_url(listing.ebay_listing_id)
        status = await asyncio.to_thread(get_listing_status, client, listing.ebay_listing_id)
        remote_status = status["status"]

    return ListingStatusResponse(
        listing_id=listing_id,
        sku=listing.sku,
        offer_id=listing.ebay_offer_id,
        ebay_listing_id=listing.ebay_listing_id,
        listing_url=listing_url,
        publish_status=listing.publish_status.value if listing.publish_status else None,
        remote_status=remote_status,
    )
