"""
Shared fixtures: a publishable draft and eBay collaborator doubles.
"""

import os

# Keep the app's startup hook off the on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from schemas import ListingDraft, ItemCondition, Money, PolicyIds
from integrations.ebay.client import ApiResponse


@pytest.fixture
def sample_draft():
    """A draft that passes every local check."""
    return ListingDraft(
        listing_id="listing-123",
        title="Nike Air Max 90 Mens Running Shoes Size 10 White",
        description="Lightly worn Nike Air Max 90 in white. Minor creasing on the toe box.",
        category_id="15709",
        category_name="Athletic Shoes",
        condition=ItemCondition(id="GOOD", description="Lightly worn"),
        price=Money(value=Decimal("79.99"), currency="USD"),
        quantity=1,
        image_urls=["https://example.com/shoe-1.jpg", "https://example.com/shoe-2.jpg"],
        item_specifics={"Brand": "Nike", "US Shoe Size": "10"},
    )


@pytest.fixture
def ebay_client():
    """EBayClient double where every call succeeds."""
    client = MagicMock()
    client.create_or_replace_inventory_item.return_value = ApiResponse(status_code=204, data={})
    client.create_offer.return_value = ApiResponse(status_code=201, data={"offerId": "OFFER-1"})
    client.get_listing_fees.return_value = ApiResponse(status_code=200, data={
        "feeSummaries": [{
            "marketplaceId": "EBAY_US",
            "fees": [
                {"feeType": "InsertionFee", "amount": {"value": "0.0", "currency": "USD"}},
                {"feeType": "FinalValueFee", "amount": {"value": "10.4", "currency": "USD"}},
            ],
        }]
    })
    client.publish_offer.return_value = ApiResponse(status_code=200, data={"listingId": "110012345678"})
    client.get_listing.return_value = ApiResponse(status_code=200, data={"listingStatus": "ACTIVE"})
    return client


@pytest.fixture
def location_service():
    """LocationService double returning an ENABLED location."""
    service = MagicMock()
    service.ensure_location_exists.return_value = {"success": True, "location_key": "WAREHOUSE-1", "error": None}
    service.get_location_by_key.return_value = {"success": True, "status": "ENABLED", "error": None}
    return service


@pytest.fixture
def policy_service():
    """PolicyService double with a complete set of defaults."""
    service = MagicMock()
    service.get_default_policies.return_value = PolicyIds(
        fulfillment_policy_id="FULFILLMENT-1",
        payment_policy_id="PAYMENT-1",
        return_policy_id="RETURN-1",
    )
    return service
