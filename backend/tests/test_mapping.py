"""
eBay Mapping Tests

Tests for SKU generation, Inventory API payloads and payload validation.
"""

import pytest
from decimal import Decimal

from schemas import ItemCondition, Money, PolicyIds
from integrations.ebay.mapping import (
    build_draft_from_listing,
    build_inventory_item,
    build_offer,
    generate_sku,
    map_condition,
)
from integrations.ebay.mapping_validation import (
    validate_inventory_item,
    validate_offer,
)
from integrations.ebay.utils.money import equal_money, to_money_str


class TestGenerateSku:

    def test_deterministic(self):
        assert generate_sku("listing-123", prefix="RSAI") == generate_sku("listing-123", prefix="RSAI")

    def test_format(self):
        assert generate_sku("listing-123", prefix="RSAI") == "RSAI-LISTING123"

    def test_uuid_listing_id(self):
        sku = generate_sku("550e8400-e29b-41d4-a716-446655440000", prefix="RSAI")

        assert sku == "RSAI-550E8400E29B41D4A716446655440000"

    def test_too_long_id_is_hashed(self):
        sku = generate_sku("x" * 200, prefix="RSAI")

        assert sku.startswith("RSAI-")
        assert len(sku) <= 50
        assert sku == generate_sku("x" * 200, prefix="RSAI")

    def test_different_listings_get_different_skus(self):
        assert generate_sku("listing-1", prefix="RSAI") != generate_sku("listing-2", prefix="RSAI")


class TestMapCondition:

    @pytest.mark.parametrize("internal,expected", [
        ("new", "NEW"),
        ("like_new", "LIKE_NEW"),
        ("fair", "GOOD"),
        ("poor", "ACCEPTABLE"),
        ("VERY_GOOD", "VERY_GOOD"),
        (None, "GOOD"),
        ("unknown", "GOOD"),
    ])
    def test_mapping(self, internal, expected):
        assert map_condition(internal) == expected


class TestPayloads:
    """Test Inventory API payload construction."""

    @pytest.fixture
    def policies(self):
        return PolicyIds(fulfillment_policy_id="F-1", payment_policy_id="P-1", return_policy_id="R-1")

    def test_inventory_item(self, sample_draft):
        item = build_inventory_item(sample_draft, "RSAI-LISTING123")

        assert item["sku"] == "RSAI-LISTING123"
        assert item["condition"] == "GOOD"
        assert item["conditionDescription"] == "Lightly worn"
        assert item["product"]["title"] == sample_draft.title
        assert item["product"]["imageUrls"] == sample_draft.image_urls
        assert item["product"]["aspects"] == {"Brand": ["Nike"], "US Shoe Size": ["10"]}
        assert item["availability"]["shipToLocationAvailability"]["quantity"] == 1

    def test_inventory_item_drops_blank_aspects(self, sample_draft):
        draft = sample_draft.model_copy(update={"item_specifics": {"Brand": "Nike", "Color": "  "}})

        item = build_inventory_item(draft, "SKU")

        assert item["product"]["aspects"] == {"Brand": ["Nike"]}

    def test_inventory_item_is_valid(self, sample_draft):
        assert validate_inventory_item(build_inventory_item(sample_draft, "SKU")) == []

    def test_offer(self, sample_draft, policies):
        offer = build_offer(sample_draft, "SKU", "WAREHOUSE-1", policies, marketplace_id="EBAY_US")

        assert offer["format"] == "FIXED_PRICE"
        assert offer["marketplaceId"] == "EBAY_US"
        assert offer["categoryId"] == "15709"
        assert offer["merchantLocationKey"] == "WAREHOUSE-1"
        assert offer["pricingSummary"]["price"] == {"value": "79.99", "currency": "USD"}
        assert offer["listingPolicies"] == {
            "fulfillmentPolicyId": "F-1",
            "paymentPolicyId": "P-1",
            "returnPolicyId": "R-1",
        }

    def test_offer_price_has_two_decimals(self, sample_draft, policies):
        draft = sample_draft.model_copy(update={"price": Money(value=Decimal("35"))})

        offer = build_offer(draft, "SKU", "WAREHOUSE-1", policies)

        assert offer["pricingSummary"]["price"]["value"] == "35.00"

    def test_offer_is_valid(self, sample_draft, policies):
        offer = build_offer(sample_draft, "SKU", "WAREHOUSE-1", policies)

        assert validate_offer(offer, expected_price=sample_draft.price.value) == []


class TestMappingValidation:
    """Test payload validation."""

    @pytest.fixture
    def inventory_item(self, sample_draft):
        return build_inventory_item(sample_draft, "SKU-1")

    @pytest.fixture
    def offer(self, sample_draft):
        policies = PolicyIds(fulfillment_policy_id="F-1", payment_policy_id="P-1", return_policy_id="R-1")
        return build_offer(sample_draft, "SKU-1", "WAREHOUSE-1", policies)

    def test_valid_payloads(self, inventory_item, offer):
        assert validate_inventory_item(inventory_item) == []
        assert validate_offer(offer, expected_price="79.99") == []

    def test_missing_images(self, inventory_item):
        inventory_item["product"]["imageUrls"] = []

        errors = validate_inventory_item(inventory_item)

        assert any("imageUrls" in e for e in errors)

    def test_title_too_long(self, inventory_item):
        inventory_item["product"]["title"] = "A" * 81

        errors = validate_inventory_item(inventory_item)

        assert errors == ["Product title exceeds 80 characters (found 81)"]

    def test_missing_policy(self, offer):
        offer["listingPolicies"]["returnPolicyId"] = None

        errors = validate_offer(offer)

        assert errors == ["Offer missing required field: listingPolicies.returnPolicyId"]

    def test_price_must_match_draft(self, offer):
        errors = validate_offer(offer, expected_price=Decimal("80.00"))

        assert errors == ["Offer price 79.99 does not match listing price 80.00"]


class TestMoney:

    def test_formatting(self):
        assert to_money_str("35") == "35.00"
        assert to_money_str(Decimal("19.995")) == "20.00"
        assert to_money_str(12.5) == "12.50"

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            to_money_str("abc")

    def test_equal_money(self):
        assert equal_money("19.9", Decimal("19.90"))
        assert not equal_money("19.99", "19.98")


class TestBuildDraftFromListing:

    def test_builds_draft(self):
        draft = build_draft_from_listing(
            listing_id="abc",
            title="T" * 100,
            description="Vintage denim jacket",
            category_name="Coats & Jackets",
            category_id="57988",
            condition="fair",
            price=Decimal("45.00"),
            image_urls=["https://example.com/1.jpg"],
            brand="Levi's",
            attributes=[{"key": "Size", "value": "M"}, {"key": "Color", "value": ""}],
        )

        assert len(draft.title) == 80
        assert draft.condition.id == "GOOD"
        assert draft.category_id == "57988"
        assert draft.item_specifics == {"Brand": "Levi's", "Size": "M"}
        assert draft.price.value == Decimal("45.00")

    def test_attribute_brand_wins(self):
        draft = build_draft_from_listing(
            listing_id="abc", title="Jacket", description="d", category_name="", category_id=None,
            condition="good", price=Decimal("10"), image_urls=[], brand="Levis",
            attributes=[{"key": "Brand", "value": "Levi's"}],
        )

        assert draft.item_specifics["Brand"] == "Levi's"
        assert draft.category_id == "99"

    def test_condition_mapped_without_description(self):
        draft = build_draft_from_listing(
            listing_id="abc", title="Jacket", description="d", category_name="", category_id="1",
            condition="like_new", price=Decimal("10"), image_urls=[],
        )

        assert draft.condition == ItemCondition(id="LIKE_NEW")
