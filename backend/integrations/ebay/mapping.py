"""
eBay mapping - builds Inventory API payloads from a ListingDraft.
"""

import hashlib
import logging
import re
from typing import Dict, Any, List, Optional

from schemas import ListingDraft, ItemCondition, Money, PolicyIds
from settings import ebay_settings
from integrations.ebay.utils.money import to_money_str

logger = logging.getLogger(__name__)

# eBay constants
EBAY_FORMAT = "FIXED_PRICE"
EBAY_TITLE_MAX_LENGTH = 80
EBAY_DESCRIPTION_MAX_LENGTH = 4000
EBAY_MAX_IMAGES = 12
EBAY_SKU_MAX_LENGTH = 50
DEFAULT_CATEGORY_ID = "99"  # Everything Else

# Internal condition ids and API enums -> inventory API condition enum
CONDITION_MAP: Dict[str, str] = {
    "new": "NEW",
    "like_new": "LIKE_NEW",
    "very_good": "VERY_GOOD",
    "good": "GOOD",
    "fair": "GOOD",  # eBay has no 'fair'
    "acceptable": "ACCEPTABLE",
    "poor": "ACCEPTABLE",
    "NEW": "NEW",
    "LIKE_NEW": "LIKE_NEW",
    "VERY_GOOD": "VERY_GOOD",
    "GOOD": "GOOD",
    "ACCEPTABLE": "ACCEPTABLE",
}
DEFAULT_CONDITION = "GOOD"


def generate_sku(listing_id: str, prefix: Optional[str] = None) -> str:
    """
    Deterministic SKU for a listing.

    The same listing id always yields the same SKU, so a retried publish
    replaces the existing inventory item instead of creating a new one.
    """
    prefix = (prefix if prefix is not None else ebay_settings.ebay_sku_prefix).upper()
    cleaned = re.sub(r"[^A-Za-z0-9]", "", listing_id).upper()
    budget = EBAY_SKU_MAX_LENGTH - len(prefix) - 1
    if not cleaned or len(cleaned) > budget:
        cleaned = hashlib.sha1(listing_id.encode("utf-8")).hexdigest()[:min(budget, 32)].upper()
    return f"{prefix}-{cleaned}"


def map_condition(condition_id: Optional[str]) -> str:
    return CONDITION_MAP.get(condition_id or "", DEFAULT_CONDITION)


def to_aspects(item_specifics: Dict[str, str]) -> Dict[str, List[str]]:
    """Reshape item specifics into eBay's name -> [values] form, dropping blanks."""
    return {name: [value] for name, value in item_specifics.items() if value and value.strip()}


def build_inventory_item(draft: ListingDraft, sku: str) -> Dict[str, Any]:
    """
    Build eBay Inventory Item payload from a draft.

    Title and description are clipped to eBay's limits and quantity is floored
    to a non-negative integer. The payload is re-checked by
    mapping_validation before it is sent.
    """
    product: Dict[str, Any] = {
        "title": draft.title[:EBAY_TITLE_MAX_LENGTH],
        "description": draft.description[:EBAY_DESCRIPTION_MAX_LENGTH],
        "imageUrls": list(draft.image_urls[:EBAY_MAX_IMAGES]),
    }

    aspects = to_aspects(draft.item_specifics)
    if aspects:
        product["aspects"] = aspects
        logger.info(f"[Inventory] SKU {sku} - aspect names being sent: {sorted(aspects.keys())}")

    inventory_item: Dict[str, Any] = {
        "sku": sku,
        "locale": ebay_settings.ebay_content_language.replace("-", "_"),
        "product": product,
        "condition": map_condition(draft.condition.id),
        "availability": {
            "shipToLocationAvailability": {
                "quantity": max(0, int(draft.quantity))
            }
        },
    }
    if draft.condition.description:
        inventory_item["conditionDescription"] = draft.condition.description

    return inventory_item


def build_offer(
    draft: ListingDraft,
    sku: str,
    merchant_location_key: str,
    policies: PolicyIds,
    marketplace_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build eBay Offer payload.

    Raises:
        ValueError: If the price cannot be formatted
    """
    return {
        "sku": sku,
        "marketplaceId": marketplace_id or ebay_settings.ebay_marketplace_id,
        "format": EBAY_FORMAT,
        "categoryId": draft.category_id,
        "merchantLocationKey": merchant_location_key,
        "pricingSummary": {
            "price": {
                "value": to_money_str(draft.price.value),
                "currency": draft.price.currency,
            }
        },
        "availableQuantity": max(0, int(draft.quantity)),
        "listingPolicies": {
            "fulfillmentPolicyId": policies.fulfillment_policy_id,
            "paymentPolicyId": policies.payment_policy_id,
            "returnPolicyId": policies.return_policy_id,
        },
    }


def build_draft_from_listing(
    listing_id: str,
    title: str,
    description: str,
    category_name: str,
    category_id: Optional[str],
    condition: str,
    price: Any,
    image_urls: List[str],
    brand: Optional[str] = None,
    attributes: Optional[List[Dict[str, str]]] = None,
    currency: str = "USD"
) -> ListingDraft:
    """
    Build a ListingDraft from a generated listing record.

    Brand and free attributes become item specifics; attributes win over
    brand when both name "Brand".
    """
    item_specifics: Dict[str, str] = {}
    if brand:
        item_specifics["Brand"] = brand
    for attr in attributes or []:
        if attr.get("key") and attr.get("value"):
            item_specifics[attr["key"]] = attr["value"]

    return ListingDraft(
        listing_id=listing_id,
        title=(title or "")[:EBAY_TITLE_MAX_LENGTH],
        description=description or "",
        category_id=category_id or DEFAULT_CATEGORY_ID,
        category_name=category_name,
        condition=ItemCondition(id=map_condition(condition)),
        price=Money(value=price, currency=currency),
        quantity=1,
        image_urls=list(image_urls),
        item_specifics=item_specifics,
    )
