"""
eBay Mapping Validation - Validates inventory item and offer payloads.

Run right before each payload is sent, as a last local check on what the
mapping produced.
"""

from typing import List, Dict, Any, Optional

from integrations.ebay.mapping import (
    EBAY_TITLE_MAX_LENGTH,
    EBAY_DESCRIPTION_MAX_LENGTH,
    EBAY_MAX_IMAGES,
)
from integrations.ebay.utils.money import equal_money


def validate_inventory_item(inv: Dict[str, Any]) -> List[str]:
    """
    Validate inventory item payload.

    Returns:
        List of error messages (empty if valid)
    """
    errors: List[str] = []

    if not inv.get("sku"):
        errors.append("Inventory item missing required field: sku")

    product = inv.get("product")
    if not product:
        errors.append("Inventory item missing required field: product")
        return errors

    title = product.get("title")
    if not title:
        errors.append("Inventory item missing required field: product.title")
    elif len(title) > EBAY_TITLE_MAX_LENGTH:
        errors.append(f"Product title exceeds {EBAY_TITLE_MAX_LENGTH} characters (found {len(title)})")

    description = product.get("description")
    if not description:
        errors.append("Inventory item missing required field: product.description")
    elif len(description) > EBAY_DESCRIPTION_MAX_LENGTH:
        errors.append(f"Product description exceeds {EBAY_DESCRIPTION_MAX_LENGTH} characters")

    image_urls = product.get("imageUrls", [])
    if not image_urls:
        errors.append("Inventory item missing required field: product.imageUrls (at least 1 image required)")
    elif len(image_urls) > EBAY_MAX_IMAGES:
        errors.append(f"Product has too many images (max {EBAY_MAX_IMAGES}, found {len(image_urls)})")

    if not inv.get("condition"):
        errors.append("Inventory item missing required field: condition")

    quantity = inv.get("availability", {}).get("shipToLocationAvailability", {}).get("quantity")
    if not isinstance(quantity, int) or quantity < 0:
        errors.append("Inventory item availability quantity must be a non-negative integer")

    return errors


def validate_offer(offer: Dict[str, Any], expected_price: Optional[Any] = None) -> List[str]:
    """
    Validate offer payload.

    Args:
        offer: Offer payload dict
        expected_price: Draft price; when given, the payload price must equal it at cent precision

    Returns:
        List of error messages (empty if valid)
    """
    errors: List[str] = []

    for field in ("sku", "marketplaceId", "format", "categoryId", "merchantLocationKey"):
        if not offer.get(field):
            errors.append(f"Offer missing required field: {field}")

    price = offer.get("pricingSummary", {}).get("price", {})
    if not price.get("value"):
        errors.append("Offer missing required field: pricingSummary.price.value")
    elif expected_price is not None and not equal_money(price["value"], expected_price):
        errors.append(f"Offer price {price['value']} does not match listing price {expected_price}")
    if not price.get("currency"):
        errors.append("Offer missing required field: pricingSummary.price.currency")

    policies = offer.get("listingPolicies", {})
    for field in ("fulfillmentPolicyId", "paymentPolicyId", "returnPolicyId"):
        if not policies.get(field):
            errors.append(f"Offer missing required field: listingPolicies.{field}")

    return errors
