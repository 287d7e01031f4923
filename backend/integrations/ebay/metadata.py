"""
Item condition policies from the eBay Sell Metadata API.

Used before publishing to reject a condition the category does not allow
(eBay error 25059) without spending the inventory/offer calls.
"""

import logging
from typing import Dict, Any, Optional

from schemas import CategoryConditions, ConditionCheck, ConditionOption
from settings import ebay_settings
from integrations.ebay.cache import MetadataCache
from integrations.ebay.mapping import CONDITION_MAP

logger = logging.getLogger(__name__)

# eBay numeric condition id -> inventory API enum
CONDITION_ID_TO_ENUM: Dict[str, str] = {
    "1000": "NEW",
    "1500": "NEW_OTHER",
    "1750": "NEW_WITH_DEFECTS",
    "2000": "CERTIFIED_REFURBISHED",
    "2010": "EXCELLENT_REFURBISHED",
    "2020": "VERY_GOOD_REFURBISHED",
    "2030": "GOOD_REFURBISHED",
    "2500": "SELLER_REFURBISHED",
    "2750": "LIKE_NEW",
    "3000": "USED_EXCELLENT",
    "4000": "USED_VERY_GOOD",
    "5000": "USED_GOOD",
    "6000": "USED_ACCEPTABLE",
    "7000": "FOR_PARTS_OR_NOT_WORKING",
}

CONDITION_ID_TO_LABEL: Dict[str, str] = {
    "1000": "New",
    "1500": "New other (see details)",
    "1750": "New with defects",
    "2000": "Certified - Refurbished",
    "2010": "Excellent - Refurbished",
    "2020": "Very Good - Refurbished",
    "2030": "Good - Refurbished",
    "2500": "Seller refurbished",
    "2750": "Like New",
    "3000": "Used",
    "4000": "Very Good",
    "5000": "Good",
    "6000": "Acceptable",
    "7000": "For parts or not working",
}


def normalize_conditions(category_id: str, policy: Dict[str, Any]) -> CategoryConditions:
    """Keep only conditions with a known API enum."""
    conditions = []
    for item in policy.get("itemConditions") or []:
        condition_id = str(item.get("conditionId", ""))
        api_enum = CONDITION_ID_TO_ENUM.get(condition_id)
        if not api_enum:
            continue
        conditions.append(ConditionOption(
            id=condition_id,
            label=CONDITION_ID_TO_LABEL.get(condition_id) or item.get("conditionDescription", condition_id),
            description=item.get("conditionDescription"),
            api_enum=api_enum,
        ))

    return CategoryConditions(
        category_id=category_id,
        condition_required=bool(policy.get("conditionRequired", False)),
        conditions=conditions,
    )


class ConditionsService:
    """Fetches and caches valid item conditions per category."""

    def __init__(self, client, marketplace_id: Optional[str] = None, cache: Optional[MetadataCache] = None):
        self.client = client
        self.marketplace_id = marketplace_id or ebay_settings.ebay_marketplace_id
        self.cache = cache or MetadataCache("eBay Metadata", ebay_settings.metadata_cache_ttl_seconds)

    def get_item_condition_policies(self, category_id: str) -> CategoryConditions:
        cache_key = f"{self.marketplace_id}:{category_id}"
        hit = self.cache.get(cache_key)
        if hit is not None:
            conditions, age = hit
            return conditions.model_copy(update={"cached": True, "cache_age": age})

        response = self.client.get_item_condition_policies(category_id, self.marketplace_id)
        policies = (response.data or {}).get("itemConditionPolicies") if response.ok else None
        if not policies:
            logger.warning(
                f"[eBay Metadata] Failed to fetch conditions for category {category_id}: "
                f"{response.error_message or 'no policy returned'}"
            )
            return CategoryConditions(category_id=category_id)

        conditions = normalize_conditions(category_id, policies[0])
        self.cache.set(cache_key, conditions)
        return conditions

    def validate_condition(self, category_id: str, condition_id: str) -> ConditionCheck:
        """
        Check a draft condition against the category's allowed conditions.

        The condition may be a numeric id, an API enum or an internal
        lower-case id. An empty policy list means eBay gets the final say.
        """
        policies = self.get_item_condition_policies(category_id)
        if not policies.conditions:
            return ConditionCheck(valid=True)

        candidates = {condition_id, CONDITION_MAP.get(condition_id, condition_id)}
        if any(c.id in candidates or c.api_enum in candidates for c in policies.conditions):
            return ConditionCheck(valid=True)

        valid_options = ", ".join(c.label for c in policies.conditions)
        return ConditionCheck(
            valid=False,
            error=(
                f'Condition "{condition_id}" is not valid for category {category_id}. '
                f"Valid conditions: {valid_options}"
            ),
            valid_conditions=policies.conditions,
        )
