"""
Category aspects (item specifics) metadata from the eBay Taxonomy API.

Aspects are cached per marketplace and category. A failed fetch yields an
empty result, which downstream checks treat as "no constraints".
"""

import logging
from typing import Dict, Any, List, Optional

from schemas import (
    AspectDefinition,
    AspectMode,
    CategoryAspects,
    InvalidAspectValue,
    ItemSpecificsCheck,
)
from settings import ebay_settings
from integrations.ebay.cache import MetadataCache
from integrations.ebay.coercion import matches_exactly

logger = logging.getLogger(__name__)

# Default category tree per marketplace
CATEGORY_TREE_IDS: Dict[str, str] = {
    "EBAY_US": "0",
    "EBAY_GB": "3",
    "EBAY_DE": "77",
    "EBAY_AU": "15",
    "EBAY_CA": "2",
    "EBAY_FR": "71",
    "EBAY_IT": "101",
    "EBAY_ES": "186",
}

# Allowed values echoed back per invalid aspect
INVALID_ALLOWED_PREVIEW = 20


def normalize_aspects(category_id: str, category_tree_id: str, data: Dict[str, Any]) -> CategoryAspects:
    """Split a get_item_aspects_for_category response into required/recommended definitions."""
    required: List[AspectDefinition] = []
    recommended: List[AspectDefinition] = []

    for aspect in data.get("aspects") or []:
        constraint = aspect.get("aspectConstraint") or {}
        mode = AspectMode(constraint.get("aspectMode", AspectMode.FREE_TEXT.value))
        allowed_values: List[str] = []
        if mode == AspectMode.SELECTION_ONLY:
            allowed_values = [
                v["localizedValue"] for v in aspect.get("aspectValues") or [] if v.get("localizedValue")
            ]

        definition = AspectDefinition(
            name=aspect.get("localizedAspectName", ""),
            required=bool(constraint.get("aspectRequired", False)),
            mode=mode,
            allowed_values=allowed_values,
            max_length=constraint.get("aspectMaxLength"),
        )
        (required if definition.required else recommended).append(definition)

    return CategoryAspects(
        category_id=data.get("categoryId") or category_id,
        category_tree_id=data.get("categoryTreeId") or category_tree_id,
        required_aspects=required,
        recommended_aspects=recommended,
    )


class AspectsService:
    """Fetches and caches required/recommended aspects for a category."""

    def __init__(self, client, marketplace_id: Optional[str] = None, cache: Optional[MetadataCache] = None):
        self.client = client
        self.marketplace_id = marketplace_id or ebay_settings.ebay_marketplace_id
        self.cache = cache or MetadataCache("eBay Aspects", ebay_settings.metadata_cache_ttl_seconds)

    def get_item_aspects(self, category_id: str) -> CategoryAspects:
        cache_key = f"{self.marketplace_id}:{category_id}"
        hit = self.cache.get(cache_key)
        if hit is not None:
            aspects, age = hit
            logger.debug(f"[eBay Aspects] Cache hit for category {category_id}")
            return aspects.model_copy(update={"cached": True, "cache_age": age})

        category_tree_id = CATEGORY_TREE_IDS.get(self.marketplace_id, "0")
        logger.info(f"[eBay Aspects] Fetching aspects for category {category_id} (tree: {category_tree_id})")

        response = self.client.get_item_aspects_for_category(category_tree_id, category_id)
        if not response.ok or not response.data:
            logger.warning(f"[eBay Aspects] Failed to fetch aspects for category {category_id}: {response.error_message}")
            return CategoryAspects(category_id=category_id, category_tree_id=category_tree_id)

        aspects = normalize_aspects(category_id, category_tree_id, response.data)
        logger.info(
            f"[eBay Aspects] Found {len(aspects.required_aspects)} required, "
            f"{len(aspects.recommended_aspects)} recommended aspects for category {category_id}"
        )
        self.cache.set(cache_key, aspects)
        return aspects


def validate_item_specifics(item_specifics: Dict[str, str], aspects: CategoryAspects) -> ItemSpecificsCheck:
    """
    Check item specifics against a category's required aspects.

    A required aspect is missing when absent or blank. A present value is
    invalid when a SELECTION_ONLY aspect has no exact (case-insensitive) match
    in its vocabulary, or a FREE_TEXT value is longer than its max length.
    """
    missing: List[str] = []
    invalid: List[InvalidAspectValue] = []

    for aspect in aspects.required_aspects:
        value = item_specifics.get(aspect.name)
        if not value or not value.strip():
            missing.append(aspect.name)
            continue

        if aspect.mode == AspectMode.SELECTION_ONLY and aspect.allowed_values:
            if not matches_exactly(value, aspect.allowed_values):
                invalid.append(InvalidAspectValue(
                    aspect=aspect.name,
                    value=value,
                    allowed=aspect.allowed_values[:INVALID_ALLOWED_PREVIEW],
                ))
        elif aspect.mode == AspectMode.FREE_TEXT and aspect.max_length and len(value) > aspect.max_length:
            invalid.append(InvalidAspectValue(aspect=aspect.name, value=value, max_length=aspect.max_length))

    return ItemSpecificsCheck(valid=not missing and not invalid, missing=missing, invalid=invalid)
