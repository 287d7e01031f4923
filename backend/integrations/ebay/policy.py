"""
Policy Service - resolves the seller's default business policies.

Used by the pipeline when the caller did not supply all three policy ids.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List, Tuple

from schemas import PolicyIds
from settings import ebay_settings

logger = logging.getLogger(__name__)

# Resolved defaults per marketplace, shared across service instances (TTL = 10 minutes)
_policy_cache: Dict[str, Tuple[PolicyIds, datetime]] = {}
POLICY_CACHE_TTL_SECONDS = 600

# policy type -> (client method, response list key, id key)
POLICY_TYPES: Dict[str, Tuple[str, str, str]] = {
    "fulfillment": ("get_fulfillment_policies", "fulfillmentPolicies", "fulfillmentPolicyId"),
    "payment": ("get_payment_policies", "paymentPolicies", "paymentPolicyId"),
    "return": ("get_return_policies", "returnPolicies", "returnPolicyId"),
}


def _is_default(policy: Dict[str, Any]) -> bool:
    return any(ct.get("default") for ct in policy.get("categoryTypes") or [])


def select_default_policy(policies: List[Dict[str, Any]], id_key: str) -> Optional[str]:
    """The policy flagged default for the marketplace, else the first one."""
    if not policies:
        return None
    chosen = next((p for p in policies if _is_default(p)), policies[0])
    return chosen.get(id_key)


class PolicyService:
    """Looks up default fulfillment/payment/return policies for a marketplace."""

    def __init__(self, client, marketplace_id: Optional[str] = None):
        self.client = client
        self.marketplace_id = marketplace_id or ebay_settings.ebay_marketplace_id

    def get_default_policies(self) -> PolicyIds:
        """
        Resolve one policy id per type. Types the seller has no policy for
        (or whose lookup failed) stay None.
        """
        cache_key = f"{self.marketplace_id}_resolved"
        if cache_key in _policy_cache:
            cached_ids, cached_at = _policy_cache[cache_key]
            if datetime.now() - cached_at < timedelta(seconds=POLICY_CACHE_TTL_SECONDS):
                logger.debug(f"[Policies] Cache hit for {self.marketplace_id}")
                return cached_ids
            logger.debug(f"[Policies] Cache expired for {self.marketplace_id}, refreshing")

        resolved: Dict[str, Optional[str]] = {}
        for policy_type, (method_name, list_key, id_key) in POLICY_TYPES.items():
            response = getattr(self.client, method_name)(self.marketplace_id)
            if not response.ok or not response.data:
                logger.error(f"[Policies] Failed to fetch {policy_type} policies: {response.error_message}")
                resolved[f"{policy_type}_policy_id"] = None
                continue
            resolved[f"{policy_type}_policy_id"] = select_default_policy(response.data.get(list_key) or [], id_key)

        policy_ids = PolicyIds(**resolved)
        logger.info(
            f"[Policies] Resolved defaults for {self.marketplace_id}: "
            f"payment={policy_ids.payment_policy_id}, "
            f"return={policy_ids.return_policy_id}, "
            f"fulfillment={policy_ids.fulfillment_policy_id}"
        )

        # Only cache a complete set so a newly created policy is picked up
        if policy_ids.is_complete():
            _policy_cache[cache_key] = (policy_ids, datetime.now())
        return policy_ids
