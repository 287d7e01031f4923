"""
Inventory Location Service - makes sure the seller has a ship-from location.

eBay will not publish an offer without a merchantLocationKey, so the first
pipeline step resolves one: an existing ENABLED location, else any existing
location, else a new one created from the configured seller address.
"""

import logging
from typing import Dict, Any, Optional

from settings import ebay_settings

logger = logging.getLogger(__name__)

LOCATION_STATUS_ENABLED = "ENABLED"
AUTH_FAILURE_CODES = (401, 403)


class LocationService:
    """Resolves and verifies the seller's inventory location."""

    def __init__(self, client, default_location_key: Optional[str] = None, address: Optional[Dict[str, str]] = None):
        """
        Args:
            client: EBayClient (or compatible) for the seller
            default_location_key: Key used when a location has to be created
            address: Seller address for location creation; defaults to settings
        """
        self.client = client
        self.default_location_key = default_location_key or ebay_settings.ebay_default_location_key
        self.address = address if address is not None else self._address_from_settings()

    @staticmethod
    def _address_from_settings() -> Dict[str, str]:
        address = {
            "addressLine1": ebay_settings.ebay_location_address_line1,
            "city": ebay_settings.ebay_location_city,
            "stateOrProvince": ebay_settings.ebay_location_state,
            "postalCode": ebay_settings.ebay_location_postal_code,
            "country": ebay_settings.ebay_location_country,
        }
        return {k: v for k, v in address.items() if v}

    def has_usable_address(self) -> bool:
        """eBay needs a postal code, or city plus state."""
        return bool(
            self.address.get("postalCode")
            or (self.address.get("city") and self.address.get("stateOrProvince"))
        )

    def ensure_location_exists(self) -> Dict[str, Any]:
        """
        Returns:
            Dict with success, location_key, error and the failing status_code
        """
        response = self.client.get_inventory_locations()
        locations = (response.data or {}).get("locations") or [] if response.ok else []

        if locations:
            enabled = next(
                (loc for loc in locations if loc.get("merchantLocationStatus") == LOCATION_STATUS_ENABLED),
                None
            )
            location = enabled or locations[0]
            logger.info(f"[Location] Using existing location: {location.get('merchantLocationKey')}")
            return {"success": True, "location_key": location.get("merchantLocationKey"), "error": None, "status_code": None}

        if not response.ok:
            logger.warning(f"[Location] Could not list locations ({response.status_code}): {response.error_message}")
            if response.status_code in AUTH_FAILURE_CODES:
                return {
                    "success": False,
                    "location_key": None,
                    "error": response.error_message or f"HTTP {response.status_code}",
                    "status_code": response.status_code,
                }

        if not self.has_usable_address():
            logger.info("[Location] No locations and no seller address configured")
            return {
                "success": False,
                "location_key": None,
                "error": "Shipping location required to publish listings",
                "status_code": None,
            }

        return self.create_location(self.default_location_key)

    def create_location(self, location_key: str, name: str = "Default Shipping Location") -> Dict[str, Any]:
        address = dict(self.address)
        address.setdefault("country", "US")
        payload = {
            "name": name,
            "location": {"address": address},
            "locationTypes": ["WAREHOUSE"],
            "merchantLocationStatus": LOCATION_STATUS_ENABLED,
        }

        logger.info(f"[Location] Creating location {location_key} (address keys: {sorted(address.keys())})")
        response = self.client.create_inventory_location(location_key, payload)

        if response.ok:
            return {"success": True, "location_key": location_key, "error": None, "status_code": None}

        logger.error(f"[Location] Create location {location_key} failed ({response.status_code}): {response.error_message}")
        return {
            "success": False,
            "location_key": None,
            "error": response.error_message or "Failed to create default location",
            "status_code": response.status_code,
        }

    def get_location_by_key(self, location_key: str) -> Dict[str, Any]:
        """
        Returns:
            Dict with success, status (merchantLocationStatus), error and status_code
        """
        response = self.client.get_inventory_location(location_key)
        if response.ok and response.data is not None:
            status = response.data.get("merchantLocationStatus")
            logger.info(f"[Location] Location {location_key} status={status}")
            return {"success": True, "status": status, "error": None, "status_code": None}

        return {
            "success": False,
            "status": None,
            "error": response.error_message or f"HTTP {response.status_code}",
            "status_code": response.status_code,
        }
