"""
eBay API Client - Authenticated HTTP client for eBay Sell APIs.

Every call returns an ApiResponse; transport failures are reported in the
response instead of raised, so callers can map them onto publish steps.
"""

import logging
import requests
import uuid
from dataclasses import dataclass
from typing import Dict, Any, Optional, List
from urllib.parse import quote

from settings import ebay_settings

logger = logging.getLogger(__name__)

INVENTORY_API = "/sell/inventory/v1"
ACCOUNT_API = "/sell/account/v1"


@dataclass
class ApiResponse:
    """Outcome of one eBay API call."""
    status_code: Optional[int]
    data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    error_id: Optional[str] = None
    request_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


class EBayClient:
    """Authenticated HTTP client for eBay Sell APIs."""

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        marketplace_id: Optional[str] = None,
        content_language: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize eBay client.

        Args:
            access_token: Seller's user access token
            base_url: API host (defaults to the configured environment)
            marketplace_id: Value for X-EBAY-C-MARKETPLACE-ID
            content_language: Value for Content-Language
            timeout: Per-request timeout in seconds
        """
        self.access_token = access_token
        self.base_url = base_url or ebay_settings.get_api_base_url()
        self.marketplace_id = marketplace_id or ebay_settings.ebay_marketplace_id
        self.content_language = content_language or ebay_settings.ebay_content_language
        self.timeout = timeout or ebay_settings.ebay_request_timeout

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> ApiResponse:
        """
        Make authenticated HTTP request to eBay API.

        Args:
            method: HTTP method (GET, POST, PUT, etc.)
            endpoint: API endpoint path (e.g., "/sell/inventory/v1/inventory_item/{sku}")
            data: Request body (will be JSON-encoded)
            params: Query parameters

        Returns:
            ApiResponse with parsed body on 2xx, flattened eBay error otherwise
        """
        request_id = str(uuid.uuid4())[:8]
        url = f"{self.base_url}{endpoint}"

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Language": self.content_language,
            "Accept": "application/json",
            "X-EBAY-C-MARKETPLACE-ID": self.marketplace_id
        }

        # Only send Content-Type when there is a body
        if data is not None:
            headers["Content-Type"] = "application/json"

        try:
            logger.info(f"[Request {request_id}] {method} {endpoint} (body: {'yes' if data else 'no'})")
            if data:
                logger.debug(f"[Request {request_id}] Payload keys: {sorted(data.keys())}")

            response = requests.request(
                method=method,
                url=url,
                headers=headers,
                json=data,
                params=params,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"[Request {request_id}] Request exception: {e}")
            return ApiResponse(status_code=None, error_message=f"Request failed: {str(e)}", request_id=request_id)

        logger.info(f"[Request {request_id}] Status: {response.status_code}")

        if 200 <= response.status_code < 300:
            if not response.content:
                return ApiResponse(status_code=response.status_code, data={}, request_id=request_id)
            try:
                return ApiResponse(status_code=response.status_code, data=response.json(), request_id=request_id)
            except ValueError:
                return ApiResponse(
                    status_code=response.status_code,
                    error_message=f"Invalid JSON response: {response.text[:200]}",
                    request_id=request_id
                )

        error_message, error_id = self._parse_error(response)
        logger.error(f"[Request {request_id}] Error {response.status_code}: {error_message}")
        return ApiResponse(
            status_code=response.status_code,
            error_message=error_message,
            error_id=error_id,
            request_id=request_id
        )

    @staticmethod
    def _parse_error(response: requests.Response) -> "tuple[str, Optional[str]]":
        """Flatten an eBay errors[] body into (message, first errorId)."""
        try:
            error_data = response.json()
        except ValueError:
            return (response.text[:500] if response.text else f"HTTP {response.status_code}"), None

        errors = error_data.get("errors", []) if isinstance(error_data, dict) else []
        if not errors:
            message = error_data.get("message") if isinstance(error_data, dict) else None
            return message or f"HTTP {response.status_code}", None

        messages = []
        for err in errors:
            message = err.get("longMessage") or err.get("message") or "No message"
            messages.append(message)
            logger.debug(
                f"eBay error {err.get('errorId', 'N/A')} "
                f"({err.get('domain', 'N/A')}/{err.get('category', 'N/A')}): {message} "
                f"[Parameters: {err.get('parameters', [])}]"
            )

        error_id = errors[0].get("errorId")
        return "; ".join(messages), (str(error_id) if error_id is not None else None)

    # ------------------------------------------------------------------
    # Inventory API
    # ------------------------------------------------------------------

    def create_or_replace_inventory_item(self, sku: str, inventory_item: Dict[str, Any]) -> ApiResponse:
        """PUT inventory_item/{sku} - idempotent create or replace."""
        return self._make_request("PUT", f"{INVENTORY_API}/inventory_item/{quote(sku, safe='')}", data=inventory_item)

    def create_offer(self, offer: Dict[str, Any]) -> ApiResponse:
        """POST offer. On success data carries offerId and optional warnings."""
        return self._make_request("POST", f"{INVENTORY_API}/offer", data=offer)

    def publish_offer(self, offer_id: str) -> ApiResponse:
        """POST offer/{id}/publish. eBay expects no request body."""
        return self._make_request("POST", f"{INVENTORY_API}/offer/{quote(offer_id, safe='')}/publish")

    def get_listing_fees(self, offer_ids: List[str]) -> ApiResponse:
        """POST offer/get_listing_fees for unpublished offers."""
        payload = {"offers": [{"offerId": offer_id} for offer_id in offer_ids]}
        return self._make_request("POST", f"{INVENTORY_API}/offer/get_listing_fees", data=payload)

    def get_listing(self, listing_id: str) -> ApiResponse:
        """GET listing/{id} - current status of a published listing."""
        return self._make_request("GET", f"{INVENTORY_API}/listing/{quote(listing_id, safe='')}")

    def get_inventory_locations(self) -> ApiResponse:
        return self._make_request("GET", f"{INVENTORY_API}/location", params={"limit": 100})

    def get_inventory_location(self, merchant_location_key: str) -> ApiResponse:
        return self._make_request("GET", f"{INVENTORY_API}/location/{quote(merchant_location_key, safe='')}")

    def create_inventory_location(self, merchant_location_key: str, location: Dict[str, Any]) -> ApiResponse:
        return self._make_request(
            "POST",
            f"{INVENTORY_API}/location/{quote(merchant_location_key, safe='')}",
            data=location
        )

    # ------------------------------------------------------------------
    # Account API (business policies)
    # ------------------------------------------------------------------

    def get_fulfillment_policies(self, marketplace_id: Optional[str] = None) -> ApiResponse:
        return self._make_request(
            "GET", f"{ACCOUNT_API}/fulfillment_policy",
            params={"marketplace_id": marketplace_id or self.marketplace_id}
        )

    def get_payment_policies(self, marketplace_id: Optional[str] = None) -> ApiResponse:
        return self._make_request(
            "GET", f"{ACCOUNT_API}/payment_policy",
            params={"marketplace_id": marketplace_id or self.marketplace_id}
        )

    def get_return_policies(self, marketplace_id: Optional[str] = None) -> ApiResponse:
        return self._make_request(
            "GET", f"{ACCOUNT_API}/return_policy",
            params={"marketplace_id": marketplace_id or self.marketplace_id}
        )

    # ------------------------------------------------------------------
    # Taxonomy / Metadata API
    # ------------------------------------------------------------------

    def get_item_aspects_for_category(self, category_tree_id: str, category_id: str) -> ApiResponse:
        return self._make_request(
            "GET",
            f"/commerce/taxonomy/v1/category_tree/{category_tree_id}/get_item_aspects_for_category",
            params={"category_id": category_id}
        )

    def get_item_condition_policies(self, category_id: str, marketplace_id: Optional[str] = None) -> ApiResponse:
        marketplace = marketplace_id or self.marketplace_id
        return self._make_request(
            "GET",
            f"/sell/metadata/v1/marketplace/{marketplace}/get_item_condition_policies",
            params={"filter": f"categoryIds:{{{category_id}}}"}
        )
