"""
eBay publish error taxonomy.

Every failure the publish pipeline reports carries one ErrorCode, and every
ErrorCode maps to exactly one SuggestedAction. The UI uses the action to pick
which control to show (reconnect button, "fix this field" link, retry).
"""

import logging
from enum import Enum
from typing import Dict, Any, Optional, List

from schemas import PublishError, ValidationError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    # Connection / auth
    EBAY_NOT_CONNECTED = "EBAY_NOT_CONNECTED"
    EBAY_REAUTH_REQUIRED = "EBAY_REAUTH_REQUIRED"

    # Location
    LOCATION_REQUIRED = "LOCATION_REQUIRED"
    LOCATION_NOT_ENABLED = "LOCATION_NOT_ENABLED"
    EBAY_MERCHANT_LOCATION_KEY_MISSING = "EBAY_MERCHANT_LOCATION_KEY_MISSING"

    # Policies
    POLICIES_MISSING = "POLICIES_MISSING"

    # Pre-publish validation
    VALIDATION_TITLE_REQUIRED = "VALIDATION_TITLE_REQUIRED"
    VALIDATION_TITLE_TOO_LONG = "VALIDATION_TITLE_TOO_LONG"
    VALIDATION_DESCRIPTION_REQUIRED = "VALIDATION_DESCRIPTION_REQUIRED"
    VALIDATION_DESCRIPTION_TOO_LONG = "VALIDATION_DESCRIPTION_TOO_LONG"
    VALIDATION_NO_IMAGES = "VALIDATION_NO_IMAGES"
    VALIDATION_TOO_MANY_IMAGES = "VALIDATION_TOO_MANY_IMAGES"
    VALIDATION_INVALID_CONDITION = "VALIDATION_INVALID_CONDITION"
    VALIDATION_CATEGORY_REQUIRED = "VALIDATION_CATEGORY_REQUIRED"
    VALIDATION_INVALID_PRICE = "VALIDATION_INVALID_PRICE"
    VALIDATION_INVALID_QUANTITY = "VALIDATION_INVALID_QUANTITY"
    VALIDATION_POLICIES_INCOMPLETE = "VALIDATION_POLICIES_INCOMPLETE"
    MISSING_ITEM_SPECIFICS = "MISSING_ITEM_SPECIFICS"
    INVALID_ITEM_SPECIFIC_VALUE = "INVALID_ITEM_SPECIFIC_VALUE"

    # Pipeline steps
    INVENTORY_ITEM_FAILED = "INVENTORY_ITEM_FAILED"
    OFFER_CREATE_FAILED = "OFFER_CREATE_FAILED"
    OFFER_PUBLISH_FAILED = "OFFER_PUBLISH_FAILED"

    # Generic
    PUBLISH_ERROR = "PUBLISH_ERROR"


class SuggestedAction(str, Enum):
    REAUTH = "reauth"
    CREATE_LOCATION = "create_location"
    CHECK_DETAILS = "check_details"
    EDIT_ITEM_SPECIFICS = "edit_item_specifics"
    RETRY = "retry"


SUGGESTED_ACTIONS: Dict[ErrorCode, SuggestedAction] = {
    ErrorCode.EBAY_NOT_CONNECTED: SuggestedAction.REAUTH,
    ErrorCode.EBAY_REAUTH_REQUIRED: SuggestedAction.REAUTH,

    ErrorCode.LOCATION_REQUIRED: SuggestedAction.CREATE_LOCATION,
    ErrorCode.LOCATION_NOT_ENABLED: SuggestedAction.CHECK_DETAILS,  # enable it in Seller Hub
    ErrorCode.EBAY_MERCHANT_LOCATION_KEY_MISSING: SuggestedAction.CREATE_LOCATION,

    ErrorCode.POLICIES_MISSING: SuggestedAction.CHECK_DETAILS,

    ErrorCode.VALIDATION_TITLE_REQUIRED: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_TITLE_TOO_LONG: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_DESCRIPTION_REQUIRED: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_DESCRIPTION_TOO_LONG: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_NO_IMAGES: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_TOO_MANY_IMAGES: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_INVALID_CONDITION: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_CATEGORY_REQUIRED: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_INVALID_PRICE: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_INVALID_QUANTITY: SuggestedAction.CHECK_DETAILS,
    ErrorCode.VALIDATION_POLICIES_INCOMPLETE: SuggestedAction.CHECK_DETAILS,
    ErrorCode.MISSING_ITEM_SPECIFICS: SuggestedAction.EDIT_ITEM_SPECIFICS,
    ErrorCode.INVALID_ITEM_SPECIFIC_VALUE: SuggestedAction.EDIT_ITEM_SPECIFICS,

    ErrorCode.INVENTORY_ITEM_FAILED: SuggestedAction.RETRY,
    ErrorCode.OFFER_CREATE_FAILED: SuggestedAction.CHECK_DETAILS,
    ErrorCode.OFFER_PUBLISH_FAILED: SuggestedAction.RETRY,

    ErrorCode.PUBLISH_ERROR: SuggestedAction.RETRY,
}

_unmapped = set(ErrorCode) - set(SUGGESTED_ACTIONS)
if _unmapped:
    raise RuntimeError(f"Error codes without a suggested action: {sorted(c.value for c in _unmapped)}")


DEFAULT_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.EBAY_NOT_CONNECTED: "Please connect your eBay account first",
    ErrorCode.EBAY_REAUTH_REQUIRED: "Your eBay session has expired. Please reconnect your account.",
    ErrorCode.LOCATION_REQUIRED: "Please set up a shipping location before listing",
    ErrorCode.LOCATION_NOT_ENABLED: (
        "Inventory location exists but is not ENABLED. Please enable it in eBay Seller Hub."
    ),
    ErrorCode.EBAY_MERCHANT_LOCATION_KEY_MISSING: "merchantLocationKey is required but was not provided",
    ErrorCode.POLICIES_MISSING: (
        "Missing required business policies. Please configure them in eBay Seller Hub."
    ),
    ErrorCode.MISSING_ITEM_SPECIFICS: "Required item specifics are missing for this category",
    ErrorCode.INVALID_ITEM_SPECIFIC_VALUE: "Some item specifics have values eBay does not accept",
    ErrorCode.INVENTORY_ITEM_FAILED: "Failed to create item on eBay",
    ErrorCode.OFFER_CREATE_FAILED: "Failed to create offer on eBay",
    ErrorCode.OFFER_PUBLISH_FAILED: "Failed to publish listing to eBay",
    ErrorCode.PUBLISH_ERROR: "An error occurred while publishing",
}

SHIPPING_LOCATION_MARKER = "shipping location required"

OFFER_SHIPPING_LOCATION_MESSAGE = (
    "eBay requires an inventory location (warehouse). Your Ship From address is not "
    "sufficient - please verify your inventory location is set up correctly in eBay "
    "Seller Hub under \"Manage Inventory Locations\"."
)

PUBLISH_SHIPPING_LOCATION_MESSAGE = (
    "eBay requires an inventory location (warehouse). Please verify your inventory "
    "location exists and is ENABLED in eBay Seller Hub."
)

# eBay errorId -> our code, for ids that mean something more specific than
# "this step failed"
EBAY_ERROR_ID_MAP: Dict[str, ErrorCode] = {
    "25003": ErrorCode.LOCATION_REQUIRED,  # merchantLocationKey missing / invalid
    "21916289": ErrorCode.POLICIES_MISSING,
}


def suggested_action(code: ErrorCode) -> SuggestedAction:
    """Recovery action for an error code."""
    return SUGGESTED_ACTIONS[code]


def build_publish_error(
    code: ErrorCode,
    message: Optional[str] = None,
    ebay_error_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> PublishError:
    """Build the single structured error carried by a failed PublishResult."""
    return PublishError(
        code=code.value,
        message=message or DEFAULT_MESSAGES.get(code, code.value),
        action=suggested_action(code).value,
        ebay_error_id=ebay_error_id,
        details=details,
    )


def classify_remote_error(
    default: ErrorCode,
    status_code: Optional[int] = None,
    ebay_error_id: Optional[str] = None
) -> ErrorCode:
    """
    Map a failed remote call onto the taxonomy.

    Auth failures and a handful of well-known eBay error ids get their own
    code; everything else keeps the step's default code.
    """
    if status_code in (401, 403):
        return ErrorCode.EBAY_REAUTH_REQUIRED
    if ebay_error_id and ebay_error_id in EBAY_ERROR_ID_MAP:
        return EBAY_ERROR_ID_MAP[ebay_error_id]
    return default


def rewrite_shipping_location_message(raw_message: str, user_message: str) -> str:
    """
    Swap eBay's "shipping location required" text for an actionable one.

    The raw text is logged so the diagnostic is not lost.
    """
    if raw_message and SHIPPING_LOCATION_MARKER in raw_message.lower():
        logger.error(f"[Publish] Shipping location error - raw eBay message: {raw_message}")
        return user_message
    return raw_message


def validation_error_from_issues(issues: List[ValidationError]) -> PublishError:
    """
    Collapse local validation failures into one PublishError.

    The first issue decides the code; all issues go into details.
    """
    primary = issues[0]
    message = primary.message if len(issues) == 1 else f"Validation failed: {len(issues)} errors"
    return build_publish_error(
        ErrorCode(primary.code),
        message,
        details={"errors": [issue.model_dump(exclude_none=True) for issue in issues]},
    )
