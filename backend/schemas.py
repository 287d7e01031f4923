"""
Pydantic schemas for listing drafts, category metadata and publish results.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, ConfigDict


class AspectMode(str, Enum):
    FREE_TEXT = "FREE_TEXT"
    SELECTION_ONLY = "SELECTION_ONLY"


class StepName(str, Enum):
    LOCATION = "location"
    INVENTORY = "inventory"
    POLICIES = "policies"
    OFFER = "offer"
    FEES = "fees"
    PUBLISH = "publish"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# Listing draft
# =============================================================================

class ItemCondition(BaseModel):
    """Condition id (internal lower-case id or API enum) plus seller notes"""
    id: Optional[str] = None
    description: str = ""


class Money(BaseModel):
    value: Decimal = Decimal("0")
    currency: str = "USD"


class PolicyIds(BaseModel):
    """Business policy ids supplied by the caller (all three or none)"""
    fulfillment_policy_id: Optional[str] = None
    payment_policy_id: Optional[str] = None
    return_policy_id: Optional[str] = None

    def missing(self) -> List[str]:
        """Names of the policy ids that are not set"""
        return [
            name for name in ("fulfillment_policy_id", "payment_policy_id", "return_policy_id")
            if not getattr(self, name)
        ]

    def is_complete(self) -> bool:
        return not self.missing()


class ListingDraft(BaseModel):
    """Listing ready to be published. Owned by the caller; the pipeline only reads it."""
    model_config = ConfigDict(frozen=True)

    listing_id: str
    title: str = ""
    description: str = ""
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    condition: ItemCondition = Field(default_factory=ItemCondition)
    price: Money = Field(default_factory=Money)
    quantity: int = 1
    image_urls: List[str] = Field(default_factory=list)
    item_specifics: Dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Category metadata
# =============================================================================

class AspectDefinition(BaseModel):
    """One required or recommended category attribute"""
    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = False
    mode: AspectMode = AspectMode.FREE_TEXT
    allowed_values: List[str] = Field(default_factory=list)
    max_length: Optional[int] = None


class CategoryAspects(BaseModel):
    category_id: str
    category_tree_id: str = "0"
    required_aspects: List[AspectDefinition] = Field(default_factory=list)
    recommended_aspects: List[AspectDefinition] = Field(default_factory=list)
    cached: bool = False
    cache_age: Optional[int] = None  # seconds since cached


class ConditionOption(BaseModel):
    id: str  # numeric eBay condition id, e.g. "1000"
    label: str
    description: Optional[str] = None
    api_enum: str


class CategoryConditions(BaseModel):
    category_id: str
    condition_required: bool = False
    conditions: List[ConditionOption] = Field(default_factory=list)
    cached: bool = False
    cache_age: Optional[int] = None


# =============================================================================
# Validation
# =============================================================================

class ValidationError(BaseModel):
    """A single pre-publish validation failure"""
    code: str
    field: str
    message: str
    constraint: Optional[Any] = None
    actual: Optional[Any] = None


class ValidationResult(BaseModel):
    valid: bool
    errors: List[ValidationError] = Field(default_factory=list)


class InvalidAspectValue(BaseModel):
    aspect: str
    value: str
    allowed: List[str] = Field(default_factory=list)
    max_length: Optional[int] = None


class ItemSpecificsCheck(BaseModel):
    valid: bool
    missing: List[str] = Field(default_factory=list)
    invalid: List[InvalidAspectValue] = Field(default_factory=list)


class ConditionCheck(BaseModel):
    valid: bool
    error: Optional[str] = None
    valid_conditions: List[ConditionOption] = Field(default_factory=list)


# =============================================================================
# AI autofill
# =============================================================================

class DetectedValue(BaseModel):
    value: Optional[str] = None
    confidence: float = 0.0


class DetectedAttribute(BaseModel):
    key: str
    value: str
    confidence: float = 0.0


class VisionSignals(BaseModel):
    """Signals detected from the item photos upstream"""
    detected_brand: Optional[DetectedValue] = None
    detected_category: Optional[DetectedValue] = None
    detected_color: Optional[DetectedValue] = None
    detected_attributes: List[DetectedAttribute] = Field(default_factory=list)


class AutofillInput(BaseModel):
    category_id: str
    category_name: str = ""
    required_aspects: List[AspectDefinition] = Field(default_factory=list)
    title: str = ""
    description: str = ""
    vision: Optional[VisionSignals] = None
    current_item_specifics: Dict[str, str] = Field(default_factory=dict)


class AutofillResult(BaseModel):
    item_specifics: Dict[str, str] = Field(default_factory=dict)
    filled_by_ai: List[str] = Field(default_factory=list)
    still_missing: List[str] = Field(default_factory=list)


# =============================================================================
# Publish pipeline
# =============================================================================

class PublishStep(BaseModel):
    step: int = Field(..., ge=1, le=6)
    name: StepName
    status: StepStatus = StepStatus.PENDING
    merchant_location_key: Optional[str] = None
    item_sku: Optional[str] = None
    offer_id: Optional[str] = None
    listing_id: Optional[str] = None
    error: Optional[str] = None


class PublishError(BaseModel):
    code: str
    message: str
    action: str
    ebay_error_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class PublishWarning(BaseModel):
    code: str
    message: str


class FeeAmount(BaseModel):
    value: str
    currency: str


class ListingFee(BaseModel):
    fee_type: str
    amount: FeeAmount


class ListingFees(BaseModel):
    marketplace_id: str
    listing_fees: List[ListingFee] = Field(default_factory=list)
    total_fee: Optional[FeeAmount] = None


class PublishResult(BaseModel):
    success: bool
    steps: List[PublishStep]
    sku: Optional[str] = None
    offer_id: Optional[str] = None
    listing_id: Optional[str] = None
    listing_url: Optional[str] = None
    fees: Optional[ListingFees] = None
    warnings: Optional[List[PublishWarning]] = None
    error: Optional[PublishError] = None
    trace_id: str
    attempted_at: datetime
    published_at: Optional[datetime] = None


# =============================================================================
# API request/response bodies
# =============================================================================

class PublishRequest(BaseModel):
    policies: Optional[PolicyIds] = None


class AutofillRequest(BaseModel):
    vision: Optional[VisionSignals] = None


class ListingStatusResponse(BaseModel):
    listing_id: str
    sku: Optional[str] = None
    offer_id: Optional[str] = None
    ebay_listing_id: Optional[str] = None
    listing_url: Optional[str] = None
    publish_status: Optional[str] = None
    remote_status: Optional[str] = None
