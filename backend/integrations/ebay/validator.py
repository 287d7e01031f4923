"""
Pre-publish validation.

validate_publish_input runs every local field check and reports all failures
at once. PrepublishValidator adds the two category-aware checks (condition
and item specifics) that need eBay metadata. Both run before the first
pipeline step, so a bad draft never creates anything remotely.
"""

import logging
from typing import List, Optional

from schemas import ListingDraft, PolicyIds, ValidationError, ValidationResult, PublishError
from integrations.ebay.aspects import validate_item_specifics
from integrations.ebay.errors import ErrorCode, build_publish_error

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 80
DESCRIPTION_MAX_LENGTH = 4000
MIN_IMAGES = 1
MAX_IMAGES = 12
MIN_PRICE = 0
MIN_QUANTITY = 1

VALID_CONDITIONS = frozenset({
    "NEW", "LIKE_NEW", "VERY_GOOD", "GOOD", "ACCEPTABLE",
    "new", "like_new", "very_good", "good", "acceptable",
    "fair",  # maps to GOOD
    "poor",  # maps to ACCEPTABLE
})


def validate_publish_input(draft: ListingDraft, policies: Optional[PolicyIds] = None) -> ValidationResult:
    """
    Validate every locally checkable field of a draft.

    All checks run; each contributes at most one error.
    """
    errors: List[ValidationError] = []

    if not draft.title or not draft.title.strip():
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_TITLE_REQUIRED.value,
            field="title",
            message="Title is required",
        ))
    elif len(draft.title) > TITLE_MAX_LENGTH:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_TITLE_TOO_LONG.value,
            field="title",
            message=f"Title exceeds maximum length of {TITLE_MAX_LENGTH} characters",
            constraint=TITLE_MAX_LENGTH,
            actual=len(draft.title),
        ))

    if not draft.description or not draft.description.strip():
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_DESCRIPTION_REQUIRED.value,
            field="description",
            message="Description is required",
        ))
    elif len(draft.description) > DESCRIPTION_MAX_LENGTH:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_DESCRIPTION_TOO_LONG.value,
            field="description",
            message=f"Description exceeds maximum length of {DESCRIPTION_MAX_LENGTH} characters",
            constraint=DESCRIPTION_MAX_LENGTH,
            actual=len(draft.description),
        ))

    image_count = len(draft.image_urls)
    if image_count < MIN_IMAGES:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_NO_IMAGES.value,
            field="image_urls",
            message=f"At least {MIN_IMAGES} image is required",
            constraint=MIN_IMAGES,
            actual=image_count,
        ))
    elif image_count > MAX_IMAGES:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_TOO_MANY_IMAGES.value,
            field="image_urls",
            message=f"Maximum {MAX_IMAGES} images allowed",
            constraint=MAX_IMAGES,
            actual=image_count,
        ))

    condition_id = draft.condition.id
    if not condition_id:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_INVALID_CONDITION.value,
            field="condition.id",
            message="Condition is required",
        ))
    elif condition_id not in VALID_CONDITIONS:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_INVALID_CONDITION.value,
            field="condition.id",
            message=f"Invalid condition: {condition_id}. Valid values: NEW, LIKE_NEW, VERY_GOOD, GOOD, ACCEPTABLE",
            actual=condition_id,
        ))

    if not draft.category_id or not draft.category_id.strip():
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_CATEGORY_REQUIRED.value,
            field="category_id",
            message="Category ID is required",
        ))

    if draft.price.value <= MIN_PRICE:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_INVALID_PRICE.value,
            field="price.value",
            message="Price must be greater than 0",
            constraint=MIN_PRICE,
            actual=str(draft.price.value),
        ))

    if draft.quantity < MIN_QUANTITY:
        errors.append(ValidationError(
            code=ErrorCode.VALIDATION_INVALID_QUANTITY.value,
            field="quantity",
            message=f"Quantity must be at least {MIN_QUANTITY}",
            constraint=MIN_QUANTITY,
            actual=draft.quantity,
        ))

    # All three policy ids or none; none means "use the seller's defaults"
    if policies is not None:
        missing = policies.missing()
        if 0 < len(missing) < 3:
            errors.append(ValidationError(
                code=ErrorCode.VALIDATION_POLICIES_INCOMPLETE.value,
                field="policies",
                message=f"Missing policy IDs: {', '.join(missing)}. All 3 policies are required.",
                actual=f"missing: {', '.join(missing)}",
            ))

    return ValidationResult(valid=not errors, errors=errors)


class PrepublishValidator:
    """Category-aware checks against eBay metadata."""

    def __init__(self, aspects_service, conditions_service):
        self.aspects_service = aspects_service
        self.conditions_service = conditions_service

    def check(self, draft: ListingDraft) -> Optional[PublishError]:
        """
        Returns:
            PublishError for the first failing check, or None when the draft
            passes (or has no category to check against)
        """
        if not draft.category_id:
            return None

        condition_check = self.conditions_service.validate_condition(draft.category_id, draft.condition.id or "")
        if not condition_check.valid:
            logger.warning(f"[Validator] {condition_check.error}")
            return build_publish_error(
                ErrorCode.VALIDATION_INVALID_CONDITION,
                condition_check.error,
                details={
                    "valid_conditions": [c.model_dump() for c in condition_check.valid_conditions]
                },
            )

        aspects = self.aspects_service.get_item_aspects(draft.category_id)
        specifics_check = validate_item_specifics(draft.item_specifics, aspects)
        if specifics_check.valid:
            return None

        invalid = [i.model_dump(exclude_none=True) for i in specifics_check.invalid]
        if specifics_check.missing:
            logger.warning(f"[Validator] Missing required item specifics: {', '.join(specifics_check.missing)}")
            details = {"missing_aspects": specifics_check.missing}
            if invalid:
                details["invalid_aspects"] = invalid
            return build_publish_error(
                ErrorCode.MISSING_ITEM_SPECIFICS,
                f"Missing required item specifics: {', '.join(specifics_check.missing)}",
                details=details,
            )

        names = ", ".join(i.aspect for i in specifics_check.invalid)
        logger.warning(f"[Validator] Invalid item specific values: {names}")
        return build_publish_error(
            ErrorCode.INVALID_ITEM_SPECIFIC_VALUE,
            f"Invalid values for item specifics: {names}",
            details={"invalid_aspects": invalid},
        )
