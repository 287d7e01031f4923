"""
eBay Categories Routes - item aspects and allowed conditions for a category.

Both endpoints read through the metadata caches, so repeated lookups for the
same category do not hit eBay until the cache entry expires.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from schemas import CategoryAspects, CategoryConditions
from integrations.ebay.aspects import AspectsService
from integrations.ebay.metadata import ConditionsService
from routes.dependencies import get_aspects_service, get_conditions_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ebay/categories", tags=["ebay-categories"])


@router.get("/{category_id}/aspects", response_model=CategoryAspects)
async def get_category_aspects(
    category_id: str,
    aspects_service: AspectsService = Depends(get_aspects_service)
):
    """
    Required and recommended item aspects for the given category.

    An eBay failure degrades to an empty aspect list rather than an error.
    """
    try:
        return await asyncio.to_thread(aspects_service.get_item_aspects, category_id)
    except Exception as e:
        logger.error(f"Failed to fetch aspects: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to fetch aspects: {str(e)}")


@router.get("/{category_id}/conditions", response_model=CategoryConditions)
async def get_category_conditions(
    category_id: str,
    conditions_service: ConditionsService = Depends(get_conditions_service)
):
    """Item conditions eBay accepts for the given category."""
    try:
        return await asyncio.to_thread(conditions_service.get_item_condition_policies, category_id)
    except Exception as e:
        logger.error(f"Failed to fetch conditions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to fetch conditions: {str(e)}")
