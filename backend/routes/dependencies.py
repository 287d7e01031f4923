"""
FastAPI dependencies that assemble the eBay services for a request.

Routes receive their collaborators through Depends, so tests swap any of
them with app.dependency_overrides.
"""

from fastapi import Depends

from settings import ebay_settings
from integrations.ebay.aspects import AspectsService
from integrations.ebay.autofill import AutofillService
from integrations.ebay.cache import MetadataCache
from integrations.ebay.client import EBayClient
from integrations.ebay.location import LocationService
from integrations.ebay.metadata import ConditionsService
from integrations.ebay.policy import PolicyService
from integrations.ebay.publish import PublishPipeline, SellerAccount
from integrations.ebay.validator import PrepublishValidator
from services.text_generation import TextGenerationService

# Category metadata caches outlive a single request
_aspects_cache = MetadataCache("eBay Aspects", ebay_settings.metadata_cache_ttl_seconds)
_conditions_cache = MetadataCache("eBay Metadata", ebay_settings.metadata_cache_ttl_seconds)


def get_ebay_client() -> EBayClient:
    return EBayClient(access_token=ebay_settings.ebay_access_token)


def get_seller_account() -> SellerAccount:
    return SellerAccount.from_settings()


def get_aspects_service(client: EBayClient = Depends(get_ebay_client)) -> AspectsService:
    return AspectsService(client, cache=_aspects_cache)


def get_conditions_service(client: EBayClient = Depends(get_ebay_client)) -> ConditionsService:
    return ConditionsService(client, cache=_conditions_cache)


def get_prepublish_validator(
    aspects_service: AspectsService = Depends(get_aspects_service),
    conditions_service: ConditionsService = Depends(get_conditions_service)
) -> PrepublishValidator:
    return PrepublishValidator(aspects_service, conditions_service)


def get_publish_pipeline(
    client: EBayClient = Depends(get_ebay_client),
    prepublish_validator: PrepublishValidator = Depends(get_prepublish_validator)
) -> PublishPipeline:
    return PublishPipeline(
        client=client,
        location_service=LocationService(client),
        policy_service=PolicyService(client),
        prepublish_validator=prepublish_validator,
    )


def get_autofill_service() -> AutofillService:
    return AutofillService(TextGenerationService())
