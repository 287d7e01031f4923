"""
Settings and configuration for eBay integration and AI providers
"""
import os
import logging
from enum import Enum
from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class AIProvider(str, Enum):
    """AI provider options"""
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    MOCK = "mock"


class EBaySettings(BaseSettings):
    """eBay API configuration"""

    # Environment
    ebay_env: Literal["production", "sandbox"] = os.getenv("EBAY_ENV", "production")
    ebay_marketplace_id: str = os.getenv("EBAY_MARKETPLACE_ID", "EBAY_US")
    ebay_content_language: str = os.getenv("EBAY_CONTENT_LANGUAGE", "en-US")
    ebay_request_timeout: float = float(os.getenv("EBAY_REQUEST_TIMEOUT", "30"))

    # Seller connection (token is issued by the surrounding app's OAuth flow)
    ebay_access_token: str = os.getenv("EBAY_ACCESS_TOKEN", "")
    ebay_token_expired: bool = os.getenv("EBAY_TOKEN_EXPIRED", "").lower() in ("true", "1", "yes")

    # Publish pipeline
    ebay_fees_enabled: bool = os.getenv("EBAY_FEES_ENABLED", "").lower() in ("true", "1", "yes")
    ebay_sku_prefix: str = os.getenv("EBAY_SKU_PREFIX", "RSAI")

    # Inventory location (used only when the seller has no location at all)
    ebay_default_location_key: str = os.getenv("EBAY_DEFAULT_LOCATION_KEY", "RESELLRAI_DEFAULT")
    ebay_location_address_line1: Optional[str] = os.getenv("EBAY_LOCATION_ADDRESS_LINE1", None)
    ebay_location_city: Optional[str] = os.getenv("EBAY_LOCATION_CITY", None)
    ebay_location_state: Optional[str] = os.getenv("EBAY_LOCATION_STATE", None)
    ebay_location_postal_code: Optional[str] = os.getenv("EBAY_LOCATION_POSTAL_CODE", None)
    ebay_location_country: str = os.getenv("EBAY_LOCATION_COUNTRY", "US")

    # Category metadata cache
    metadata_cache_ttl_seconds: int = int(os.getenv("METADATA_CACHE_TTL_SECONDS", str(24 * 60 * 60)))

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables not defined in this class

    def get_api_base_url(self) -> str:
        """Get eBay API base URL based on environment"""
        if self.ebay_env == "sandbox":
            return "https://api.sandbox.ebay.com"
        return "https://api.ebay.com"

    def get_listing_url(self, listing_id: str) -> str:
        """Public item page for a published listing"""
        if self.ebay_env == "sandbox":
            return f"https://sandbox.ebay.com/itm/{listing_id}"
        return f"https://www.ebay.com/itm/{listing_id}"


class AISettings(BaseSettings):
    """AI provider configuration"""

    # Provider selection
    ai_provider: AIProvider = os.getenv("AI_PROVIDER", "openai")

    # API Keys
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY", None)
    openrouter_api_key: Optional[str] = os.getenv("OPENROUTER_API_KEY", None)

    # Model configuration
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openrouter_model: str = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")
    ai_request_timeout: float = float(os.getenv("AI_REQUEST_TIMEOUT", "60"))

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables not defined in this class

    @field_validator("ai_provider", mode="after")
    @classmethod
    def validate_provider_in_production(cls, v: AIProvider) -> AIProvider:
        """Forbid 'mock' provider in production environment."""
        app_env = os.getenv("APP_ENV", "").lower()

        if app_env == "production" and v == AIProvider.MOCK:
            raise ValueError(
                "AI_PROVIDER='mock' is not allowed in production. "
                "Set APP_ENV to a non-production value, or use 'openai' or 'openrouter'."
            )
        return v

    def validate(self) -> None:
        """Validate settings and log warnings."""
        if self.ai_provider == AIProvider.OPENAI and not self.openai_api_key:
            logger.warning("AI_PROVIDER is set to 'openai' but OPENAI_API_KEY is not configured")
        elif self.ai_provider == AIProvider.OPENROUTER and not self.openrouter_api_key:
            logger.warning("AI_PROVIDER is set to 'openrouter' but OPENROUTER_API_KEY is not configured")


# Global settings instances
ebay_settings = EBaySettings()
ai_settings = AISettings()

# Validate AI settings on import
ai_settings.validate()
