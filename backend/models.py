from datetime import datetime
from typing import Optional, Dict, Any, List
from uuid import uuid4
from sqlmodel import SQLModel, Field, JSON, Column
from enum import Enum


class PublishStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


def _now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


class Listing(SQLModel, table=True):
    """Generated listing as stored by the app, plus its eBay publish outcome."""
    __tablename__ = "listings"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    # Generated listing content
    title: str = Field(default="")
    description: str = Field(default="")
    category_name: str = Field(default="")
    ebay_category_id: Optional[str] = Field(default=None)
    condition: str = Field(default="good")  # internal id, e.g. "like_new"
    brand: Optional[str] = Field(default=None)
    attributes: List[Dict[str, str]] = Field(default_factory=list, sa_column=Column(JSON))
    item_specifics: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    photo_urls: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    price: float = Field(default=0.0)
    currency: str = Field(default="USD")

    # eBay publishing
    sku: Optional[str] = Field(default=None)
    ebay_offer_id: Optional[str] = Field(default=None)
    ebay_listing_id: Optional[str] = Field(default=None)
    publish_status: Optional[PublishStatus] = Field(default=None)
    last_publish: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))  # PublishResult JSON

    # Timestamps
    created_at: int = Field(default_factory=_now_ms)
    updated_at: int = Field(default_factory=_now_ms)
