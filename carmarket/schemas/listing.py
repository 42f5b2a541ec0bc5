# carmarket/schemas/listing.py
"""
Listing Pydantic Schemas
Owner-side payloads and the listing shape returned to callers.
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_PRICE = Decimal("999999999999.99")


class _ListingFields(BaseModel):
    """Shared field rules for create and edit payloads."""
    model_config = ConfigDict(extra="forbid")

    @field_validator("title", check_fields=False)
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("currency", check_fields=False)
    @classmethod
    def validate_currency(cls, v):
        if v is None:
            return v
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be a 3-letter code")
        return v


class ListingCreate(_ListingFields):
    title: str = Field(..., max_length=200)
    price: Decimal = Field(..., gt=0, le=MAX_PRICE)
    currency: str = "EUR"
    description: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)


class ListingEdit(_ListingFields):
    """Owner edit. Only the fields actually sent are applied."""
    title: Optional[str] = Field(None, max_length=200)
    price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE)
    currency: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def check_required_not_cleared(self):
        for name in ("title", "price", "currency"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ListingResponse(BaseModel):
    id: int
    owner_id: int
    title: str
    price: Decimal
    currency: str
    description: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    status: str
    moderator_id: Optional[int] = None
    moderation_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    featured: bool = False
    views: int = 0
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
