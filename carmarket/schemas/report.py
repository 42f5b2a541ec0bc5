from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from carmarket.models.report import ReportStatus
from carmarket.schemas.listing import ListingResponse


class ReportCreate(BaseModel):
    listing_id: Optional[int] = None
    comment_id: Optional[int] = None
    reason: str = Field(..., max_length=255)
    details: Optional[str] = Field(None, max_length=5000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Report reason is required")
        return v

    @field_validator("details")
    @classmethod
    def validate_details(cls, v):
        if v is None:
            return v
        return v.strip() or None

    @model_validator(mode="after")
    def check_single_target(self):
        if (self.listing_id is None) == (self.comment_id is None):
            raise ValueError("Exactly one of listing_id or comment_id must be given")
        return self


class ReportStatusUpdate(BaseModel):
    status: ReportStatus


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    listing_id: Optional[int] = None
    comment_id: Optional[int] = None
    reason: str
    details: Optional[str] = None
    status: str
    handled_by: Optional[int] = None
    handled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportResolutionResponse(BaseModel):
    report: ReportResponse
    listing: Optional[ListingResponse] = None
    comment_hidden: bool = False
