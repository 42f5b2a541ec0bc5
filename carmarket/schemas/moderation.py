# carmarket/schemas/moderation.py
"""
Moderation Pydantic Schemas

Transition requests form a tagged union on ``kind`` so that every variant
is validated before the transition policy sees it.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from carmarket.schemas.listing import ListingEdit, ListingResponse


# ======================
# TRANSITION REQUESTS
# ======================

class SubmitRequest(BaseModel):
    """Owner edit / resubmission."""
    kind: Literal["submit"] = "submit"
    fields: ListingEdit


class ApproveRequest(BaseModel):
    kind: Literal["approve"] = "approve"
    featured: Optional[bool] = None


class RejectRequest(BaseModel):
    kind: Literal["reject"] = "reject"
    reason: str = Field(..., max_length=255)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Rejection reason is required")
        return v


class ForceArchiveRequest(BaseModel):
    """Issued only by report resolution."""
    kind: Literal["force_archive"] = "force_archive"
    report_id: int


class DeleteRequest(BaseModel):
    kind: Literal["delete"] = "delete"


TransitionRequest = Annotated[
    Union[SubmitRequest, ApproveRequest, RejectRequest, ForceArchiveRequest, DeleteRequest],
    Field(discriminator="kind"),
]


# ======================
# API PAYLOADS
# ======================

class ApprovePayload(BaseModel):
    featured: Optional[bool] = None


class RejectPayload(BaseModel):
    reason: Optional[str] = None


class BatchApprovePayload(BaseModel):
    # Raw ids; the engine parses, filters and caps them
    listing_ids: List[Any] = Field(default_factory=list)
    featured: Optional[bool] = None


# ======================
# RESPONSES
# ======================

class ModerationLogResponse(BaseModel):
    id: int
    listing_id: int
    moderator_id: Optional[int] = None
    old_status: str
    new_status: str
    reason: Optional[str] = None
    changed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BatchApproveResponse(BaseModel):
    approved_ids: List[int]
    skipped_ids: List[int]
    skipped: Dict[int, str] = Field(default_factory=dict, description="Skip reason per listing id")


class ModerationQueueResponse(BaseModel):
    items: List[ListingResponse]
    total: int
    page: int
    limit: int
    pages: int


class ListingForModerationResponse(BaseModel):
    listing: ListingResponse
    history: List[ModerationLogResponse]
    warning: Optional[str] = None
