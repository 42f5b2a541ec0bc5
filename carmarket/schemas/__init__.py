# carmarket/schemas/__init__.py

# Auth schemas
from .auth import TokenData

# Listing schemas
from .listing import ListingCreate, ListingEdit, ListingResponse

# Moderation schemas
from .moderation import (
    SubmitRequest,
    ApproveRequest,
    RejectRequest,
    ForceArchiveRequest,
    DeleteRequest,
    TransitionRequest,
    ApprovePayload,
    RejectPayload,
    BatchApprovePayload,
    ModerationLogResponse,
    BatchApproveResponse,
    ModerationQueueResponse,
    ListingForModerationResponse,
)

# Report schemas
from .report import ReportCreate, ReportStatusUpdate, ReportResponse, ReportResolutionResponse

# User schemas
from .user import UserResponse, UserListResponse

__all__ = [
    "TokenData",
    "ListingCreate",
    "ListingEdit",
    "ListingResponse",
    "SubmitRequest",
    "ApproveRequest",
    "RejectRequest",
    "ForceArchiveRequest",
    "DeleteRequest",
    "TransitionRequest",
    "ApprovePayload",
    "RejectPayload",
    "BatchApprovePayload",
    "ModerationLogResponse",
    "BatchApproveResponse",
    "ModerationQueueResponse",
    "ListingForModerationResponse",
    "ReportCreate",
    "ReportStatusUpdate",
    "ReportResponse",
    "ReportResolutionResponse",
    "UserResponse",
    "UserListResponse",
]
