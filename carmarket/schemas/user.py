from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


# ======================
# ROLE MANAGEMENT SCHEMAS
# ======================

class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    limit: int
    pages: int
