from typing import Optional

from pydantic import BaseModel


class TokenData(BaseModel):
    user_id: Optional[int] = None
    role: Optional[str] = None
