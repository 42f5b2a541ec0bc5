from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, func
from sqlalchemy.orm import relationship
from carmarket.database import Base
import enum


class UserRole(str, enum.Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


# ---------------- USER (AUTH TABLE) ----------------
# Owned by the auth subsystem; moderation reads it and admins switch
# accounts between the user and moderator roles.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    listings = relationship("Listing", foreign_keys="Listing.owner_id", back_populates="owner")

    @property
    def is_moderator(self) -> bool:
        return (self.role or "").lower() in (UserRole.MODERATOR.value, UserRole.ADMIN.value)
