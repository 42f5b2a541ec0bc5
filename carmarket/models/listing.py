# carmarket/models/listing.py
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, ForeignKey, TIMESTAMP, CHAR, func
from sqlalchemy.orm import relationship
from carmarket.database import Base
import enum


class ListingStatus(str, enum.Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    SOLD = "sold"
    ARCHIVED = "archived"


# Owner edits are refused in these states
EDIT_TERMINAL_STATUSES = (ListingStatus.SOLD.value, ListingStatus.ARCHIVED.value)

# Editing any of these on a published/rejected listing sends it back to review
CORE_FIELDS = ("title", "price", "description")


class Listing(Base):
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(CHAR(3), nullable=False, default="EUR")
    description = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)

    status = Column(String(20), nullable=False, default=ListingStatus.PENDING.value, index=True)
    moderator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    moderation_date = Column(TIMESTAMP, nullable=True)
    rejection_reason = Column(String(255), nullable=True)

    featured = Column(Boolean, nullable=False, default=False)
    views = Column(Integer, nullable=False, default=0)

    # Optimistic concurrency token, bumped by every conditional write
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(TIMESTAMP, nullable=True)

    owner = relationship("User", foreign_keys=[owner_id], back_populates="listings")
    moderator = relationship("User", foreign_keys=[moderator_id])
    comments = relationship("Comment", back_populates="listing", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Listing(id={self.id}, status={self.status}, version={self.version})>"
