from sqlalchemy import Column, Integer, Text, Boolean, ForeignKey, TIMESTAMP, func
from sqlalchemy.orm import relationship
from carmarket.database import Base


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)
    posted_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    listing = relationship("Listing", back_populates="comments")
    author = relationship("User", foreign_keys=[user_id])
