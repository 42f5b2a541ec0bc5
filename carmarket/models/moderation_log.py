from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP, func
from sqlalchemy.orm import relationship
from carmarket.database import Base

# Pseudo-status recorded when an owner deletes a listing
REMOVED_STATUS = "removed"


class ModerationLog(Base):
    """
    Append-only record of one listing status transition.
    moderator_id is NULL when the owner (resubmit, delete) triggered it.
    """
    __tablename__ = "moderation_logs"

    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: the entry for a deleted listing must outlive the row
    listing_id = Column(Integer, nullable=False, index=True)
    moderator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    old_status = Column(String(20), nullable=False)
    new_status = Column(String(20), nullable=False)
    reason = Column(String(255), nullable=True)
    changed_at = Column(TIMESTAMP, server_default=func.now(), nullable=False, index=True)

    moderator = relationship("User", foreign_keys=[moderator_id])

    def __repr__(self):
        return (
            f"<ModerationLog(id={self.id}, listing_id={self.listing_id}, "
            f"{self.old_status}->{self.new_status})>"
        )
