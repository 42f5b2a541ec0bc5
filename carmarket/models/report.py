from sqlalchemy import Column, Integer, String, Text, ForeignKey, TIMESTAMP, Index, func, text
from sqlalchemy.orm import relationship
from carmarket.database import Base
import enum


class ReportStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


ACTIVE_REPORT_STATUSES = (ReportStatus.OPEN.value, ReportStatus.IN_PROGRESS.value)
TERMINAL_REPORT_STATUSES = (ReportStatus.RESOLVED.value, ReportStatus.DISMISSED.value)

# Partial-index predicate shared by the model and the migration
ACTIVE_REPORT_PREDICATE = "status IN ('open', 'in_progress')"


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Exactly one of listing_id / comment_id is set at creation. Plain ids, no
    # foreign keys: deleting the target must not blank out the report.
    listing_id = Column(Integer, nullable=True, index=True)
    comment_id = Column(Integer, nullable=True, index=True)
    reason = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ReportStatus.OPEN.value)
    handled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    handled_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_reports_status", "status", "created_at"),
        # One open or in-progress report per reporter and target
        Index(
            "uq_reports_active_listing",
            "reporter_id",
            "listing_id",
            unique=True,
            postgresql_where=text(ACTIVE_REPORT_PREDICATE),
            sqlite_where=text(ACTIVE_REPORT_PREDICATE),
        ),
        Index(
            "uq_reports_active_comment",
            "reporter_id",
            "comment_id",
            unique=True,
            postgresql_where=text(ACTIVE_REPORT_PREDICATE),
            sqlite_where=text(ACTIVE_REPORT_PREDICATE),
        ),
    )

    reporter = relationship("User", foreign_keys=[reporter_id])
    handler = relationship("User", foreign_keys=[handled_by])

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REPORT_STATUSES
