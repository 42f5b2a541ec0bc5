# carmarket/crud/report.py
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, update
from sqlalchemy.orm import Session

from carmarket import models
from carmarket.models.report import ACTIVE_REPORT_STATUSES, ReportStatus


def get_report(db: Session, report_id: int) -> Optional[models.Report]:
    return db.query(models.Report).filter(
        models.Report.id == report_id
    ).populate_existing().first()


def find_active_report(
    db: Session,
    reporter_id: int,
    *,
    listing_id: Optional[int] = None,
    comment_id: Optional[int] = None,
) -> Optional[models.Report]:
    """Open or in-progress report by this reporter on the same target."""
    query = db.query(models.Report).filter(
        models.Report.reporter_id == reporter_id,
        models.Report.status.in_(ACTIVE_REPORT_STATUSES),
    )
    if listing_id is not None:
        query = query.filter(models.Report.listing_id == listing_id)
    else:
        query = query.filter(models.Report.comment_id == comment_id)
    return query.first()


def create_report(
    db: Session,
    *,
    reporter_id: int,
    reason: str,
    listing_id: Optional[int] = None,
    comment_id: Optional[int] = None,
    details: Optional[str] = None,
) -> models.Report:
    report = models.Report(
        reporter_id=reporter_id,
        listing_id=listing_id,
        comment_id=comment_id,
        reason=reason,
        details=details,
        status=ReportStatus.OPEN.value,
    )
    db.add(report)
    db.flush()
    return report


def conditional_update(
    db: Session,
    report_id: int,
    expected_status: str,
    patch: Dict[str, Any],
) -> bool:
    """Write ``patch`` only if the report is still in ``expected_status``."""
    result = db.execute(
        update(models.Report)
        .where(
            models.Report.id == report_id,
            models.Report.status == expected_status,
        )
        .values(**patch)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def list_reports(
    db: Session,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[models.Report]:
    query = db.query(models.Report)
    if status:
        query = query.filter(models.Report.status == status)
    return query.order_by(desc(models.Report.created_at), desc(models.Report.id)).offset(skip).limit(limit).all()


def list_reporter_reports(db: Session, reporter_id: int, limit: int = 50) -> List[models.Report]:
    return db.query(models.Report).filter(
        models.Report.reporter_id == reporter_id
    ).order_by(desc(models.Report.created_at), desc(models.Report.id)).limit(limit).all()
