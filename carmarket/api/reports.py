# carmarket/api/reports.py
"""
Reports API Router

Any signed-in user can report a listing or a comment. Moderators accept
(archives the listing or hides the comment) or dismiss reports.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from carmarket.api.deps import require_moderator, to_http_exception
from carmarket.database import get_db
from carmarket.models.user import User
from carmarket.schemas.report import (
    ReportCreate,
    ReportResolutionResponse,
    ReportResponse,
    ReportStatusUpdate,
)
from carmarket.services import report_bridge
from carmarket.services.exceptions import ModerationError, NotFoundError, PersistenceError
from carmarket.utils.security import get_current_user

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return report_bridge.create_report(db, current_user.id, payload)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.get("/", response_model=List[ReportResponse])
def list_reports(
    status_filter: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db),
):
    try:
        return report_bridge.list_reports(db, status=status_filter, skip=skip, limit=limit)
    except ModerationError as e:
        raise to_http_exception(e)


@router.get("/my", response_model=List[ReportResponse])
def list_my_reports(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return report_bridge.list_my_reports(db, current_user.id, limit=limit)


@router.get("/{report_id}", response_model=ReportResponse)
def get_report(
    report_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        report = report_bridge.get_report(db, report_id)
    except ModerationError as e:
        raise to_http_exception(e)
    if report.reporter_id != current_user.id and not current_user.is_moderator:
        raise to_http_exception(NotFoundError(f"Report {report_id} not found"))
    return report


@router.put("/{report_id}/status", response_model=ReportResolutionResponse)
def update_report_status(
    report_id: int,
    payload: ReportStatusUpdate,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db),
):
    try:
        return report_bridge.update_report_status(
            db, report_id, moderator.id, moderator.role, payload.status.value
        )
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.post("/{report_id}/accept", response_model=ReportResolutionResponse)
def accept_report(
    report_id: int,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db),
):
    try:
        return report_bridge.accept_report(db, report_id, moderator.id, moderator.role)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.post("/{report_id}/dismiss", response_model=ReportResponse)
def dismiss_report(
    report_id: int,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db),
):
    try:
        return report_bridge.dismiss_report(db, report_id, moderator.id, moderator.role)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)
