# carmarket/services/report_bridge.py
"""
Report Resolution Bridge

Turns report decisions into listing transitions. Accepting a report on a
listing forces it to ``archived`` whatever its current status; accepting a
report on a comment hides the comment. Reports end in exactly one terminal
status (resolved or dismissed) and cannot be changed afterwards.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from carmarket import models
from carmarket.config import settings
from carmarket.crud import comment as comment_crud
from carmarket.crud import listing as listing_crud
from carmarket.crud import report as report_crud
from carmarket.models.report import ReportStatus
from carmarket.schemas.moderation import ForceArchiveRequest
from carmarket.schemas.report import ReportCreate
from carmarket.services import moderation_engine, transition_policy
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    ModerationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    from_pydantic,
)
from carmarket.services.transition_policy import Actor

logger = logging.getLogger(__name__)


# ======================
# HELPERS
# ======================

def _load_report(db: Session, report_id: int) -> models.Report:
    report = report_crud.get_report(db, report_id)
    if not report:
        raise NotFoundError(f"Report {report_id} not found")
    return report


def _ensure_not_terminal(report: models.Report) -> None:
    if report.is_terminal:
        raise ConflictError(f"Report {report.id} is already {report.status}")


def _write_report_status(
    db: Session,
    report: models.Report,
    new_status: str,
    handler_id: Optional[int],
    handled_at: Optional[datetime],
) -> None:
    """Conditional report write keyed on the status we read. Does not commit."""
    applied = report_crud.conditional_update(
        db,
        report.id,
        expected_status=report.status,
        patch={
            "status": new_status,
            "handled_by": handler_id,
            "handled_at": handled_at,
        },
    )
    if not applied:
        raise ConflictError(f"Report {report.id} was handled by another request")


def _force_archive(db: Session, listing_id: int, actor: Actor, report_id: int, now: datetime) -> Optional[models.Listing]:
    """
    Archive the listing inside the current transaction.

    A lost compare-and-swap means somebody else changed the listing after we
    read it; archiving is allowed from every status, so re-read and try again.
    """
    attempts = max(1, settings.REPORT_ARCHIVE_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            moderation_engine.apply_transition(
                db, listing_id, actor, ForceArchiveRequest(report_id=report_id), now=now
            )
            return listing_crud.get_listing(db, listing_id)
        except NotFoundError:
            # Deleted by its owner meanwhile: nothing left to archive
            logger.info("Report %s: listing %s no longer exists", report_id, listing_id)
            return None
        except ConflictError:
            if attempt == attempts:
                raise
            logger.info(
                "Report %s: listing %s changed concurrently, retrying archive (%d/%d)",
                report_id, listing_id, attempt, attempts,
            )
    return None


def _commit(db: Session, report_id: int) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Report %s update rolled back", report_id, exc_info=True)
        raise PersistenceError(f"Failed to update report {report_id}: {exc}") from exc


# ======================
# REPORT CREATION
# ======================

def create_report(db: Session, reporter_id: int, payload: Any) -> models.Report:
    """
    File a report against a listing or a comment.

    Raises:
        ValidationError: Missing reason, zero or two targets
        NotFoundError: Target does not exist
        AuthorizationError: Reporter owns the target
        ConflictError: Reporter already has an open report on this target
    """
    if not isinstance(payload, ReportCreate):
        try:
            payload = ReportCreate.model_validate(payload)
        except PydanticValidationError as exc:
            raise from_pydantic(exc) from exc

    if payload.listing_id is not None:
        listing = listing_crud.get_listing(db, payload.listing_id)
        if not listing:
            raise NotFoundError(f"Listing {payload.listing_id} not found")
        if listing.owner_id == reporter_id:
            raise AuthorizationError("You cannot report your own listing")
    else:
        comment = comment_crud.get_comment(db, payload.comment_id)
        if not comment:
            raise NotFoundError(f"Comment {payload.comment_id} not found")
        if comment.user_id == reporter_id:
            raise AuthorizationError("You cannot report your own comment")

    existing = report_crud.find_active_report(
        db, reporter_id, listing_id=payload.listing_id, comment_id=payload.comment_id
    )
    if existing:
        raise ConflictError("You already have an open report on this item")

    try:
        report = report_crud.create_report(
            db,
            reporter_id=reporter_id,
            listing_id=payload.listing_id,
            comment_id=payload.comment_id,
            reason=payload.reason,
            details=payload.details,
        )
        db.commit()
    except IntegrityError as exc:
        # A concurrent request filed the same report after our check
        db.rollback()
        logger.info(
            "Duplicate active report by user %s (listing=%s, comment=%s)",
            reporter_id, payload.listing_id, payload.comment_id,
        )
        raise ConflictError("You already have an open report on this item") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to create report: {exc}") from exc

    db.refresh(report)
    logger.info(
        "Report %s created by user %s (listing=%s, comment=%s)",
        report.id, reporter_id, report.listing_id, report.comment_id,
    )
    return report


# ======================
# REPORT DECISIONS
# ======================

def accept_report(db: Session, report_id: int, handler_id: int, role: str) -> Dict[str, Any]:
    """
    Resolve a report and act on its target.

    Listing target: forced to ``archived`` (audited). Comment target: hidden.
    The target change and the report update commit together.

    Returns:
        {"report": Report, "listing": Listing | None, "comment_hidden": bool}

    Raises:
        AuthorizationError: Handler is not moderator/admin
        NotFoundError: Report does not exist
        ConflictError: Report already resolved/dismissed, or resolved concurrently
    """
    actor = Actor(handler_id, role)
    transition_policy.ensure_moderator(actor)
    report = _load_report(db, report_id)
    _ensure_not_terminal(report)

    now = datetime.now(UTC)
    listing = None
    comment_hidden = False
    try:
        if report.listing_id is not None:
            listing = _force_archive(db, report.listing_id, actor, report.id, now)
        elif report.comment_id is not None:
            comment = comment_crud.set_hidden(db, report.comment_id, True)
            comment_hidden = comment is not None
        _write_report_status(db, report, ReportStatus.RESOLVED.value, handler_id, now)
    except ModerationError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Accepting report %s rolled back", report_id, exc_info=True)
        raise PersistenceError(f"Failed to accept report {report_id}: {exc}") from exc
    except Exception:
        db.rollback()
        raise

    _commit(db, report_id)
    logger.info(
        "Report %s resolved by %s (listing=%s, comment=%s)",
        report_id, handler_id, report.listing_id, report.comment_id,
    )
    if listing is not None:
        listing = listing_crud.get_listing(db, listing.id)
    return {
        "report": _load_report(db, report_id),
        "listing": listing,
        "comment_hidden": comment_hidden,
    }


def dismiss_report(db: Session, report_id: int, handler_id: int, role: str) -> models.Report:
    """Close a report without touching its target."""
    transition_policy.ensure_moderator(Actor(handler_id, role))
    report = _load_report(db, report_id)
    _ensure_not_terminal(report)

    try:
        _write_report_status(db, report, ReportStatus.DISMISSED.value, handler_id, datetime.now(UTC))
    except ModerationError:
        db.rollback()
        raise
    _commit(db, report_id)
    logger.info("Report %s dismissed by %s", report_id, handler_id)
    return _load_report(db, report_id)


def update_report_status(
    db: Session,
    report_id: int,
    handler_id: int,
    role: str,
    status: str,
) -> Dict[str, Any]:
    """
    General status entry point.

    ``resolved`` behaves exactly like accept_report (including the archive
    side effect) and ``dismissed`` like dismiss_report. ``in_progress``
    records the handler without a handled timestamp; ``open`` clears both.

    Returns:
        {"report": Report, "listing": Listing | None, "comment_hidden": bool}
    """
    try:
        new_status = ReportStatus(status).value
    except ValueError:
        allowed = ", ".join(s.value for s in ReportStatus)
        raise ValidationError(f"status must be one of: {allowed}")

    if new_status == ReportStatus.RESOLVED.value:
        return accept_report(db, report_id, handler_id, role)
    if new_status == ReportStatus.DISMISSED.value:
        report = dismiss_report(db, report_id, handler_id, role)
        return {"report": report, "listing": None, "comment_hidden": False}

    transition_policy.ensure_moderator(Actor(handler_id, role))
    report = _load_report(db, report_id)
    _ensure_not_terminal(report)

    if new_status == ReportStatus.IN_PROGRESS.value:
        handler, handled_at = handler_id, None
    else:
        handler, handled_at = None, None

    if report.status != new_status:
        try:
            _write_report_status(db, report, new_status, handler, handled_at)
        except ModerationError:
            db.rollback()
            raise
        _commit(db, report_id)
        logger.info("Report %s set to %s by %s", report_id, new_status, handler_id)

    return {"report": _load_report(db, report_id), "listing": None, "comment_hidden": False}


# ======================
# READS
# ======================

def get_report(db: Session, report_id: int) -> models.Report:
    return _load_report(db, report_id)


def list_reports(db: Session, status: Optional[str] = None, skip: int = 0, limit: int = 50) -> List[models.Report]:
    if status is not None:
        try:
            status = ReportStatus(status).value
        except ValueError:
            allowed = ", ".join(s.value for s in ReportStatus)
            raise ValidationError(f"status must be one of: {allowed}")
    return report_crud.list_reports(db, status=status, skip=skip, limit=limit)


def list_my_reports(db: Session, reporter_id: int, limit: int = 50) -> List[models.Report]:
    return report_crud.list_reporter_reports(db, reporter_id, limit=limit)
