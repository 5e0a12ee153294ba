from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user, is_elevated, require_elevated
from ..db import get_db
from ..errors import NotFound, Unauthorized, get_or_404, parse_id
from ..models.models import Callout, CalloutReport, User, callout_report_links
from ..schemas.callouts import ReportCreate, ReportResponse, ReportStatus, ReportType, ReportUpdate
from ..schemas.common import MessageResponse, to_model_data, to_update_data
from ..services.notifications import create_notification
from ..services.numbering import next_document_number
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider
from .callouts import attach_report


router = APIRouter(prefix="/api/callout-reports", tags=["callout-reports"])
log = structlog.get_logger(__name__)


def generate_report_number(db: Session) -> str:
    return next_document_number(db, CalloutReport.report_number, "RPT")


def history_entry(user: User, changed: List[str]) -> dict:
    return {
        "modified_by": str(user.id),
        "modified_at": datetime.now(timezone.utc).isoformat(),
        "changes": "Updated " + ", ".join(changed) if changed else "No field changes",
    }


@router.get("", response_model=List[ReportResponse])
def list_reports(
    callout_id: Optional[str] = Query(None),
    status: Optional[ReportStatus] = Query(None),
    report_type: Optional[ReportType] = Query(None),
    written_by: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = db.query(CalloutReport)
    if not is_elevated(user.role):
        query = query.filter(CalloutReport.written_by_id == user.id)
    elif written_by:
        query = query.filter(CalloutReport.written_by_id == parse_id(written_by, "User not found"))
    if callout_id:
        query = query.filter(CalloutReport.callout_id == parse_id(callout_id, "Callout not found"))
    if status:
        query = query.filter(CalloutReport.status == status.value)
    if report_type:
        query = query.filter(CalloutReport.report_type == report_type.value)
    return query.order_by(CalloutReport.created_at.desc()).all()


@router.get("/{report_id}", response_model=ReportResponse)
def get_report(report_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    ensure_owner_or_elevated(user, report.written_by_id, "You can only view your own reports")
    return report


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if db.get(Callout, payload.callout_id) is None:
        raise NotFound("Callout not found")
    report = CalloutReport(
        **to_model_data(payload),
        report_number=generate_report_number(db),
        written_by_id=user.id,
        last_modified_by_id=user.id,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    log.info("report_created", report=report.report_number, callout_id=str(report.callout_id))
    return report


@router.put("/{report_id}", response_model=ReportResponse)
def update_report(
    report_id: str,
    payload: ReportUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Edit a report. Authors edit their own; approved reports are locked to
    officers and admins. Each edit appends to the modification history.
    """
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    ensure_owner_or_elevated(user, report.written_by_id, "You can only edit your own reports")
    if report.status == ReportStatus.approved.value and not is_elevated(user.role):
        raise Unauthorized("Approved reports can only be edited by admins/officers")

    changed = []
    for key, value in to_update_data(payload, CalloutReport).items():
        if getattr(report, key) != value:
            changed.append(key)
            setattr(report, key, value)
    now = datetime.now(timezone.utc)
    report.modification_history = [*(report.modification_history or []), history_entry(user, changed)]
    report.last_modified_by_id = user.id
    report.updated_at = now

    db.commit()
    db.refresh(report)
    return report


@router.patch("/{report_id}/submit", response_model=ReportResponse)
def submit_report(report_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    if str(report.written_by_id) != str(user.id):
        raise Unauthorized("Only the author can submit the report")
    report.status = ReportStatus.submitted.value
    report.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(report)
    return report


@router.patch("/{report_id}/review", response_model=ReportResponse)
def review_report(report_id: str, db: Session = Depends(get_db), user: User = Depends(require_elevated)):
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    now = datetime.now(timezone.utc)
    report.status = ReportStatus.reviewed.value
    report.reviewed_by_id = user.id
    report.reviewed_at = now
    report.updated_at = now
    db.commit()
    db.refresh(report)
    return report


@router.patch("/{report_id}/approve", response_model=ReportResponse)
def approve_report(report_id: str, db: Session = Depends(get_db), user: User = Depends(require_elevated)):
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    now = datetime.now(timezone.utc)
    report.status = ReportStatus.approved.value
    report.approved_by_id = user.id
    report.approved_at = now
    report.updated_at = now

    callout = db.get(Callout, report.callout_id)
    if callout is not None:
        attach_report(callout, report)
    if report.written_by_id is not None:
        create_notification(
            db,
            report.written_by_id,
            title="Report approved",
            message=f"Your report {report.report_number} ({report.title}) was approved",
            type="report_approved",
            related_entity=("callout_report", report.id),
            action_url=f"/callout-reports/{report.id}",
        )
    db.commit()
    db.refresh(report)
    log.info("report_approved", report=report.report_number, by=str(user.id))
    return report


@router.delete("/{report_id}", response_model=MessageResponse)
def delete_report(
    report_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require_elevated),
):
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    attachments = list(report.attachments or [])
    db.execute(delete(callout_report_links).where(callout_report_links.c.report_id == report.id))
    db.delete(report)
    db.commit()
    remove_files(storage, attachments, owner=f"callout_report:{report_id}")
    return {"message": "Report deleted successfully"}
