from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import ValidationError, get_or_404
from ..models.models import Callout, CalloutReport, User, callout_report_links
from ..schemas.callouts import (
    CalloutCreate,
    CalloutResponse,
    CalloutStatus,
    CalloutType,
    CalloutUpdate,
    CheckInRequest,
)
from ..schemas.common import MessageResponse, UTCDateTime, to_model_data, to_update_data
from ..services.numbering import next_document_number
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/api/callouts", tags=["callouts"])
log = structlog.get_logger(__name__)


def generate_callout_number(db: Session) -> str:
    return next_document_number(db, Callout.callout_number, "CO")


def attach_report(callout: Callout, report: CalloutReport) -> bool:
    """Link a report to its callout; returns False when it was already linked."""
    if report.callout_id != callout.id:
        raise ValidationError("Report does not belong to this callout")
    if any(r.id == report.id for r in callout.reports):
        return False
    callout.reports.append(report)
    return True


def _open_check_in(members: Optional[list], user_id: str) -> Optional[dict]:
    for member in members or []:
        if member.get("user_id") == user_id and not member.get("check_out_time"):
            return member
    return None


@router.get("", response_model=List[CalloutResponse])
def list_callouts(
    status: Optional[CalloutStatus] = Query(None),
    type: Optional[CalloutType] = Query(None),
    start_date: Optional[UTCDateTime] = Query(None),
    end_date: Optional[UTCDateTime] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    query = db.query(Callout)
    if status:
        query = query.filter(Callout.status == status.value)
    if type:
        query = query.filter(Callout.type == type.value)
    if start_date:
        query = query.filter(Callout.start_date >= start_date)
    if end_date:
        query = query.filter(Callout.start_date <= end_date)
    return query.order_by(Callout.start_date.desc()).all()


@router.get("/{callout_id}", response_model=CalloutResponse)
def get_callout(callout_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, Callout, callout_id, "Callout not found")


@router.post("", response_model=CalloutResponse, status_code=status.HTTP_201_CREATED)
def create_callout(
    payload: CalloutCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    data = to_model_data(payload)
    if data.get("start_date") is None:
        data["start_date"] = datetime.now(timezone.utc)
    callout = Callout(**data, callout_number=generate_callout_number(db), created_by_id=user.id)
    db.add(callout)
    db.commit()
    db.refresh(callout)
    log.info("callout_created", callout=callout.callout_number, type=callout.type)
    return callout


@router.put("/{callout_id}", response_model=CalloutResponse)
def update_callout(
    callout_id: str,
    payload: CalloutUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    callout = get_or_404(db, Callout, callout_id, "Callout not found")
    data = to_update_data(payload, Callout, ignore_null=("start_date",))
    for key, value in data.items():
        setattr(callout, key, value)
    callout.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(callout)
    return callout


@router.post("/{callout_id}/checkin", response_model=CalloutResponse)
def check_in(
    callout_id: str,
    payload: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    callout = get_or_404(db, Callout, callout_id, "Callout not found")
    me = str(user.id)
    if _open_check_in(callout.responding_members, me) is not None:
        raise ValidationError("Member already checked in")
    payload = payload or CheckInRequest()
    callout.responding_members = [
        *(callout.responding_members or []),
        {
            "user_id": me,
            "check_in_time": datetime.now(timezone.utc).isoformat(),
            "check_out_time": None,
            "role": payload.role or "member",
            "notes": payload.notes or "",
        },
    ]
    db.commit()
    db.refresh(callout)
    return callout


@router.post("/{callout_id}/checkout", response_model=CalloutResponse)
def check_out(callout_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    callout = get_or_404(db, Callout, callout_id, "Callout not found")
    me = str(user.id)
    members = [dict(m) for m in callout.responding_members or []]
    entry = _open_check_in(members, me)
    if entry is None:
        raise ValidationError("Member not checked in")
    entry["check_out_time"] = datetime.now(timezone.utc).isoformat()
    callout.responding_members = members
    db.commit()
    db.refresh(callout)
    return callout


@router.post("/{callout_id}/reports/{report_id}", response_model=CalloutResponse)
def attach_callout_report(
    callout_id: str,
    report_id: str,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    callout = get_or_404(db, Callout, callout_id, "Callout not found")
    report = get_or_404(db, CalloutReport, report_id, "Report not found")
    if attach_report(callout, report):
        callout.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(callout)
    return callout


@router.delete("/{callout_id}", response_model=MessageResponse)
def delete_callout(
    callout_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    user: User = Depends(require_admin),
):
    """Delete a callout together with its reports and their stored files"""
    callout = get_or_404(db, Callout, callout_id, "Callout not found")
    reports = db.query(CalloutReport).filter(CalloutReport.callout_id == callout.id).all()
    files = list(callout.attachments or [])
    for report in reports:
        files.extend(report.attachments or [])

    report_ids = [r.id for r in reports]
    db.execute(delete(callout_report_links).where(callout_report_links.c.callout_id == callout.id))
    if report_ids:
        db.execute(delete(callout_report_links).where(callout_report_links.c.report_id.in_(report_ids)))
    for report in reports:
        db.delete(report)
    db.delete(callout)
    db.commit()

    remove_files(storage, files, owner=f"callout:{callout_id}")
    log.info("callout_deleted", callout_id=callout_id, reports=len(report_ids), by=str(user.id))
    return {"message": "Callout deleted successfully"}
