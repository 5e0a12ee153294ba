import math
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user, is_elevated, require_admin
from ..db import get_db
from ..errors import NotFound, get_or_404, parse_id
from ..models.models import ChecklistTemplate, CompletedChecklist, User
from ..schemas.checklists import (
    ChecklistType,
    CompletedChecklistCreate,
    CompletedChecklistPage,
    CompletedChecklistResponse,
    CompletedChecklistStats,
    CompletedChecklistUpdate,
    CompletionStatus,
)
from ..schemas.common import MessageResponse, UTCDateTime, to_model_data, to_update_data
from ..services.derived import completion_stats


router = APIRouter(prefix="/api/completed-checklists", tags=["completed-checklists"])
log = structlog.get_logger(__name__)

TOP_N = 5


def _apply_stats(record: CompletedChecklist) -> None:
    for key, value in completion_stats(record.items).items():
        setattr(record, key, value)


def _grouped_counts(db: Session, column, limit: Optional[int] = None):
    query = (
        db.query(column, func.count(CompletedChecklist.id))
        .group_by(column)
        .order_by(func.count(CompletedChecklist.id).desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


@router.get("", response_model=CompletedChecklistPage)
def list_completed_checklists(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    template_type: Optional[ChecklistType] = Query(None),
    status: Optional[CompletionStatus] = Query(None),
    start_date: Optional[UTCDateTime] = Query(None),
    end_date: Optional[UTCDateTime] = Query(None),
    completed_by: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Paginated completed checklists, newest first"""
    query = db.query(CompletedChecklist)
    if not is_elevated(user.role):
        query = query.filter(CompletedChecklist.completed_by_user_id == user.id)
    elif completed_by:
        query = query.filter(CompletedChecklist.completed_by_user_id == parse_id(completed_by, "User not found"))
    if template_type:
        query = query.filter(CompletedChecklist.template_type == template_type.value)
    if status:
        query = query.filter(CompletedChecklist.status == status.value)
    if start_date:
        query = query.filter(CompletedChecklist.completed_at >= start_date)
    if end_date:
        query = query.filter(CompletedChecklist.completed_at <= end_date)

    total = query.count()
    rows = (
        query.order_by(CompletedChecklist.completed_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "completed_checklists": rows,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total,
    }


@router.get("/stats", response_model=CompletedChecklistStats)
def completed_checklist_stats(db: Session = Depends(get_db), _=Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "total_completed": db.query(CompletedChecklist).count(),
        "completed_today": db.query(CompletedChecklist).filter(CompletedChecklist.completed_at >= start_of_day).count(),
        "by_type": dict(_grouped_counts(db, CompletedChecklist.template_type)),
        "by_status": dict(_grouped_counts(db, CompletedChecklist.status)),
        "top_users": [
            {"name": name, "count": count}
            for name, count in _grouped_counts(db, CompletedChecklist.completed_by, TOP_N)
        ],
        "top_templates": [
            {"name": name, "count": count}
            for name, count in _grouped_counts(db, CompletedChecklist.template_name, TOP_N)
        ],
    }


@router.get("/{checklist_id}", response_model=CompletedChecklistResponse)
def get_completed_checklist(checklist_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    record = get_or_404(db, CompletedChecklist, checklist_id, "Completed checklist not found")
    ensure_owner_or_elevated(user, record.completed_by_user_id)
    return record


@router.post("", response_model=CompletedChecklistResponse, status_code=status.HTTP_201_CREATED)
def create_completed_checklist(
    payload: CompletedChecklistCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    template = db.get(ChecklistTemplate, payload.template_id)
    if template is None:
        raise NotFound("Checklist template not found")

    data = to_model_data(payload)
    data["completed_by"] = data.get("completed_by") or user.full_name
    if data.get("completed_at") is None:
        data["completed_at"] = datetime.now(timezone.utc)
    record = CompletedChecklist(
        **data,
        template_name=template.name,
        template_type=template.type,
        template_category=template.category,
        completed_by_user_id=user.id,
    )
    _apply_stats(record)
    db.add(record)
    db.commit()
    db.refresh(record)
    log.info(
        "checklist_completed",
        checklist_id=str(record.id),
        template=template.name,
        percentage=record.completion_percentage,
    )
    return record


@router.put("/{checklist_id}", response_model=CompletedChecklistResponse)
def update_completed_checklist(
    checklist_id: str,
    payload: CompletedChecklistUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    record = get_or_404(db, CompletedChecklist, checklist_id, "Completed checklist not found")
    ensure_owner_or_elevated(user, record.completed_by_user_id)
    for key, value in to_update_data(payload, CompletedChecklist, ignore_null=("completed_by",)).items():
        if key == "completed_by" and not value:
            continue
        setattr(record, key, value)
    _apply_stats(record)
    record.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(record)
    return record


@router.delete("/{checklist_id}", response_model=MessageResponse)
def delete_completed_checklist(checklist_id: str, db: Session = Depends(get_db), _=Depends(require_admin)):
    record = get_or_404(db, CompletedChecklist, checklist_id, "Completed checklist not found")
    db.delete(record)
    db.commit()
    return {"message": "Completed checklist deleted successfully"}
