from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user, is_elevated, require_elevated
from ..db import get_db
from ..errors import NotFound, get_or_404, parse_id
from ..models.models import TrainingRecord, User
from ..schemas.common import MessageResponse, to_model_data, to_update_data
from ..schemas.training import (
    TrainingCreate,
    TrainingDecision,
    TrainingResponse,
    TrainingStatus,
    TrainingType,
    TrainingUpdate,
)
from ..services.notifications import create_notification


router = APIRouter(prefix="/api/training", tags=["training"])
log = structlog.get_logger(__name__)


@router.get("", response_model=List[TrainingResponse])
def list_training(
    user_id: Optional[str] = Query(None),
    status: Optional[TrainingStatus] = Query(None),
    training_type: Optional[TrainingType] = Query(None),
    requires_approval: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = db.query(TrainingRecord)
    if not is_elevated(user.role):
        query = query.filter(TrainingRecord.user_id == user.id)
    elif user_id:
        query = query.filter(TrainingRecord.user_id == parse_id(user_id, "User not found"))
    if status:
        query = query.filter(TrainingRecord.status == status.value)
    if training_type:
        query = query.filter(TrainingRecord.training_type == training_type.value)
    if requires_approval is not None:
        query = query.filter(TrainingRecord.requires_approval.is_(requires_approval))
    return query.order_by(TrainingRecord.completed_date.desc(), TrainingRecord.created_at.desc()).all()


@router.get("/user/{user_id}", response_model=List[TrainingResponse])
def training_for_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    target = parse_id(user_id, "User not found")
    ensure_owner_or_elevated(user, target)
    return (
        db.query(TrainingRecord)
        .filter(TrainingRecord.user_id == target)
        .order_by(TrainingRecord.completed_date.desc(), TrainingRecord.created_at.desc())
        .all()
    )


@router.get("/{record_id}", response_model=TrainingResponse)
def get_training(record_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    record = get_or_404(db, TrainingRecord, record_id, "Training record not found")
    ensure_owner_or_elevated(user, record.user_id)
    return record


@router.post("", response_model=TrainingResponse, status_code=status.HTTP_201_CREATED)
def create_training(
    payload: TrainingCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Record training.

    Officers and admins who name a user_id assign training to that member
    (status scheduled). Everyone else records their own training, which
    waits for approval when requires_approval is set.
    """
    data = to_model_data(payload)
    target_id = data.pop("user_id", None)
    now = datetime.now(timezone.utc)

    if target_id is not None and is_elevated(user.role):
        if db.get(User, target_id) is None:
            raise NotFound("User not found")
        record = TrainingRecord(
            **data,
            user_id=target_id,
            status=TrainingStatus.scheduled.value,
            assigned_by_id=user.id,
            assigned_date=now,
        )
    else:
        pending = TrainingStatus.pending_approval if payload.requires_approval else TrainingStatus.completed
        record = TrainingRecord(**data, user_id=user.id, status=pending.value)

    db.add(record)
    db.commit()
    db.refresh(record)
    log.info("training_recorded", record_id=str(record.id), status=record.status)
    return record


@router.put("/{record_id}", response_model=TrainingResponse)
def update_training(
    record_id: str,
    payload: TrainingUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    record = get_or_404(db, TrainingRecord, record_id, "Training record not found")
    ensure_owner_or_elevated(user, record.user_id)
    for key, value in to_update_data(payload, TrainingRecord).items():
        setattr(record, key, value)
    record.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(record)
    return record


@router.patch("/{record_id}/approve", response_model=TrainingResponse)
def decide_training(
    record_id: str,
    payload: TrainingDecision,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    record = get_or_404(db, TrainingRecord, record_id, "Training record not found")
    now = datetime.now(timezone.utc)
    record.status = TrainingStatus.approved.value if payload.approved else TrainingStatus.rejected.value
    record.approved_by_id = user.id
    record.approved_date = now
    record.approval_notes = payload.notes
    record.updated_at = now

    verdict = "approved" if payload.approved else "rejected"
    create_notification(
        db,
        record.user_id,
        title=f"Training {verdict}",
        message=f'Your training record "{record.title}" was {verdict}',
        type=f"training_{verdict}",
        related_entity=("training_record", record.id),
        action_url="/training",
    )
    db.commit()
    db.refresh(record)
    return record


@router.delete("/{record_id}", response_model=MessageResponse)
def delete_training(record_id: str, db: Session = Depends(get_db), _=Depends(require_elevated)):
    record = get_or_404(db, TrainingRecord, record_id, "Training record not found")
    db.delete(record)
    db.commit()
    return {"message": "Training record deleted successfully"}
