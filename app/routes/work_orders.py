from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import NotFound, get_or_404, parse_id
from ..models.models import Asset, User, WorkOrder
from ..schemas.assets import (
    WorkOrderComplete,
    WorkOrderCreate,
    WorkOrderResponse,
    WorkOrderStatus,
    WorkOrderUpdate,
)
from ..schemas.common import MessageResponse, NoteCreate, to_model_data, to_update_data
from ..services.numbering import next_document_number
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider
from .assets import make_note


router = APIRouter(prefix="/api/workorders", tags=["work-orders"])
log = structlog.get_logger(__name__)


def generate_work_order_number(db: Session) -> str:
    return next_document_number(db, WorkOrder.work_order_number, "WO")


def _ensure_user_exists(db: Session, user_id) -> None:
    if user_id is not None and db.get(User, user_id) is None:
        raise NotFound("Assigned user not found")


@router.get("", response_model=List[WorkOrderResponse])
def list_work_orders(
    status: Optional[WorkOrderStatus] = Query(None),
    asset_id: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    """List work orders with filters"""
    query = db.query(WorkOrder)
    if status:
        query = query.filter(WorkOrder.status == status.value)
    if asset_id:
        query = query.filter(WorkOrder.asset_id == parse_id(asset_id, "Asset not found"))
    if assigned_to:
        query = query.filter(WorkOrder.assigned_to_id == parse_id(assigned_to, "User not found"))
    return query.order_by(WorkOrder.created_at.desc()).all()


@router.get("/{work_order_id}", response_model=WorkOrderResponse)
def get_work_order(work_order_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, WorkOrder, work_order_id, "Work order not found")


@router.post("", response_model=WorkOrderResponse, status_code=status.HTTP_201_CREATED)
def create_work_order(
    payload: WorkOrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    if db.get(Asset, payload.asset_id) is None:
        raise NotFound("Asset not found")
    _ensure_user_exists(db, payload.assigned_to_id)

    data = to_model_data(payload)
    if data.get("assigned_to_id") and data.get("status") == WorkOrderStatus.open.value:
        data["status"] = WorkOrderStatus.assigned.value
    wo = WorkOrder(
        **data,
        work_order_number=generate_work_order_number(db),
        requested_by_id=user.id,
    )
    db.add(wo)
    db.commit()
    db.refresh(wo)
    log.info("work_order_created", work_order=wo.work_order_number, asset_id=str(wo.asset_id))
    return wo


@router.put("/{work_order_id}", response_model=WorkOrderResponse)
def update_work_order(
    work_order_id: str,
    payload: WorkOrderUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wo = get_or_404(db, WorkOrder, work_order_id, "Work order not found")
    ensure_owner_or_elevated(user, wo.requested_by_id)

    data = to_update_data(payload, WorkOrder)
    if "assigned_to_id" in data:
        _ensure_user_exists(db, data["assigned_to_id"])
    if data.get("status") == WorkOrderStatus.in_progress.value and wo.started_date is None:
        wo.started_date = datetime.now(timezone.utc)
    if data.get("status") == WorkOrderStatus.completed.value and wo.completed_date is None:
        wo.completed_date = datetime.now(timezone.utc)
    for key, value in data.items():
        setattr(wo, key, value)
    wo.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(wo)
    return wo


@router.patch("/{work_order_id}/complete", response_model=WorkOrderResponse)
def complete_work_order(
    work_order_id: str,
    payload: WorkOrderComplete,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    wo = get_or_404(db, WorkOrder, work_order_id, "Work order not found")
    now = datetime.now(timezone.utc)
    wo.status = WorkOrderStatus.completed.value
    wo.completed_date = now
    if payload.completed_notes is not None:
        wo.completed_notes = payload.completed_notes
    if payload.actual_cost is not None:
        wo.actual_cost = payload.actual_cost
    wo.updated_at = now
    db.commit()
    db.refresh(wo)
    return wo


@router.post("/{work_order_id}/notes", response_model=WorkOrderResponse)
def add_note(
    work_order_id: str,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wo = get_or_404(db, WorkOrder, work_order_id, "Work order not found")
    wo.notes = [*(wo.notes or []), make_note(payload.text, user)]
    wo.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(wo)
    return wo


@router.delete("/{work_order_id}", response_model=MessageResponse)
def delete_work_order(
    work_order_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require_admin),
):
    wo = get_or_404(db, WorkOrder, work_order_id, "Work order not found")
    attachments = list(wo.attachments or [])
    db.delete(wo)
    db.commit()
    remove_files(storage, attachments, owner=f"work_order:{work_order_id}")
    return {"message": "Work order deleted successfully"}
