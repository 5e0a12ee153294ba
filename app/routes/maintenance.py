from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import NotFound, get_or_404, parse_id
from ..models.models import Asset, MaintenanceRecord, User
from ..schemas.assets import (
    AssetStatus,
    MaintenanceComplete,
    MaintenanceCreate,
    MaintenanceResponse,
    MaintenanceStatus,
    MaintenanceType,
    MaintenanceUpdate,
)
from ..schemas.common import MessageResponse, to_model_data, to_update_data
from ..services.derived import ACTIVE_MAINTENANCE_STATUSES
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])
log = structlog.get_logger(__name__)


def rollup_costs(parts_used: Optional[list], labor_cost: Optional[float]) -> tuple:
    """
    Fill in each part's total and return (parts, record_total).

    A part's total is quantity * unit cost; the record total is the sum of
    part totals plus labor.
    """
    parts = []
    parts_total = 0.0
    for part in parts_used or []:
        part = dict(part)
        part["total_cost"] = round(float(part.get("quantity") or 0) * float(part.get("unit_cost") or 0), 2)
        parts_total += part["total_cost"]
        parts.append(part)
    return parts, round(parts_total + float(labor_cost or 0), 2)


def _sync_asset_schedule(db: Session, record: MaintenanceRecord) -> None:
    asset = db.get(Asset, record.asset_id)
    if asset is None:
        return
    next_date = record.next_maintenance_date or record.due_date
    if next_date is not None and record.status != MaintenanceStatus.completed.value:
        asset.next_maintenance_date = next_date
        asset.updated_at = datetime.now(timezone.utc)


@router.get("", response_model=List[MaintenanceResponse])
def list_maintenance(
    status: Optional[MaintenanceStatus] = Query(None),
    asset_id: Optional[str] = Query(None),
    type: Optional[MaintenanceType] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    """List maintenance records, soonest due first"""
    query = db.query(MaintenanceRecord)
    if status:
        query = query.filter(MaintenanceRecord.status == status.value)
    if asset_id:
        query = query.filter(MaintenanceRecord.asset_id == parse_id(asset_id, "Asset not found"))
    if type:
        query = query.filter(MaintenanceRecord.type == type.value)
    return query.order_by(MaintenanceRecord.due_date.asc(), MaintenanceRecord.created_at.desc()).all()


@router.get("/overdue", response_model=List[MaintenanceResponse])
def list_overdue(db: Session = Depends(get_db), _=Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    return db.query(MaintenanceRecord).filter(
        MaintenanceRecord.status.in_(ACTIVE_MAINTENANCE_STATUSES),
        MaintenanceRecord.due_date < now,
    ).order_by(MaintenanceRecord.due_date.asc()).all()


@router.get("/upcoming", response_model=List[MaintenanceResponse])
def list_upcoming(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    now = datetime.now(timezone.utc)
    return db.query(MaintenanceRecord).filter(
        MaintenanceRecord.status.in_(ACTIVE_MAINTENANCE_STATUSES),
        MaintenanceRecord.due_date >= now,
        MaintenanceRecord.due_date <= now + timedelta(days=days),
    ).order_by(MaintenanceRecord.due_date.asc()).all()


@router.get("/{record_id}", response_model=MaintenanceResponse)
def get_maintenance(record_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, MaintenanceRecord, record_id, "Maintenance record not found")


@router.post("", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
def create_maintenance(
    payload: MaintenanceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    if db.get(Asset, payload.asset_id) is None:
        raise NotFound("Asset not found")

    data = to_model_data(payload)
    data["parts_used"], data["total_cost"] = rollup_costs(data.get("parts_used"), data.get("labor_cost"))
    record = MaintenanceRecord(**data, created_by_id=user.id)
    db.add(record)
    db.flush()
    _sync_asset_schedule(db, record)
    db.commit()
    db.refresh(record)
    return record


@router.put("/{record_id}", response_model=MaintenanceResponse)
def update_maintenance(
    record_id: str,
    payload: MaintenanceUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    record = get_or_404(db, MaintenanceRecord, record_id, "Maintenance record not found")
    data = to_update_data(payload, MaintenanceRecord)
    for key, value in data.items():
        setattr(record, key, value)
    if "parts_used" in data or "labor_cost" in data:
        record.parts_used, record.total_cost = rollup_costs(record.parts_used, record.labor_cost)
    if "due_date" in data or "next_maintenance_date" in data:
        _sync_asset_schedule(db, record)
    record.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(record)
    return record


@router.patch("/{record_id}/complete", response_model=MaintenanceResponse)
def complete_maintenance(
    record_id: str,
    payload: MaintenanceComplete,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    record = get_or_404(db, MaintenanceRecord, record_id, "Maintenance record not found")
    now = datetime.now(timezone.utc)
    data = to_update_data(payload, MaintenanceRecord)
    for key, value in data.items():
        setattr(record, key, value)
    record.parts_used, record.total_cost = rollup_costs(record.parts_used, record.labor_cost)
    record.status = MaintenanceStatus.completed.value
    record.completed_date = now
    if record.performed_by_id is None:
        record.performed_by_id = user.id
    record.updated_at = now

    asset = db.get(Asset, record.asset_id)
    if asset is not None:
        asset.last_maintenance_date = now
        if record.next_maintenance_date is not None:
            asset.next_maintenance_date = record.next_maintenance_date
        if asset.status == AssetStatus.maintenance.value:
            asset.status = AssetStatus.operational.value
        asset.updated_at = now

    db.commit()
    db.refresh(record)
    return record


@router.delete("/{record_id}", response_model=MessageResponse)
def delete_maintenance(
    record_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require_admin),
):
    record = get_or_404(db, MaintenanceRecord, record_id, "Maintenance record not found")
    attachments = list(record.attachments or [])
    db.delete(record)
    db.commit()
    remove_files(storage, attachments, owner=f"maintenance:{record_id}")
    return {"message": "Maintenance record deleted successfully"}
