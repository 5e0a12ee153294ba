from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..errors import parse_id
from ..models.models import Asset, MaintenanceRecord, WorkOrder
from ..schemas.assets import AssetCategory, MaintenanceStatus
from ..schemas.common import UTCDateTime
from ..schemas.reports import AssetStatusReport, MaintenanceCostReport, WorkOrderSummary
from ..services.derived import ACTIVE_MAINTENANCE_STATUSES


router = APIRouter(prefix="/api/reports", tags=["reports"])


def _counts(db: Session, column, *criteria) -> dict:
    query = db.query(column, func.count()).group_by(column)
    if criteria:
        query = query.filter(*criteria)
    return {key: count for key, count in query.all() if key is not None}


@router.get("/maintenance-cost", response_model=MaintenanceCostReport)
def maintenance_cost(
    start_date: Optional[UTCDateTime] = Query(None),
    end_date: Optional[UTCDateTime] = Query(None),
    asset_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    """Cost of completed maintenance, overall and per asset"""
    criteria = [MaintenanceRecord.status == MaintenanceStatus.completed.value]
    if start_date:
        criteria.append(MaintenanceRecord.completed_date >= start_date)
    if end_date:
        criteria.append(MaintenanceRecord.completed_date <= end_date)
    if asset_id:
        criteria.append(MaintenanceRecord.asset_id == parse_id(asset_id, "Asset not found"))

    cost = func.coalesce(func.sum(MaintenanceRecord.total_cost), 0)
    hours = func.coalesce(func.sum(MaintenanceRecord.labor_hours), 0)
    total_records, total_cost, total_hours = db.query(func.count(MaintenanceRecord.id), cost, hours).filter(*criteria).one()

    per_asset = (
        db.query(MaintenanceRecord.asset_id, func.count(MaintenanceRecord.id), cost, hours)
        .filter(*criteria)
        .group_by(MaintenanceRecord.asset_id)
        .order_by(cost.desc())
        .all()
    )
    assets = {a.id: a for a in db.query(Asset).filter(Asset.id.in_([row[0] for row in per_asset]))}
    total_cost = float(total_cost)
    return {
        "summary": {
            "total_records": total_records,
            "total_cost": round(total_cost, 2),
            "total_labor_hours": float(total_hours),
            "average_cost": round(total_cost / total_records, 2) if total_records else 0,
        },
        "cost_by_asset": [
            {"asset": assets[asset_key], "count": count, "total_cost": float(asset_cost), "total_hours": float(asset_hours)}
            for asset_key, count, asset_cost, asset_hours in per_asset
            if asset_key in assets
        ],
    }


@router.get("/asset-status", response_model=AssetStatusReport)
def asset_status(
    category: Optional[AssetCategory] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    criteria = [Asset.category == category.value] if category else []
    horizon = datetime.now(timezone.utc) + timedelta(days=30)
    needing = (
        db.query(MaintenanceRecord)
        .filter(
            MaintenanceRecord.status.in_(ACTIVE_MAINTENANCE_STATUSES),
            MaintenanceRecord.due_date <= horizon,
        )
        .order_by(MaintenanceRecord.due_date.asc())
        .limit(10)
        .all()
    )
    return {
        "total_assets": db.query(Asset).filter(*criteria).count(),
        "by_status": _counts(db, Asset.status, *criteria),
        "by_category": _counts(db, Asset.category),
        "needing_maintenance": needing,
    }


@router.get("/work-order-summary", response_model=WorkOrderSummary)
def work_order_summary(
    start_date: Optional[UTCDateTime] = Query(None),
    end_date: Optional[UTCDateTime] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    criteria = []
    if start_date:
        criteria.append(WorkOrder.created_at >= start_date)
    if end_date:
        criteria.append(WorkOrder.created_at <= end_date)

    estimated, actual = db.query(
        func.coalesce(func.sum(WorkOrder.estimated_cost), 0),
        func.coalesce(func.sum(WorkOrder.actual_cost), 0),
    ).filter(*criteria).one()
    return {
        "total": db.query(WorkOrder).filter(*criteria).count(),
        "by_status": _counts(db, WorkOrder.status, *criteria),
        "by_priority": _counts(db, WorkOrder.priority, *criteria),
        "total_estimated_cost": float(estimated),
        "total_actual_cost": float(actual),
    }
