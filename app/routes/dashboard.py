from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import Asset, MaintenanceRecord, WorkOrder
from ..schemas.assets import MaintenanceStatus, Priority, WorkOrderStatus
from ..schemas.reports import DashboardStats
from ..services.derived import ACTIVE_MAINTENANCE_STATUSES


router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

OPEN_WORK_ORDER_STATUSES = (
    WorkOrderStatus.open.value,
    WorkOrderStatus.assigned.value,
    WorkOrderStatus.in_progress.value,
)


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(db: Session = Depends(get_db), _=Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    by_status = dict(db.query(Asset.status, func.count()).group_by(Asset.status).all())
    maintenance = db.query(MaintenanceRecord)
    work_orders = db.query(WorkOrder)

    return {
        "assets": {
            "total": db.query(Asset).count(),
            "by_status": by_status,
        },
        "maintenance": {
            "scheduled": maintenance.filter(MaintenanceRecord.status == MaintenanceStatus.scheduled.value).count(),
            "overdue": maintenance.filter(
                MaintenanceRecord.status.in_(ACTIVE_MAINTENANCE_STATUSES),
                MaintenanceRecord.due_date < now,
            ).count(),
            "completed_this_month": maintenance.filter(
                MaintenanceRecord.status == MaintenanceStatus.completed.value,
                MaintenanceRecord.completed_date >= month_start,
            ).count(),
            "upcoming_week": maintenance.filter(
                MaintenanceRecord.status.in_(ACTIVE_MAINTENANCE_STATUSES),
                MaintenanceRecord.due_date >= now,
                MaintenanceRecord.due_date <= now + timedelta(days=7),
            ).count(),
        },
        "work_orders": {
            "open": work_orders.filter(WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES)).count(),
            "critical": work_orders.filter(
                WorkOrder.priority == Priority.critical.value,
                WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES),
            ).count(),
            "completed_this_month": work_orders.filter(
                WorkOrder.status == WorkOrderStatus.completed.value,
                WorkOrder.completed_date >= month_start,
            ).count(),
        },
    }
