from typing import Dict, List

from pydantic import BaseModel

from .assets import MaintenanceResponse
from .common import AssetBrief


class CostSummary(BaseModel):
    total_records: int
    total_cost: float
    total_labor_hours: float
    average_cost: float


class AssetCost(BaseModel):
    asset: AssetBrief
    count: int
    total_cost: float
    total_hours: float


class MaintenanceCostReport(BaseModel):
    summary: CostSummary
    cost_by_asset: List[AssetCost]


class AssetStatusReport(BaseModel):
    total_assets: int
    by_status: Dict[str, int]
    by_category: Dict[str, int]
    needing_maintenance: List[MaintenanceResponse]


class WorkOrderSummary(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    total_estimated_cost: float
    total_actual_cost: float


class AssetCounts(BaseModel):
    total: int
    by_status: Dict[str, int]


class MaintenanceCounts(BaseModel):
    scheduled: int
    overdue: int
    completed_this_month: int
    upcoming_week: int


class WorkOrderCounts(BaseModel):
    open: int
    critical: int
    completed_this_month: int


class DashboardStats(BaseModel):
    assets: AssetCounts
    maintenance: MaintenanceCounts
    work_orders: WorkOrderCounts
