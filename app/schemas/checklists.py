import uuid
from datetime import datetime
from typing import Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from .common import UserBrief, UTCDateTime


class ChecklistType(str, Enum):
    callout = "callout"
    maintenance = "maintenance"
    vehicle_inspection = "vehicle_inspection"
    general = "general"


class ItemCategory(str, Enum):
    safety = "safety"
    operational = "operational"
    documentation = "documentation"
    communication = "communication"
    equipment = "equipment"


class CompletionStatus(str, Enum):
    completed = "completed"
    partial = "partial"


class TemplateItem(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: ItemCategory = ItemCategory.operational
    required: bool = False
    order: int = 0


class ChecklistTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    type: ChecklistType
    category: Optional[str] = None
    description: Optional[str] = None
    items: List[TemplateItem] = []


class ChecklistTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[ChecklistType] = None
    category: Optional[str] = None
    description: Optional[str] = None
    items: Optional[List[TemplateItem]] = None
    is_active: Optional[bool] = None


class ChecklistTemplateResponse(ChecklistTemplateCreate):
    id: uuid.UUID
    is_active: bool
    created_by: Optional[UserBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChecklistTypes(BaseModel):
    types: List[str]
    item_categories: List[str]


# Completed checklist schemas
class CompletedItem(BaseModel):
    item: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[ItemCategory] = None
    required: bool = False
    completed: bool = False
    notes: Optional[str] = None
    order: int = 0


class CompletedChecklistCreate(BaseModel):
    template_id: uuid.UUID
    items: List[CompletedItem]
    completed_by: Optional[str] = None  # defaults to the caller's name
    completed_at: Optional[UTCDateTime] = None
    related_asset_id: Optional[uuid.UUID] = None
    related_work_order_id: Optional[uuid.UUID] = None
    related_maintenance_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class CompletedChecklistUpdate(BaseModel):
    items: Optional[List[CompletedItem]] = None
    completed_by: Optional[str] = None
    notes: Optional[str] = None


class CompletedChecklistResponse(BaseModel):
    id: uuid.UUID
    template_id: Optional[uuid.UUID] = None
    template_name: str
    template_type: ChecklistType
    template_category: Optional[str] = None
    items: List[CompletedItem] = []
    completed_by: str
    completed_by_user: Optional[UserBrief] = None
    completed_at: datetime
    related_asset_id: Optional[uuid.UUID] = None
    related_work_order_id: Optional[uuid.UUID] = None
    related_maintenance_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    total_items: int
    completed_items: int
    required_items: int
    completed_required_items: int
    completion_percentage: int
    status: CompletionStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CompletedChecklistPage(BaseModel):
    completed_checklists: List[CompletedChecklistResponse]
    total_pages: int
    current_page: int
    total: int


class NamedCount(BaseModel):
    name: str
    count: int


class CompletedChecklistStats(BaseModel):
    total_completed: int
    completed_today: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    top_users: List[NamedCount]
    top_templates: List[NamedCount]
