import uuid
from datetime import datetime
from typing import List, Optional, Dict, Any
from enum import Enum

from pydantic import BaseModel, Field

from .common import AssetBrief, Note, UploadedAttachment, UserBrief, UTCDateTime


# Enums
class AssetCategory(str, Enum):
    vehicle_ground = "vehicle_ground"
    vehicle_air = "vehicle_air"
    vehicle_marine = "vehicle_marine"
    communications = "communications"
    medical = "medical"
    climbing = "climbing"
    navigation = "navigation"
    specialized = "specialized"
    other = "other"


class AssetStatus(str, Enum):
    operational = "operational"
    maintenance = "maintenance"
    repair = "repair"
    retired = "retired"
    lost = "lost"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class WorkOrderStatus(str, Enum):
    open = "open"
    assigned = "assigned"
    in_progress = "in_progress"
    on_hold = "on_hold"
    completed = "completed"
    cancelled = "cancelled"


class MaintenanceType(str, Enum):
    preventive = "preventive"
    corrective = "corrective"
    inspection = "inspection"
    calibration = "calibration"
    certification = "certification"


class MaintenanceStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    overdue = "overdue"
    cancelled = "cancelled"


class QuoteStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    accepted = "accepted"
    expired = "expired"


class CategoryType(str, Enum):
    asset = "asset"
    workorder = "workorder"
    maintenance = "maintenance"


class FrequencyType(str, Enum):
    hours = "hours"
    days = "days"
    weeks = "weeks"
    months = "months"
    years = "years"
    miles = "miles"
    cycles = "cycles"


# Asset Schemas
class AssetCertification(BaseModel):
    name: str
    number: Optional[str] = None
    issued_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    issuing_authority: Optional[str] = None


class ExpiryItem(BaseModel):
    name: str
    expiry_date: UTCDateTime
    notes: Optional[str] = None


class AssetBase(BaseModel):
    asset_number: str = Field(min_length=1)
    barcode: Optional[str] = None
    rfid: Optional[str] = None
    name: str = Field(min_length=1)
    category: AssetCategory
    type: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[UTCDateTime] = None
    purchase_cost: Optional[float] = None
    current_location: Optional[str] = None
    assigned_unit: Optional[str] = None
    assigned_team: Optional[str] = None
    status: AssetStatus = AssetStatus.operational
    specifications: Optional[Dict[str, Any]] = None
    images: Optional[List[UploadedAttachment]] = None
    documents: Optional[List[UploadedAttachment]] = None
    certifications: Optional[List[AssetCertification]] = None
    expiry_items: Optional[List[ExpiryItem]] = None
    last_maintenance_date: Optional[UTCDateTime] = None
    next_maintenance_date: Optional[UTCDateTime] = None
    total_hours: Optional[float] = None
    total_miles: Optional[float] = None


class AssetCreate(AssetBase):
    pass


class AssetUpdate(BaseModel):
    asset_number: Optional[str] = Field(default=None, min_length=1)
    barcode: Optional[str] = None
    rfid: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[AssetCategory] = None
    type: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[UTCDateTime] = None
    purchase_cost: Optional[float] = None
    current_location: Optional[str] = None
    assigned_unit: Optional[str] = None
    assigned_team: Optional[str] = None
    status: Optional[AssetStatus] = None
    specifications: Optional[Dict[str, Any]] = None
    images: Optional[List[UploadedAttachment]] = None
    documents: Optional[List[UploadedAttachment]] = None
    certifications: Optional[List[AssetCertification]] = None
    expiry_items: Optional[List[ExpiryItem]] = None
    last_maintenance_date: Optional[UTCDateTime] = None
    next_maintenance_date: Optional[UTCDateTime] = None
    total_hours: Optional[float] = None
    total_miles: Optional[float] = None


class AssetResponse(AssetBase):
    id: uuid.UUID
    notes: List[Note] = []
    created_by: Optional[UserBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Category Schemas
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    type: CategoryType
    color: str = "#3B82F6"
    description: Optional[str] = None


class CategoryResponse(CategoryCreate):
    id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


# Work Order Schemas
class WorkOrderBase(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: Priority = Priority.medium
    category: str = "repair"
    scheduled_date: Optional[UTCDateTime] = None
    due_date: Optional[UTCDateTime] = None
    estimated_cost: Optional[float] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[UploadedAttachment]] = None


class WorkOrderCreate(WorkOrderBase):
    asset_id: uuid.UUID
    assigned_to_id: Optional[uuid.UUID] = None
    status: WorkOrderStatus = WorkOrderStatus.open


class WorkOrderUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[WorkOrderStatus] = None
    category: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None
    scheduled_date: Optional[UTCDateTime] = None
    due_date: Optional[UTCDateTime] = None
    started_date: Optional[UTCDateTime] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[UploadedAttachment]] = None


class WorkOrderComplete(BaseModel):
    completed_notes: Optional[str] = None
    actual_cost: Optional[float] = None


class WorkOrderResponse(WorkOrderBase):
    id: uuid.UUID
    work_order_number: str
    status: WorkOrderStatus
    asset: Optional[AssetBrief] = None
    requested_by: Optional[UserBrief] = None
    assigned_to: Optional[UserBrief] = None
    started_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    actual_cost: Optional[float] = None
    notes: List[Note] = []
    completed_notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Maintenance Schemas
class ChecklistEntry(BaseModel):
    item: str
    completed: bool = False
    notes: Optional[str] = None


class PartUsed(BaseModel):
    name: str
    part_number: Optional[str] = None
    quantity: float = 1
    unit_cost: float = 0
    total_cost: Optional[float] = None


class MaintenanceBase(BaseModel):
    type: MaintenanceType
    title: str = Field(min_length=1)
    description: Optional[str] = None
    scheduled_date: Optional[UTCDateTime] = None
    due_date: Optional[UTCDateTime] = None
    priority: Priority = Priority.medium
    checklist: Optional[List[ChecklistEntry]] = None
    parts_used: Optional[List[PartUsed]] = None
    labor_hours: Optional[float] = None
    labor_cost: Optional[float] = None
    vendor: Optional[str] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    attachments: Optional[List[UploadedAttachment]] = None
    next_maintenance_date: Optional[UTCDateTime] = None


class MaintenanceCreate(MaintenanceBase):
    asset_id: uuid.UUID
    status: MaintenanceStatus = MaintenanceStatus.scheduled
    performed_by_id: Optional[uuid.UUID] = None
    work_order_id: Optional[uuid.UUID] = None
    checklist_template_id: Optional[uuid.UUID] = None


class MaintenanceUpdate(BaseModel):
    type: Optional[MaintenanceType] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    scheduled_date: Optional[UTCDateTime] = None
    due_date: Optional[UTCDateTime] = None
    status: Optional[MaintenanceStatus] = None
    priority: Optional[Priority] = None
    performed_by_id: Optional[uuid.UUID] = None
    work_order_id: Optional[uuid.UUID] = None
    checklist: Optional[List[ChecklistEntry]] = None
    parts_used: Optional[List[PartUsed]] = None
    labor_hours: Optional[float] = None
    labor_cost: Optional[float] = None
    vendor: Optional[str] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    attachments: Optional[List[UploadedAttachment]] = None
    next_maintenance_date: Optional[UTCDateTime] = None


class MaintenanceComplete(BaseModel):
    notes: Optional[str] = None
    labor_hours: Optional[float] = None
    labor_cost: Optional[float] = None
    parts_used: Optional[List[PartUsed]] = None


class MaintenanceResponse(MaintenanceBase):
    id: uuid.UUID
    status: MaintenanceStatus
    asset: Optional[AssetBrief] = None
    performed_by: Optional[UserBrief] = None
    created_by: Optional[UserBrief] = None
    work_order_id: Optional[uuid.UUID] = None
    checklist_template_id: Optional[uuid.UUID] = None
    completed_date: Optional[datetime] = None
    total_cost: Optional[float] = None
    is_overdue: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Quote Schemas
class VendorContact(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class QuoteBase(BaseModel):
    vendor_name: str = Field(min_length=1)
    vendor_contact: Optional[VendorContact] = None
    quote_number: Optional[str] = None
    quote_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    description: str = Field(min_length=1)
    labor_cost: Optional[float] = 0
    parts_cost: Optional[float] = 0
    materials_cost: Optional[float] = 0
    total_cost: float
    estimated_hours: Optional[float] = None
    notes: Optional[str] = None
    attachments: Optional[List[UploadedAttachment]] = None


class QuoteCreate(QuoteBase):
    asset_id: uuid.UUID
    maintenance_record_id: Optional[uuid.UUID] = None
    work_order_id: Optional[uuid.UUID] = None


class QuoteUpdate(BaseModel):
    vendor_name: Optional[str] = Field(default=None, min_length=1)
    vendor_contact: Optional[VendorContact] = None
    quote_number: Optional[str] = None
    quote_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    description: Optional[str] = None
    labor_cost: Optional[float] = None
    parts_cost: Optional[float] = None
    materials_cost: Optional[float] = None
    total_cost: Optional[float] = None
    estimated_hours: Optional[float] = None
    status: Optional[QuoteStatus] = None
    notes: Optional[str] = None
    attachments: Optional[List[UploadedAttachment]] = None


class QuoteDecision(BaseModel):
    approved: bool
    notes: Optional[str] = None


class QuoteResponse(QuoteBase):
    id: uuid.UUID
    status: QuoteStatus
    asset: Optional[AssetBrief] = None
    maintenance_record_id: Optional[uuid.UUID] = None
    work_order_id: Optional[uuid.UUID] = None
    requested_by: Optional[UserBrief] = None
    approved_by: Optional[UserBrief] = None
    approved_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Template Schemas
class Frequency(BaseModel):
    type: FrequencyType
    interval: int = Field(ge=1)


class RequiredPart(BaseModel):
    name: str
    part_number: Optional[str] = None
    quantity: float = 1
    estimated_cost: Optional[float] = None


class TemplateBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Priority = Priority.medium
    estimated_duration: Optional[float] = None
    estimated_cost: Optional[float] = None
    instructions: Optional[str] = None
    required_skills: Optional[List[str]] = None
    required_parts: Optional[List[RequiredPart]] = None
    safety_notes: Optional[str] = None
    checklist_template_id: Optional[uuid.UUID] = None


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[Priority] = None
    estimated_duration: Optional[float] = None
    estimated_cost: Optional[float] = None
    instructions: Optional[str] = None
    required_skills: Optional[List[str]] = None
    required_parts: Optional[List[RequiredPart]] = None
    safety_notes: Optional[str] = None
    checklist_template_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None


class MaintenanceTemplateCreate(TemplateBase):
    type: MaintenanceType
    frequency: Optional[Frequency] = None


class MaintenanceTemplateUpdate(TemplateUpdate):
    type: Optional[MaintenanceType] = None
    frequency: Optional[Frequency] = None


class WorkOrderTemplateCreate(TemplateBase):
    pass


class WorkOrderTemplateUpdate(TemplateUpdate):
    pass


class TemplateResponse(TemplateBase):
    id: uuid.UUID
    is_active: bool
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaintenanceTemplateResponse(TemplateResponse):
    type: MaintenanceType
    frequency: Optional[Frequency] = None


class WorkOrderTemplateResponse(TemplateResponse):
    pass
