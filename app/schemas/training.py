import uuid
from datetime import datetime
from typing import Optional, List
from enum import Enum

from pydantic import BaseModel, Field

from .common import UploadedAttachment, UserBrief, UTCDateTime


class CertificateStatus(str, Enum):
    active = "active"
    expiring_soon = "expiring_soon"
    expired = "expired"


class TrainingType(str, Enum):
    certification = "certification"
    training = "training"
    orientation = "orientation"
    refresher = "refresher"
    specialized = "specialized"
    other = "other"


class TrainingStatus(str, Enum):
    completed = "completed"
    in_progress = "in_progress"
    scheduled = "scheduled"
    cancelled = "cancelled"
    pending_approval = "pending_approval"
    approved = "approved"
    rejected = "rejected"


# Certificate Schemas
class CertificateBase(BaseModel):
    name: str = Field(min_length=1)
    certificate_number: Optional[str] = None
    issuing_authority: Optional[str] = None
    issued_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    file: Optional[UploadedAttachment] = None
    notes: Optional[str] = None


class CertificateCreate(CertificateBase):
    user_id: Optional[uuid.UUID] = None  # honoured for elevated callers only


class CertificateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    certificate_number: Optional[str] = None
    issuing_authority: Optional[str] = None
    issued_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    file: Optional[UploadedAttachment] = None
    notes: Optional[str] = None


class CertificateResponse(CertificateBase):
    id: uuid.UUID
    user_id: uuid.UUID
    user: Optional[UserBrief] = None
    status: CertificateStatus
    days_until_expiry: Optional[int] = None
    created_by: Optional[UserBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpiringStats(BaseModel):
    expired: int
    expiring_soon: int
    certificates: List[CertificateResponse]


# Training Record Schemas
class TrainingBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    training_type: TrainingType = TrainingType.training
    category: Optional[str] = None
    completed_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    hours: Optional[float] = Field(default=None, ge=0)
    instructor: Optional[str] = None
    location: Optional[str] = None
    certificate_id: Optional[uuid.UUID] = None
    attachments: Optional[List[UploadedAttachment]] = None
    notes: Optional[str] = None


class TrainingCreate(TrainingBase):
    user_id: Optional[uuid.UUID] = None  # assigning to someone else requires an elevated caller
    requires_approval: bool = False


class TrainingUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    training_type: Optional[TrainingType] = None
    category: Optional[str] = None
    completed_date: Optional[UTCDateTime] = None
    expiry_date: Optional[UTCDateTime] = None
    hours: Optional[float] = Field(default=None, ge=0)
    instructor: Optional[str] = None
    location: Optional[str] = None
    certificate_id: Optional[uuid.UUID] = None
    attachments: Optional[List[UploadedAttachment]] = None
    notes: Optional[str] = None


class TrainingDecision(BaseModel):
    approved: bool
    notes: Optional[str] = None


class TrainingResponse(TrainingBase):
    id: uuid.UUID
    user_id: uuid.UUID
    user: Optional[UserBrief] = None
    status: TrainingStatus
    requires_approval: bool
    approved_by: Optional[UserBrief] = None
    approved_date: Optional[datetime] = None
    approval_notes: Optional[str] = None
    assigned_by: Optional[UserBrief] = None
    assigned_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
