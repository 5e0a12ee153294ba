import uuid
from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from .common import Attachment, UploadedAttachment, UserBrief, UTCDateTime


class CalloutType(str, Enum):
    search = "search"
    rescue = "rescue"
    recovery = "recovery"
    assist = "assist"
    training = "training"
    other = "other"


class CalloutStatus(str, Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class ReportType(str, Enum):
    incident = "incident"
    after_action = "after_action"
    safety = "safety"
    equipment = "equipment"
    personnel = "personnel"
    other = "other"


class ReportStatus(str, Enum):
    draft = "draft"
    submitted = "submitted"
    reviewed = "reviewed"
    approved = "approved"
    archived = "archived"


class Coordinates(BaseModel):
    lat: float
    lng: float


class CalloutLocation(BaseModel):
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    description: Optional[str] = None


class ContactPerson(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class RespondingMember(BaseModel):
    user_id: uuid.UUID
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    role: Optional[str] = None
    notes: Optional[str] = None


class CalloutBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    type: CalloutType = CalloutType.search
    location: Optional[CalloutLocation] = None
    contact_person: Optional[ContactPerson] = None
    attachments: Optional[List[UploadedAttachment]] = None
    notes: Optional[str] = None


class CalloutCreate(CalloutBase):
    status: CalloutStatus = CalloutStatus.active
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class CalloutUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[CalloutType] = None
    status: Optional[CalloutStatus] = None
    location: Optional[CalloutLocation] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    contact_person: Optional[ContactPerson] = None
    attachments: Optional[List[UploadedAttachment]] = None
    notes: Optional[str] = None


class CheckInRequest(BaseModel):
    role: Optional[str] = None
    notes: Optional[str] = None


class ReportBrief(BaseModel):
    id: uuid.UUID
    report_number: str
    title: str
    status: ReportStatus

    class Config:
        from_attributes = True


class CalloutResponse(CalloutBase):
    id: uuid.UUID
    callout_number: str
    status: CalloutStatus
    start_date: datetime
    end_date: Optional[datetime] = None
    responding_members: List[RespondingMember] = []
    reports: List[ReportBrief] = []
    created_by: Optional[UserBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CalloutBrief(BaseModel):
    id: uuid.UUID
    callout_number: str
    title: str
    status: CalloutStatus

    class Config:
        from_attributes = True


# Report Schemas
class ReportSections(BaseModel):
    summary: Optional[str] = None
    actions_taken: Optional[str] = None
    outcome: Optional[str] = None
    lessons_learned: Optional[str] = None
    recommendations: Optional[str] = None


class ReportCreate(ReportSections):
    callout_id: uuid.UUID
    title: str = Field(min_length=1)
    report_type: ReportType = ReportType.incident
    content: str = Field(min_length=1)
    attachments: Optional[List[UploadedAttachment]] = None


class ReportUpdate(ReportSections):
    title: Optional[str] = Field(default=None, min_length=1)
    report_type: Optional[ReportType] = None
    content: Optional[str] = Field(default=None, min_length=1)
    attachments: Optional[List[UploadedAttachment]] = None


class HistoryEntry(BaseModel):
    modified_by: Optional[str] = None
    modified_at: datetime
    changes: str


class ReportResponse(ReportSections):
    id: uuid.UUID
    report_number: str
    callout: Optional[CalloutBrief] = None
    title: str
    report_type: ReportType
    status: ReportStatus
    content: str
    attachments: List[Attachment] = []
    written_by: Optional[UserBrief] = None
    reviewed_by: Optional[UserBrief] = None
    reviewed_at: Optional[datetime] = None
    approved_by: Optional[UserBrief] = None
    approved_at: Optional[datetime] = None
    modification_history: List[HistoryEntry] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

