import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from .common import UTCDateTime


class NotificationType(str, Enum):
    maintenance_due = "maintenance_due"
    maintenance_overdue = "maintenance_overdue"
    equipment_inspection = "equipment_inspection"
    training_expiration = "training_expiration"
    certification_expiration = "certification_expiration"
    callout_new = "callout_new"
    checklist_assigned = "checklist_assigned"
    chat_message = "chat_message"
    report_approved = "report_approved"
    report_rejected = "report_rejected"
    training_approved = "training_approved"
    training_rejected = "training_rejected"
    general = "general"


class NotificationPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class NotificationCreate(BaseModel):
    user_id: Optional[uuid.UUID] = None  # elevated callers may notify someone else
    type: NotificationType = NotificationType.general
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    action_url: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.medium
    expiry_date: Optional[UTCDateTime] = None
    data: Optional[Dict[str, Any]] = None


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    read: bool
    read_at: Optional[datetime] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    action_url: Optional[str] = None
    priority: NotificationPriority
    expiry_date: Optional[datetime] = None
    data: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationList(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    total: int


class UnreadCount(BaseModel):
    unread_count: int


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1)
