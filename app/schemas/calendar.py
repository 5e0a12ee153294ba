import uuid
from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from .common import UserBrief, UTCDateTime


class AppointmentType(str, Enum):
    meeting = "meeting"
    training = "training"
    inspection = "inspection"
    maintenance = "maintenance"
    event = "event"
    other = "other"


class AppointmentPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class AttendeeStatus(str, Enum):
    invited = "invited"
    accepted = "accepted"
    declined = "declined"
    tentative = "tentative"


class Attendee(BaseModel):
    user_id: uuid.UUID
    status: AttendeeStatus = AttendeeStatus.invited


class Reminder(BaseModel):
    type: str = "system"  # system|email|push
    minutes_before: int = Field(default=15, ge=0)


class RecurringPattern(BaseModel):
    frequency: str  # daily|weekly|monthly|yearly
    interval: int = Field(default=1, ge=1)
    end_type: str = "never"  # never|date|count
    end_date: Optional[UTCDateTime] = None
    end_count: Optional[int] = None
    days_of_week: Optional[List[int]] = None


class AppointmentBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = None
    type: AppointmentType = AppointmentType.meeting
    priority: AppointmentPriority = AppointmentPriority.medium
    attendees: Optional[List[Attendee]] = None
    related_asset_id: Optional[uuid.UUID] = None
    related_work_order_id: Optional[uuid.UUID] = None
    is_recurring: bool = False
    recurring_pattern: Optional[RecurringPattern] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class AppointmentCreate(AppointmentBase):
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None
    all_day: bool = False
    status: AppointmentStatus = AppointmentStatus.scheduled
    reminders: Optional[List[Reminder]] = None


class AppointmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    all_day: Optional[bool] = None
    location: Optional[str] = None
    type: Optional[AppointmentType] = None
    priority: Optional[AppointmentPriority] = None
    status: Optional[AppointmentStatus] = None
    attendees: Optional[List[Attendee]] = None
    reminders: Optional[List[Reminder]] = None
    related_asset_id: Optional[uuid.UUID] = None
    related_work_order_id: Optional[uuid.UUID] = None
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[RecurringPattern] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class RsvpRequest(BaseModel):
    status: AttendeeStatus


class AppointmentResponse(AppointmentBase):
    id: uuid.UUID
    start_date: datetime
    end_date: datetime
    all_day: bool
    status: AppointmentStatus
    reminders: List[Reminder] = []
    created_by: Optional[UserBrief] = None
    duration_minutes: int
    is_overdue: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
