import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from .common import Attachment, UploadedAttachment, UserBrief


class GroupType(str, Enum):
    main = "main"
    parade = "parade"
    training = "training"
    callout = "callout"
    custom = "custom"


class ExternalSource(str, Enum):
    adlc = "adlc"
    dispatch = "dispatch"
    fire = "fire"
    ems = "ems"
    police = "police"


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    members: Optional[List[uuid.UUID]] = None
    auto_clear_enabled: bool = True


class GroupResponse(BaseModel):
    id: uuid.UUID
    name: str
    type: GroupType
    description: Optional[str] = None
    created_by_id: Optional[uuid.UUID] = None
    members: List[str] = []
    last_cleared: Optional[datetime] = None
    auto_clear_enabled: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    content: str = Field(min_length=1)
    recipient_id: Optional[uuid.UUID] = None
    group_type: Optional[GroupType] = None
    group_name: Optional[str] = None
    is_broadcast: bool = False
    attachments: Optional[List[UploadedAttachment]] = None

    @model_validator(mode="after")
    def _needs_target(self):
        if self.recipient_id is None and self.group_type is None:
            raise ValueError("Recipient or group is required")
        if self.group_type == GroupType.custom and not self.group_name:
            raise ValueError("Custom group messages need a group name")
        return self


class ReadReceipt(BaseModel):
    user_id: str
    read_at: datetime


class MessageResponse(BaseModel):
    id: uuid.UUID
    sender: Optional[UserBrief] = None
    recipient: Optional[UserBrief] = None
    group_type: Optional[GroupType] = None
    group_name: Optional[str] = None
    is_broadcast: bool
    content: str
    attachments: List[Attachment] = []
    read: bool
    read_at: Optional[datetime] = None
    read_by: List[ReadReceipt] = []
    is_external: bool
    external_source: Optional[ExternalSource] = None
    external_sender_name: Optional[str] = None
    external_sender_id: Optional[str] = None
    external_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ChatUnreadCount(BaseModel):
    direct: int
    groups: int
    total: int


class ClearResult(BaseModel):
    message: str
    deleted: int
