import uuid
from typing import List, Optional

from pydantic import BaseModel

from .chat import ExternalSource, MessageResponse


class WebhookResult(BaseModel):
    # camelCase to match what the dispatch app expects back
    success: bool
    message: str
    messageId: uuid.UUID
    group: str


class IntegrationStatus(BaseModel):
    enabled: bool
    target_group: str
    target_group_exists: bool
    webhook_secret_configured: bool
    signature_mode: bool
    recent_messages: List[MessageResponse]


class SimulatedMessage(BaseModel):
    message: Optional[str] = None
    source: Optional[ExternalSource] = None
    sender_name: Optional[str] = None
