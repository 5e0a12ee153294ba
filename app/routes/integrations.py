import json

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..auth.security import require_admin, require_elevated
from ..config import settings
from ..db import get_db
from ..errors import Unauthenticated, ValidationError
from ..models.models import ChatGroup, ChatMessage
from ..schemas.integration import IntegrationStatus, SimulatedMessage, WebhookResult
from ..services import adlc


router = APIRouter(prefix="/api/integration", tags=["integration"])
log = structlog.get_logger(__name__)


def _accepted(message: ChatMessage, text: str) -> dict:
    return {
        "success": True,
        "message": text,
        "messageId": message.id,
        "group": settings.adlc_target_group,
    }


@router.post("/webhook", response_model=WebhookResult, status_code=status.HTTP_201_CREATED)
async def receive_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Inbound messages from the ADLC dispatch app.

    Authenticated by HMAC signature or shared API key depending on
    ADLC_USE_SIGNATURE; the signature covers the raw request body.
    """
    if not settings.adlc_enabled:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Integration disabled")

    raw = await request.body()
    if not adlc.is_authentic(request.headers, raw, settings):
        log.warning("webhook_rejected", signature_mode=settings.adlc_use_signature)
        raise Unauthenticated("Invalid webhook signature" if settings.adlc_use_signature else "Invalid API key")

    try:
        body = json.loads(raw or b"{}")
    except ValueError:
        raise ValidationError("Body must be JSON")
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")
    try:
        fields = adlc.normalize(body)
    except ValueError as e:
        raise ValidationError(str(e))

    message = await run_in_threadpool(adlc.post_external_message, db, fields, settings.adlc_target_group)
    return _accepted(message, "Message received and posted")


@router.get("/status", response_model=IntegrationStatus)
def integration_status(db: Session = Depends(get_db), _=Depends(require_elevated)):
    target = settings.adlc_target_group
    recent = (
        db.query(ChatMessage)
        .filter(ChatMessage.is_external.is_(True))
        .order_by(ChatMessage.created_at.desc())
        .limit(10)
        .all()
    )
    return {
        "enabled": settings.adlc_enabled,
        "target_group": target,
        "target_group_exists": db.query(ChatGroup).filter(ChatGroup.name == target).first() is not None,
        "webhook_secret_configured": bool(settings.adlc_webhook_secret),
        "signature_mode": settings.adlc_use_signature,
        "recent_messages": recent,
    }


@router.post("/test", response_model=WebhookResult, status_code=status.HTTP_201_CREATED)
def simulate_message(payload: SimulatedMessage, db: Session = Depends(get_db), _=Depends(require_admin)):
    """Inject a message as if it came from the dispatch app"""
    fields = adlc.normalize({
        "message": payload.message or "Test message from ADLC integration",
        "source": payload.source.value if payload.source else None,
        "senderName": payload.sender_name or "Test Sender",
        "senderId": "test-sender",
        "metadata": {"test": True},
    })
    message = adlc.post_external_message(db, fields, settings.adlc_target_group)
    return _accepted(message, "Test message created")
