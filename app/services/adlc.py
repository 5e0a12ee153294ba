"""
Bridge for messages pushed by the ADLC emergency dispatch app.

Inbound payloads use loosely agreed field names, so they are normalized here
before being posted into the configured chat group as external messages.
"""
import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import Settings
from ..models.models import ChatMessage
from .chat import CUSTOM, ensure_group


log = structlog.get_logger(__name__)

KNOWN_SOURCES = ("adlc", "dispatch", "fire", "ems", "police")
DEFAULT_SENDER_NAME = "ADLC Emergency"
DEFAULT_SENDER_ID = "adlc-system"


def sign(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    if not signature or not secret:
        return False
    expected = sign(raw_body, secret).encode("ascii")
    return hmac.compare_digest(expected, signature.strip().lower().encode("utf-8", "replace"))


def verify_api_key(provided: Optional[str], secret: Optional[str]) -> bool:
    if not provided or not secret:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8"))


def is_authentic(headers, raw_body: bytes, config: Settings) -> bool:
    """Check the request against whichever auth mode the deployment selected."""
    secret = config.adlc_webhook_secret
    if config.adlc_use_signature:
        signature = headers.get("x-adlc-signature") or headers.get("x-signature")
        return verify_signature(raw_body, signature, secret)
    provided = headers.get("x-api-key")
    if not provided:
        auth = headers.get("authorization") or ""
        if auth.lower().startswith("bearer "):
            provided = auth[7:].strip()
    return verify_api_key(provided, secret)


def _external_source(body: Dict[str, Any]) -> str:
    source = str(body.get("source") or "").strip().lower()
    if source in KNOWN_SOURCES:
        return source
    department = str(body.get("department") or "").strip().lower()
    if department in KNOWN_SOURCES:
        return department
    return "adlc"


def _attachments(raw) -> list:
    if not isinstance(raw, list):
        return []
    attachments = []
    for att in raw:
        if not isinstance(att, dict):
            continue
        url = att.get("url") or att.get("link")
        if not url:
            continue
        name = att.get("name") or att.get("filename") or "attachment"
        attachments.append({
            "filename": name,
            "original_name": name,
            "path": url,
            "mime_type": att.get("type") or att.get("mimeType") or "application/octet-stream",
        })
    return attachments


def normalize(body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an inbound payload to message columns.

    Raises:
        ValueError: no content under message, content or text
    """
    content = body.get("message") or body.get("content") or body.get("text")
    if not content or not str(content).strip():
        raise ValueError("Message content is required")

    sender_name = body.get("senderName") or body.get("sender") or body.get("department") or DEFAULT_SENDER_NAME
    sender_id = body.get("senderId") or body.get("sender") or DEFAULT_SENDER_ID
    metadata = body.get("metadata") if isinstance(body.get("metadata"), dict) else {}
    return {
        "content": f"[{sender_name}] {content}",
        "attachments": _attachments(body.get("attachments")),
        "external_source": _external_source(body),
        "external_sender_name": str(sender_name),
        "external_sender_id": str(sender_id),
        "external_metadata": {
            "original_timestamp": body.get("timestamp") or datetime.now(timezone.utc).isoformat(),
            "department": body.get("department"),
            **metadata,
        },
    }


def post_external_message(db: Session, fields: Dict[str, Any], target_group: str) -> ChatMessage:
    """Post a normalized message into the target group, creating the group if missing."""
    group = ensure_group(db, target_group)
    message = ChatMessage(
        sender_id=None,
        group_type=group.type,
        group_name=group.name if group.type == CUSTOM else None,
        is_external=True,
        read_by=[],
        **fields,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    log.info(
        "external_message_posted",
        source=message.external_source,
        sender=message.external_sender_name,
        group=group.name,
    )
    return message
