"""
In-app notification records.
Push delivery to registered device tokens happens outside this service; here we
only persist the record the client polls for.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ..models.models import Notification


log = structlog.get_logger(__name__)


def create_notification(
    db: Session,
    user_id,
    title: str,
    message: str,
    type: str = "general",
    priority: str = "medium",
    related_entity: Optional[tuple] = None,
    action_url: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Notification:
    """
    Add a notification to the session without committing.

    Args:
        db: Database session
        user_id: Recipient user ID
        title: Short headline
        message: Body text
        type: One of the notification types (report_approved, training_approved, ...)
        priority: low|medium|high|critical
        related_entity: Optional (entity_type, entity_id) pair
        action_url: Client route to open when tapped
        data: Arbitrary extra payload

    Returns:
        The pending Notification object
    """
    entity_type, entity_id = related_entity if related_entity else (None, None)
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        priority=priority,
        related_entity_type=entity_type,
        related_entity_id=str(entity_id) if entity_id is not None else None,
        action_url=action_url,
        data=data or {},
    )
    db.add(notification)
    log.info("notification_created", user_id=str(user_id), type=type)
    return notification


def visible_notifications(db: Session, user_id, now: Optional[datetime] = None) -> Query:
    """Notifications for a user, excluding ones whose expiry date has passed."""
    now = now or datetime.now(timezone.utc)
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        or_(Notification.expiry_date.is_(None), Notification.expiry_date > now),
    )
