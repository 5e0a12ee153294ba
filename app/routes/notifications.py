from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, is_elevated
from ..db import get_db
from ..errors import NotFound, parse_id
from ..models.models import Notification, User
from ..schemas.common import MessageResponse
from ..schemas.notifications import (
    NotificationCreate,
    NotificationList,
    NotificationResponse,
    NotificationType,
    PushTokenRequest,
    UnreadCount,
)
from ..services.notifications import create_notification, visible_notifications


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _own_notification(db: Session, user: User, notification_id: str) -> Notification:
    """Other users' notifications are reported as missing."""
    notification = db.get(Notification, parse_id(notification_id, "Notification not found"))
    if notification is None or notification.user_id != user.id:
        raise NotFound("Notification not found")
    return notification


@router.get("", response_model=NotificationList)
def list_notifications(
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = visible_notifications(db, user.id)
    unread_count = query.filter(Notification.read.is_(False)).count()
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    if type:
        query = query.filter(Notification.type == type.value)
    total = query.count()
    notifications = query.order_by(Notification.created_at.desc()).limit(limit).all()
    return {"notifications": notifications, "unread_count": unread_count, "total": total}


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    count = visible_notifications(db, user.id).filter(Notification.read.is_(False)).count()
    return {"unread_count": count}


@router.patch("/read-all", response_model=MessageResponse)
def mark_all_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user.id, Notification.read.is_(False))
        .update({"read": True, "read_at": datetime.now(timezone.utc)}, synchronize_session=False)
    )
    db.commit()
    return {"message": f"{updated} notifications marked as read"}


@router.delete("/read/all", response_model=MessageResponse)
def delete_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    deleted = (
        db.query(Notification)
        .filter(Notification.user_id == user.id, Notification.read.is_(True))
        .delete(synchronize_session=False)
    )
    db.commit()
    return {"message": f"{deleted} read notifications deleted"}


@router.post("/register-token", response_model=MessageResponse)
def register_push_token(
    payload: PushTokenRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tokens = list(user.push_tokens or [])
    if payload.token not in tokens:
        user.push_tokens = [*tokens, payload.token]
        db.commit()
    return {"message": "Push token registered"}


@router.post("/unregister-token", response_model=MessageResponse)
def unregister_push_token(
    payload: PushTokenRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user.push_tokens = [t for t in user.push_tokens or [] if t != payload.token]
    db.commit()
    return {"message": "Push token removed"}


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def post_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Create a notification for yourself, or for another user if elevated"""
    recipient_id = user.id
    if payload.user_id is not None and is_elevated(user.role):
        if db.get(User, payload.user_id) is None:
            raise NotFound("User not found")
        recipient_id = payload.user_id

    related = None
    if payload.related_entity_type:
        related = (payload.related_entity_type, payload.related_entity_id)
    notification = create_notification(
        db,
        recipient_id,
        title=payload.title,
        message=payload.message,
        type=payload.type.value,
        priority=payload.priority.value,
        related_entity=related,
        action_url=payload.action_url,
        data=payload.data,
    )
    notification.expiry_date = payload.expiry_date
    db.commit()
    db.refresh(notification)
    return notification


@router.get("/{notification_id}", response_model=NotificationResponse)
def get_notification(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _own_notification(db, user, notification_id)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    notification = _own_notification(db, user, notification_id)
    if not notification.read:
        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    notification = _own_notification(db, user, notification_id)
    db.delete(notification)
    db.commit()
    return {"message": "Notification deleted successfully"}
