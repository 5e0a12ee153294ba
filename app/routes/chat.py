from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user, is_elevated
from ..db import get_db
from ..errors import Conflict, NotFound, Unauthorized, ValidationError, parse_id
from ..models.models import ChatGroup, ChatMessage, User
from ..schemas.chat import (
    ChatUnreadCount,
    ClearResult,
    GroupCreate,
    GroupResponse,
    GroupType,
    MessageCreate,
    MessageResponse,
)
from ..schemas.common import UserBrief, to_model_data
from ..services.chat import (
    CUSTOM,
    PREDEFINED_GROUPS,
    clear_group,
    ensure_group,
    ensure_predefined_groups,
    group_messages,
    has_read,
    mark_read_by,
)


router = APIRouter(prefix="/api/chat", tags=["chat"])
log = structlog.get_logger(__name__)

MESSAGE_LIMIT = 100


def _read_and_mark(db: Session, query, user: User, limit: int) -> List[ChatMessage]:
    """Newest `limit` messages, returned oldest first and marked read by the caller."""
    messages = query.order_by(ChatMessage.created_at.desc()).limit(limit).all()
    me = str(user.id)
    now = datetime.now(timezone.utc)
    changed = [m for m in messages if mark_read_by(m, me, now)]
    if changed:
        db.commit()
    return list(reversed(messages))


def _custom_group(db: Session, name: str) -> ChatGroup:
    group = db.query(ChatGroup).filter(ChatGroup.name == name, ChatGroup.type == CUSTOM).first()
    if group is None:
        raise NotFound("Group not found")
    return group


@router.get("/groups", response_model=List[GroupResponse])
def list_groups(db: Session = Depends(get_db), _=Depends(get_current_user)):
    ensure_predefined_groups(db)
    db.commit()
    return db.query(ChatGroup).order_by(ChatGroup.created_at.asc(), ChatGroup.name.asc()).all()


@router.post("/groups", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(payload: GroupCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    name = payload.name.strip()
    if name.lower() in PREDEFINED_GROUPS or name.lower() == CUSTOM:
        raise ValidationError("Group name is reserved")
    if db.query(ChatGroup).filter(ChatGroup.name == name).first():
        raise Conflict("Group name already exists")
    data = to_model_data(payload)
    members = {str(m) for m in data.pop("members", None) or []}
    members.add(str(user.id))
    data["name"] = name
    group = ChatGroup(**data, type=CUSTOM, created_by_id=user.id, members=sorted(members))
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.get("/group/custom/{name}", response_model=List[MessageResponse])
def custom_group_messages(
    name: str,
    limit: int = Query(MESSAGE_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _custom_group(db, name)
    return _read_and_mark(db, group_messages(db, CUSTOM, name), user, limit)


@router.get("/group/{group_type}", response_model=List[MessageResponse])
def predefined_group_messages(
    group_type: GroupType,
    limit: int = Query(MESSAGE_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if group_type == GroupType.custom:
        raise ValidationError("Custom groups are addressed by name")
    return _read_and_mark(db, group_messages(db, group_type.value), user, limit)


@router.get("/direct/{user_id}", response_model=List[MessageResponse])
def direct_messages(
    user_id: str,
    limit: int = Query(MESSAGE_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The two-way conversation with another user; incoming messages are marked read"""
    other = parse_id(user_id, "User not found")
    conversation = db.query(ChatMessage).filter(
        ChatMessage.group_type.is_(None),
        or_(
            and_(ChatMessage.sender_id == user.id, ChatMessage.recipient_id == other),
            and_(ChatMessage.sender_id == other, ChatMessage.recipient_id == user.id),
        ),
    )
    messages = conversation.order_by(ChatMessage.created_at.desc()).limit(limit).all()

    db.query(ChatMessage).filter(
        ChatMessage.group_type.is_(None),
        ChatMessage.sender_id == other,
        ChatMessage.recipient_id == user.id,
        ChatMessage.read.is_(False),
    ).update({"read": True, "read_at": datetime.now(timezone.utc)}, synchronize_session=False)
    db.commit()
    return list(reversed(messages))


@router.post("/send", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(payload: MessageCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    data = to_model_data(payload)
    if payload.group_type is None:
        if db.get(User, payload.recipient_id) is None:
            raise NotFound("Recipient not found")
        data["group_name"] = None
    elif payload.group_type == GroupType.custom:
        _custom_group(db, payload.group_name)
        data["recipient_id"] = None
    else:
        ensure_group(db, payload.group_type.value)
        data["recipient_id"] = None
        data["group_name"] = None

    message = ChatMessage(**data, sender_id=user.id, read_by=[])
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


@router.delete("/group/custom/{name}", response_model=ClearResult)
def clear_custom_group(name: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    group = _custom_group(db, name)
    ensure_owner_or_elevated(user, group.created_by_id, "Only the group creator can clear this chat")
    deleted = clear_group(db, group)
    db.commit()
    return {"message": f"Cleared {deleted} messages", "deleted": deleted}


@router.delete("/group/{group_type}", response_model=ClearResult)
def clear_predefined_group(group_type: GroupType, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if group_type == GroupType.custom:
        raise ValidationError("Custom groups are addressed by name")
    if group_type == GroupType.callout and not is_elevated(user.role):
        raise Unauthorized("Only admins and officers can clear callout chat")
    group = ensure_group(db, group_type.value)
    deleted = clear_group(db, group)
    db.commit()
    log.info("chat_cleared", group=group_type.value, by=str(user.id))
    return {"message": f"Cleared {deleted} messages", "deleted": deleted}


@router.get("/unread-count", response_model=ChatUnreadCount)
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    direct = db.query(ChatMessage).filter(
        ChatMessage.group_type.is_(None),
        ChatMessage.recipient_id == user.id,
        ChatMessage.read.is_(False),
    ).count()
    # read receipts live in a JSON list
    me = str(user.id)
    candidates = db.query(ChatMessage).filter(
        ChatMessage.group_type.is_not(None),
        or_(ChatMessage.sender_id.is_(None), ChatMessage.sender_id != user.id),
    ).all()
    groups = sum(1 for m in candidates if not has_read(m, me))
    return {"direct": direct, "groups": groups, "total": direct + groups}


@router.get("/users", response_model=List[UserBrief])
def chat_users(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return (
        db.query(User)
        .filter(User.id != user.id, User.is_active.is_(True))
        .order_by(User.first_name.asc(), User.last_name.asc())
        .all()
    )
