"""
Chat group bookkeeping shared by the chat routes, the dispatch webhook and
the monthly clean-up script.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.orm import Query, Session

from ..models.models import ChatGroup, ChatMessage


log = structlog.get_logger(__name__)

PREDEFINED_GROUPS = ("main", "parade", "training", "callout")
CUSTOM = "custom"


def ensure_group(db: Session, name: str, created_by_id=None) -> ChatGroup:
    """
    Return the group called `name`, creating it if needed.

    A predefined name (main, parade, training, callout) gets that type;
    anything else becomes a custom group. Flushes but does not commit.
    """
    group_type = name if name in PREDEFINED_GROUPS else CUSTOM
    group = db.query(ChatGroup).filter(ChatGroup.name == name, ChatGroup.type == group_type).first()
    if group is not None:
        return group
    group = ChatGroup(
        name=name,
        type=group_type,
        created_by_id=created_by_id,
        members=[],
        auto_clear_enabled=True,
    )
    db.add(group)
    db.flush()
    log.info("chat_group_created", name=name, type=group.type)
    return group


def ensure_predefined_groups(db: Session) -> None:
    existing = {name for (name,) in db.query(ChatGroup.name).filter(ChatGroup.name.in_(PREDEFINED_GROUPS))}
    for name in PREDEFINED_GROUPS:
        if name not in existing:
            ensure_group(db, name)


def group_messages(db: Session, group_type: str, group_name: Optional[str] = None) -> Query:
    query = db.query(ChatMessage).filter(ChatMessage.group_type == group_type)
    if group_type == CUSTOM:
        query = query.filter(ChatMessage.group_name == group_name)
    return query


def messages_for_group(db: Session, group: ChatGroup) -> Query:
    return group_messages(db, group.type, group.name if group.type == CUSTOM else None)


def clear_group(db: Session, group: ChatGroup, before: Optional[datetime] = None) -> int:
    """
    Delete a group's messages (all of them, or those created before `before`)
    and stamp last_cleared. Does not commit.
    """
    query = messages_for_group(db, group)
    if before is not None:
        query = query.filter(ChatMessage.created_at < before)
    deleted = query.delete(synchronize_session=False)
    group.last_cleared = datetime.now(timezone.utc)
    log.info("chat_group_cleared", group=group.name, deleted=deleted)
    return deleted


def has_read(message: ChatMessage, user_id: str) -> bool:
    return any(r.get("user_id") == user_id for r in message.read_by or [])


def mark_read_by(message: ChatMessage, user_id: str, when: Optional[datetime] = None) -> bool:
    if has_read(message, user_id):
        return False
    when = when or datetime.now(timezone.utc)
    message.read_by = [*(message.read_by or []), {"user_id": user_id, "read_at": when.isoformat()}]
    return True
