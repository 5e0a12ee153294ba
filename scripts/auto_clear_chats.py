"""
Monthly chat clean-up.

Deletes messages older than the start of the current month (local time,
TZ_DEFAULT) from every chat group that has auto_clear_enabled set.

Usage:
  python scripts/auto_clear_chats.py [--dry-run]

Intended to run from cron shortly after midnight on the 1st.
"""
import argparse
import os
import sys
from datetime import datetime

import pytz
import structlog

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import settings
from app.db import SessionLocal
from app.logging import setup_logging
from app.models.models import ChatGroup, ChatMessage
from app.services.chat import clear_group, messages_for_group


log = structlog.get_logger("auto_clear_chats")


def month_start_utc(now=None, tz_name=None):
    """First instant of the current month in local time, expressed in UTC."""
    tz = pytz.timezone(tz_name or settings.tz_default)
    local_now = now.astimezone(tz) if now else datetime.now(tz)
    local_start = tz.localize(datetime(local_now.year, local_now.month, 1))
    return local_start.astimezone(pytz.utc)


def auto_clear(dry_run: bool = False) -> int:
    cutoff = month_start_utc()
    db = SessionLocal()
    total = 0
    try:
        groups = db.query(ChatGroup).filter(ChatGroup.auto_clear_enabled.is_(True)).all()
        for group in groups:
            if dry_run:
                count = messages_for_group(db, group).filter(ChatMessage.created_at < cutoff).count()
                log.info("chat_group_would_clear", group=group.name, messages=count)
            else:
                count = clear_group(db, group, before=cutoff)
            total += count
        if dry_run:
            db.rollback()
        else:
            db.commit()
    except Exception:
        db.rollback()
        log.exception("auto_clear_failed")
        raise
    finally:
        db.close()

    log.info("auto_clear_complete", groups=len(groups), messages=total, cutoff=cutoff.isoformat(), dry_run=dry_run)
    return total


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Clear last month's chat messages")
    parser.add_argument("--dry-run", action="store_true", help="Only count what would be deleted")
    args = parser.parse_args()
    setup_logging()
    auto_clear(dry_run=args.dry_run)
