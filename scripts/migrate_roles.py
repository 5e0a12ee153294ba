"""
Map legacy user roles onto admin/officer/member.

Usage:
  python scripts/migrate_roles.py [--dry-run]

technician, operator and trainer become officer; viewer and anything
unrecognised become member. Safe to run more than once.
"""
import argparse
import os
import sys

import structlog

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.auth.security import ROLES
from app.db import SessionLocal
from app.logging import setup_logging
from app.models.models import User


log = structlog.get_logger("migrate_roles")

LEGACY_ROLES = {
    "technician": "officer",
    "operator": "officer",
    "trainer": "officer",
    "viewer": "member",
}


def canonical_role(role) -> str:
    role = (role or "").strip().lower()
    if role in ROLES:
        return role
    return LEGACY_ROLES.get(role, "member")


def migrate_roles(dry_run: bool = False) -> int:
    db = SessionLocal()
    changed = 0
    try:
        for user in db.query(User).all():
            new_role = canonical_role(user.role)
            if new_role != user.role:
                log.info("role_mapped", username=user.username, old=user.role, new=new_role)
                user.role = new_role
                changed += 1
        if dry_run:
            db.rollback()
        else:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    log.info("role_migration_complete", changed=changed, dry_run=dry_run)
    return changed


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Migrate legacy roles")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()
    setup_logging()
    migrate_roles(dry_run=args.dry_run)
