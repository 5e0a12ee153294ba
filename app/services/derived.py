"""
Derived-field computations.

Pure functions that run immediately before a record is persisted or when it is
read back: expiry status, checklist completion stats, sequential document
numbers, overdue flags and appointment durations. None of them touch the
database; callers pass in whatever counts or timestamps they need.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Mapping, Optional


EXPIRING_SOON_WINDOW = timedelta(days=30)

# Statuses in which a maintenance record or appointment can still become overdue
ACTIVE_MAINTENANCE_STATUSES = ("scheduled", "in_progress")
ACTIVE_APPOINTMENT_STATUSES = ("scheduled", "confirmed", "in_progress")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes coming back from SQLite are stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expiry_status(issued_date: Optional[datetime], expiry_date: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Classify a credential by its expiry date.

    Args:
        issued_date: When the credential was issued (not used for classification)
        expiry_date: When it expires; None means it never expires
        now: Reference time, defaults to the current UTC time

    Returns:
        "expired", "expiring_soon" or "active"
    """
    if expiry_date is None:
        return "active"
    now = as_utc(now) or utcnow()
    remaining = as_utc(expiry_date) - now
    if remaining < timedelta(0):
        return "expired"
    if timedelta(0) < remaining <= EXPIRING_SOON_WINDOW:
        return "expiring_soon"
    return "active"


def days_until(expiry_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    if expiry_date is None:
        return None
    now = as_utc(now) or utcnow()
    seconds = (as_utc(expiry_date) - now).total_seconds()
    return math.ceil(seconds / 86400)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _item_value(item: Any, key: str) -> bool:
    if isinstance(item, Mapping):
        return bool(item.get(key))
    return bool(getattr(item, key, False))


def completion_stats(items: Iterable[Any]) -> Dict[str, Any]:
    """
    Recompute checklist counters from its item list.

    Status is "completed" when every required item is done, or every item
    when none are marked required; otherwise "partial".
    """
    items = list(items or [])
    total = len(items)
    completed = sum(1 for i in items if _item_value(i, "completed"))
    required = [i for i in items if _item_value(i, "required")]
    completed_required = sum(1 for i in required if _item_value(i, "completed"))

    percentage = _round_half_up(completed / total * 100) if total else 0
    if required:
        done = completed_required == len(required)
    else:
        done = completed == total
    return {
        "total_items": total,
        "completed_items": completed,
        "required_items": len(required),
        "completed_required_items": completed_required,
        "completion_percentage": percentage,
        "status": "completed" if done else "partial",
    }


def sequential_document_number(prefix: str, year: int, current_count: int) -> str:
    return f"{prefix}-{year}-{current_count + 1:04d}"


def is_overdue(
    status: Optional[str],
    due_date: Optional[datetime],
    now: Optional[datetime] = None,
    active_statuses: Iterable[str] = ACTIVE_MAINTENANCE_STATUSES,
) -> bool:
    if due_date is None or status not in tuple(active_statuses):
        return False
    now = as_utc(now) or utcnow()
    return as_utc(due_date) < now


def appointment_duration_minutes(start: datetime, end: datetime) -> int:
    return _round_half_up((as_utc(end) - as_utc(start)).total_seconds() / 60)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def resolve_appointment_end(start: datetime, end: Optional[datetime], all_day: bool) -> datetime:
    """
    Work out the stored end of an appointment.

    All-day events without an end run to the last millisecond of the start
    date; timed events without an end last one hour. Raises ValueError when a
    timed event does not end after it starts.
    """
    if end is not None and not all_day and as_utc(start) >= as_utc(end):
        raise ValueError("End date must be after start date")
    if end is not None:
        return end
    if all_day:
        return end_of_day(start)
    return start + timedelta(hours=1)
