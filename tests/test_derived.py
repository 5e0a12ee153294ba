from datetime import datetime, timedelta, timezone

import pytest

from app.services.derived import (
    appointment_duration_minutes,
    completion_stats,
    days_until,
    expiry_status,
    is_overdue,
    resolve_appointment_end,
    sequential_document_number,
)


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_expiry_status_classification():
    assert expiry_status(None, None, NOW) == "active"
    assert expiry_status(None, NOW - timedelta(days=1), NOW) == "expired"
    assert expiry_status(None, NOW + timedelta(days=10), NOW) == "expiring_soon"
    assert expiry_status(None, NOW + timedelta(days=30), NOW) == "expiring_soon"
    assert expiry_status(None, NOW + timedelta(days=31), NOW) == "active"


def test_expiry_status_accepts_naive_datetimes():
    naive = (NOW + timedelta(days=5)).replace(tzinfo=None)
    assert expiry_status(None, naive, NOW) == "expiring_soon"


def test_days_until_rounds_up():
    assert days_until(None, NOW) is None
    assert days_until(NOW + timedelta(days=2, hours=1), NOW) == 3
    assert days_until(NOW - timedelta(hours=12), NOW) == 0


def test_completion_stats_partial_when_required_item_open():
    items = [
        {"item": "Radio check", "required": True, "completed": True},
        {"item": "First aid kit", "required": True, "completed": False},
        {"item": "Snacks", "required": False, "completed": True},
    ]
    stats = completion_stats(items)
    assert stats["total_items"] == 3
    assert stats["completed_items"] == 2
    assert stats["required_items"] == 2
    assert stats["completed_required_items"] == 1
    assert stats["completion_percentage"] == 67
    assert stats["status"] == "partial"


def test_completion_stats_required_items_decide_status():
    items = [
        {"item": "Radio check", "required": True, "completed": True},
        {"item": "Snacks", "required": False, "completed": False},
    ]
    stats = completion_stats(items)
    assert stats["completion_percentage"] == 50
    assert stats["status"] == "completed"


def test_completion_stats_without_required_items():
    assert completion_stats([{"completed": True}, {"completed": False}])["status"] == "partial"
    assert completion_stats([{"completed": True}])["status"] == "completed"
    empty = completion_stats([])
    assert empty["completion_percentage"] == 0
    assert empty["status"] == "completed"


def test_sequential_document_number():
    assert sequential_document_number("CO", 2025, 3) == "CO-2025-0004"
    assert sequential_document_number("WO", 2024, 0) == "WO-2024-0001"
    assert sequential_document_number("RPT", 2025, 12344) == "RPT-2025-12345"


def test_is_overdue_only_for_active_statuses():
    past = NOW - timedelta(days=1)
    assert is_overdue("scheduled", past, NOW)
    assert not is_overdue("completed", past, NOW)
    assert not is_overdue("scheduled", NOW + timedelta(days=1), NOW)
    assert not is_overdue("scheduled", None, NOW)


def test_resolve_appointment_end_defaults():
    start = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)
    assert resolve_appointment_end(start, None, False) == start + timedelta(hours=1)
    all_day_end = resolve_appointment_end(start, None, True)
    assert (all_day_end.hour, all_day_end.minute, all_day_end.second) == (23, 59, 59)
    assert all_day_end.microsecond == 999000


def test_resolve_appointment_end_rejects_backwards_range():
    start = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        resolve_appointment_end(start, start, False)
    with pytest.raises(ValueError):
        resolve_appointment_end(start, start - timedelta(minutes=5), False)


def test_appointment_duration_minutes():
    start = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
    assert appointment_duration_minutes(start, start + timedelta(minutes=90)) == 90
